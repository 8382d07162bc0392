from django.core.exceptions import PermissionDenied
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase, RequestFactory
from rest_framework.test import APIClient

from core.constants import ActorType
from core.testing import make_admin, make_user
from .helpers import log_action, get_entity_audit_trail
from .models import AuditLog


def record(action=AuditLog.ACTION_CREATE_INVOICE, entity=AuditLog.ENTITY_INVOICE, entity_id=1, **kwargs):
    return log_action(None, ActorType.SYSTEM, action, entity, entity_id, **kwargs)


class AuditLogModelTests(TestCase):

    def test_logs_cannot_be_edited(self):
        log = record()
        log.description = 'changed'
        with self.assertRaises(PermissionDenied):
            log.save()

    def test_logs_cannot_be_deleted(self):
        log = record()
        with self.assertRaises(PermissionDenied):
            log.delete()
        self.assertTrue(AuditLog.objects.filter(pk=log.pk).exists())

    def test_actor_display_falls_back_to_actor_type(self):
        self.assertEqual(record().actor_display, 'System')


class LogActionTests(TestCase):

    def test_records_before_and_after(self):
        log = record(before={'status': 'pending'}, after={'status': 'paid'}, description='paid')
        self.assertEqual(log.before_state, {'status': 'pending'})
        self.assertEqual(log.after_state, {'status': 'paid'})
        self.assertEqual(log.actor_type, ActorType.SYSTEM)

    def test_request_metadata(self):
        admin = make_admin()
        request = RequestFactory().post('/', HTTP_X_FORWARDED_FOR='10.0.0.7, 10.0.0.1',
                                        HTTP_USER_AGENT='pytest')
        log = log_action(admin, ActorType.ADMIN, AuditLog.ACTION_APPROVE_APPLICATION,
                         AuditLog.ENTITY_APPLICATION, 5, request=request)
        self.assertEqual(log.actor, admin)
        self.assertEqual(log.ip_address, '10.0.0.7')
        self.assertEqual(log.user_agent, 'pytest')

    def test_anonymous_actor_is_dropped(self):
        log = log_action(AnonymousUser(), ActorType.APPLICANT, AuditLog.ACTION_SUBMIT_APPLICATION,
                         AuditLog.ENTITY_APPLICATION, 3)
        self.assertIsNone(log.actor)
        self.assertEqual(log.actor_type, ActorType.APPLICANT)

    def test_entity_trail(self):
        record(entity_id=1)
        record(entity_id=1, action=AuditLog.ACTION_RECORD_PAYMENT)
        record(entity_id=2)
        self.assertEqual(len(get_entity_audit_trail(AuditLog.ENTITY_INVOICE, 1)), 2)


class AuditEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        record(entity_id=1)
        record(entity_id=2, action=AuditLog.ACTION_APPLY_LATE_FEE)
        record(entity=AuditLog.ENTITY_APPLICATION, entity_id=1, action=AuditLog.ACTION_EXPIRE_APPLICATION)

    def test_admin_only(self):
        self.client.force_authenticate(make_user())
        self.assertEqual(self.client.get('/api/audit/logs/').status_code, 403)

    def test_filters(self):
        self.client.force_authenticate(make_admin())
        self.assertEqual(self.client.get('/api/audit/logs/').data['count'], 3)

        response = self.client.get('/api/audit/logs/', {'entity': 'Invoice', 'entity_id': '2'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['action'], AuditLog.ACTION_APPLY_LATE_FEE)

        response = self.client.get('/api/audit/logs/', {'action': AuditLog.ACTION_EXPIRE_APPLICATION})
        self.assertEqual(response.data['count'], 1)

    def test_record_trail(self):
        self.client.force_authenticate(make_admin())
        record(entity_id=1, action=AuditLog.ACTION_RECORD_PAYMENT)

        response = self.client.get('/api/audit/logs/trail/', {'entity': 'Invoice', 'entity_id': '1'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['action'] for row in response.data],
                         [AuditLog.ACTION_RECORD_PAYMENT, AuditLog.ACTION_CREATE_INVOICE])

        response = self.client.get('/api/audit/logs/trail/', {'entity': 'Invoice', 'entity_id': '1', 'limit': '1'})
        self.assertEqual(len(response.data), 1)

    def test_trail_needs_a_record(self):
        self.client.force_authenticate(make_admin())
        response = self.client.get('/api/audit/logs/trail/', {'entity': 'Invoice'})
        self.assertEqual(response.status_code, 400)
