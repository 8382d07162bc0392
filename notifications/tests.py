import smtplib
from unittest import mock

from django.core import mail
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import ExternalDependencyError
from core.testing import make_admin, make_tenant, make_user
from . import catalog, sink
from .catalog import Event
from .models import Notification, NotificationTemplate


class CatalogTests(TestCase):

    def test_every_event_has_a_default_template(self):
        events = [value for name, value in vars(Event).items() if not name.startswith('_')]
        self.assertEqual(set(events), set(catalog.DEFAULT_TEMPLATES))

    def test_renders_default_text(self):
        subject, body = catalog.render(Event.DUE_TODAY, {
            'tenant_name': 'Asha Rao', 'amount_due': '15500.00', 'property_name': 'Lakeview', 'month': '2026-04',
        })
        self.assertEqual(subject, 'Rent due today: 2026-04')
        self.assertIn('Asha Rao', body)
        self.assertIn('15500.00', body)

    def test_database_template_overrides_default(self):
        NotificationTemplate.objects.create(key=Event.FRIENDLY, subject='Heads up {{ month }}',
                                            body='Pay {{ amount_due }} soon')
        self.assertEqual(catalog.render(Event.FRIENDLY, {'month': '2026-04', 'amount_due': '10'}),
                         ('Heads up 2026-04', 'Pay 10 soon'))

    def test_inactive_override_is_ignored(self):
        NotificationTemplate.objects.create(key=Event.FRIENDLY, subject='Off', body='Off', is_active=False)
        subject, _ = catalog.render(Event.FRIENDLY, {'month': '2026-04'})
        self.assertEqual(subject, 'Upcoming rent: 2026-04')

    def test_unknown_event(self):
        with self.assertRaises(ValueError):
            catalog.render('birthday', {})

    def test_audience(self):
        self.assertEqual(catalog.audience_for(Event.APPLICATION_SUBMITTED), Notification.USER_TYPE_ADMIN)
        self.assertEqual(catalog.audience_for(Event.OVERDUE_1), Notification.USER_TYPE_TENANT)


class SinkTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()

    def test_stores_in_app_notification(self):
        notification = sink.send(Event.PAYMENT_CONFIRMED, tenant=self.tenant,
                                 context={'tenant_name': 'Asha', 'amount': '3000.00'},
                                 metadata={'invoice_id': 1})
        self.assertEqual(notification.user_type, Notification.USER_TYPE_TENANT)
        self.assertEqual(notification.metadata, {'invoice_id': 1})
        self.assertFalse(notification.email_sent)
        self.assertEqual(len(mail.outbox), 0)

    @override_settings(ENABLE_EMAIL_NOTIFICATIONS=True)
    def test_emails_tenant_when_enabled(self):
        notification = sink.send(Event.DUE_TODAY, tenant=self.tenant, context={'month': '2026-04'})
        self.assertTrue(notification.email_sent)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['asha@example.com'])

    @override_settings(ENABLE_EMAIL_NOTIFICATIONS=True)
    def test_admin_events_go_to_admins(self):
        make_admin()
        sink.send(Event.APPLICATION_SUBMITTED, context={'applicant_name': 'Bob'})
        self.assertEqual(mail.outbox[0].to, ['admin@leasehub.test'])

    @override_settings(ENABLE_EMAIL_NOTIFICATIONS=True)
    def test_failed_email_rolls_back_notification(self):
        with mock.patch('notifications.sink.send_mail', side_effect=smtplib.SMTPException('down')):
            with self.assertRaises(ExternalDependencyError):
                sink.send(Event.DUE_TODAY, tenant=self.tenant, context={})
        self.assertFalse(Notification.objects.exists())

    def test_notify_swallows_delivery_errors(self):
        self.assertIsNone(sink.notify('birthday', tenant=self.tenant))

    def test_notify_on_commit_waits_for_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            sink.notify_on_commit(Event.DUE_TODAY, tenant=self.tenant, context={})
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        self.assertEqual(Notification.objects.count(), 1)


class NotificationEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.tenant = make_tenant(user=self.user)
        self.other = make_tenant(email='other@example.com')
        sink.send(Event.DUE_TODAY, tenant=self.tenant, context={})
        sink.send(Event.DUE_TODAY, tenant=self.other, context={})
        sink.send(Event.APPLICATION_SUBMITTED, context={})

    def test_tenant_sees_own_notifications(self):
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.data['count'], 1)

    def test_admin_sees_admin_stream(self):
        self.client.force_authenticate(make_admin())
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['event'], Event.APPLICATION_SUBMITTED)

    def test_mark_read(self):
        notification = Notification.objects.get(tenant=self.tenant)
        self.client.force_authenticate(self.user)
        response = self.client.post(f'/api/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.is_read)
        self.assertIsNotNone(notification.read_at)
