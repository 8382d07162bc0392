from datetime import date, datetime, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from audit.models import AuditLog
from billing.models import Invoice, LedgerEntry, Payment
from billing.services import BillingService
from core.constants import (
    ApplicationStatus, InvoiceStatus, InvoiceType, PaymentPurpose, PaymentStatus, PropertyStatus,
)
from core.dto import ApplicationDTO, GatewayEvent
from core.exceptions import (
    DuplicateOperationError, InvalidStateError, NotFoundError, ValidationError,
)
from core.testing import T0, hours, make_admin, make_application, make_property, make_tenant, make_user
from notifications.models import Notification
from tenants.models import Tenant
from .models import Application
from .services import LeaseService


def dto(prop, email='asha@example.com', income='60000.00', move_in=date(2026, 4, 1), **kwargs):
    return ApplicationDTO(
        property_id=prop.id,
        applicant_name=kwargs.pop('name', 'Asha Rao'),
        applicant_email=email,
        monthly_income=Decimal(income),
        preferred_move_in=move_in,
        **kwargs
    )


class SubmitApplicationTests(TestCase):

    def setUp(self):
        self.property = make_property()
        self.service = LeaseService()

    def test_creates_pending_application(self):
        with self.captureOnCommitCallbacks(execute=True):
            application = self.service.submit_application(dto(self.property, email='Asha@Example.com'), now=T0)

        self.assertEqual(application.status, ApplicationStatus.PENDING)
        self.assertEqual(application.applicant_email, 'asha@example.com')
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_SUBMIT_APPLICATION,
                                                entity_id=application.id).exists())
        self.assertTrue(Notification.objects.filter(event='application_submitted',
                                                    user_type=Notification.USER_TYPE_ADMIN).exists())

    def test_unknown_property(self):
        data = dto(self.property)
        data.property_id = 9999
        with self.assertRaises(NotFoundError):
            self.service.submit_application(data, now=T0)

    def test_property_must_be_available(self):
        self.property.status = PropertyStatus.RESERVED
        self.property.save()
        with self.assertRaises(InvalidStateError):
            self.service.submit_application(dto(self.property), now=T0)

    def test_one_open_application_per_property(self):
        self.service.submit_application(dto(self.property), now=T0)
        with self.assertRaises(DuplicateOperationError):
            self.service.submit_application(dto(self.property), now=T0)

    def test_pending_limit(self):
        for index in range(3):
            self.service.submit_application(dto(make_property(name=f'Flat {index}')), now=T0)
        with self.assertRaises(ValidationError) as ctx:
            self.service.submit_application(dto(self.property), now=T0)
        self.assertEqual(ctx.exception.code, 'PENDING_LIMIT_EXCEEDED')

    def test_income_must_cover_rent(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.submit_application(dto(self.property, income='30000.00'), now=T0)
        self.assertEqual(ctx.exception.code, 'INSUFFICIENT_INCOME')

    def test_move_in_cannot_be_in_the_past(self):
        with self.assertRaises(ValidationError):
            self.service.submit_application(dto(self.property, move_in=date(2026, 3, 1)), now=T0)


class DecideApplicationTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.property = make_property()
        self.application = make_application(self.property)
        self.service = LeaseService()

    def test_approval_side_effects(self):
        rival = make_application(self.property, email='bob@example.com', applicant_name='Bob Das')
        elsewhere = make_application(make_property(name='Hill view'))

        with self.captureOnCommitCallbacks(execute=True):
            application = self.service.decide(self.application.id, 'approve', actor=self.admin, now=T0)

        self.assertEqual(application.status, ApplicationStatus.APPROVED)
        self.assertEqual(application.expires_at, T0 + hours(48))
        self.assertEqual(application.approved_by, self.admin)

        tenant = Tenant.objects.get(email='asha@example.com')
        self.assertEqual(application.tenant, tenant)
        self.assertEqual(tenant.tenant_code, 'TEN00001')

        rival.refresh_from_db()
        elsewhere.refresh_from_db()
        self.assertEqual(rival.status, ApplicationStatus.REJECTED)
        self.assertEqual(elsewhere.status, ApplicationStatus.CANCELLED)

        deposit = Invoice.objects.get(invoice_type=InvoiceType.BOOKING_DEPOSIT)
        self.assertEqual(deposit.tenant, tenant)
        self.assertEqual(deposit.total_amount, Decimal('3000.00'))
        self.assertEqual(deposit.due_date, date(2026, 3, 12))
        self.assertEqual(LedgerEntry.objects.get(reference_id=deposit.id).balance, Decimal('3000.00'))

        # Property stays available until the deposit is paid
        self.property.refresh_from_db()
        self.assertEqual(self.property.status, PropertyStatus.AVAILABLE)

        self.assertTrue(Notification.objects.filter(event='booking_deposit_required', tenant=tenant).exists())
        self.assertTrue(Notification.objects.filter(event='application_rejected').exists())
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_AUTO_REJECT_APPLICATION,
                                                entity_id=rival.id).exists())

    def test_existing_tenant_is_reused(self):
        tenant = make_tenant(email='asha@example.com')
        application = self.service.decide(self.application.id, 'approve', actor=self.admin, now=T0)
        self.assertEqual(application.tenant, tenant)
        self.assertEqual(Tenant.objects.count(), 1)

    def test_submitter_is_linked_to_new_tenant(self):
        user = make_user()
        self.application.submitted_by = user
        self.application.save()
        application = self.service.decide(self.application.id, 'approve', actor=self.admin, now=T0)
        self.assertEqual(application.tenant.user, user)

    def test_reject(self):
        application = self.service.decide(self.application.id, 'reject', comments='Incomplete documents',
                                          actor=self.admin, now=T0)
        self.assertEqual(application.status, ApplicationStatus.REJECTED)
        self.assertEqual(application.admin_comments, 'Incomplete documents')
        self.assertFalse(Invoice.objects.exists())

    def test_only_pending_can_be_decided(self):
        self.service.decide(self.application.id, 'reject', actor=self.admin, now=T0)
        with self.assertRaises(InvalidStateError):
            self.service.decide(self.application.id, 'approve', actor=self.admin, now=T0)

    def test_unknown_decision(self):
        with self.assertRaises(ValidationError):
            self.service.decide(self.application.id, 'maybe', actor=self.admin, now=T0)


class LeaseFlowMixin:

    def setUp(self):
        self.admin = make_admin()
        self.property = make_property()
        self.service = LeaseService()
        self.application = self.service.decide(make_application(self.property).id, 'approve',
                                               actor=self.admin, now=T0)
        self.tenant = self.application.tenant
        self.deposit = Invoice.objects.get(invoice_type=InvoiceType.BOOKING_DEPOSIT)

    def pay(self, invoice, reference, now):
        return BillingService().reconcile_payment(GatewayEvent(
            invoice_id=invoice.id,
            tenant_id=self.tenant.id,
            amount_paid_minor=int(invoice.total_amount * 100),
            external_reference=reference,
        ), now=now)

    def refresh(self):
        self.application.refresh_from_db()
        self.property.refresh_from_db()
        self.tenant.refresh_from_db()


class CancelApplicationTests(LeaseFlowMixin, TestCase):

    def test_tenant_cancels_before_deposit(self):
        self.service.cancel(self.application.id, actor_type='tenant')
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.CANCELLED)
        self.assertEqual(self.property.status, PropertyStatus.AVAILABLE)

    def test_tenant_cannot_cancel_after_deposit_payment(self):
        Payment.objects.create(tenant=self.tenant, property=self.property, invoice=self.deposit,
                               amount_paid=Decimal('3000.00'), purpose=PaymentPurpose.BOOKING_DEPOSIT,
                               status=PaymentStatus.APPROVED)
        with self.assertRaises(InvalidStateError) as ctx:
            self.service.cancel(self.application.id, actor_type='tenant')
        self.assertEqual(ctx.exception.code, 'DEPOSIT_PAID')

    def test_tenant_cannot_cancel_reserved(self):
        self.pay(self.deposit, 'pi_1', T0 + hours(2))
        with self.assertRaises(InvalidStateError):
            self.service.cancel(self.application.id, actor_type='tenant')
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.RESERVED)

    def test_admin_cancel_releases_reserved_property(self):
        self.pay(self.deposit, 'pi_1', T0 + hours(2))
        with self.captureOnCommitCallbacks(execute=True):
            self.service.cancel(self.application.id, actor=self.admin, actor_type='admin', reason='Owner withdrew')

        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.CANCELLED)
        self.assertEqual(self.application.admin_comments, 'Owner withdrew')
        self.assertEqual(self.property.status, PropertyStatus.AVAILABLE)
        self.assertIsNone(self.property.tenant)
        self.assertIsNone(self.tenant.property)
        self.assertTrue(AuditLog.objects.filter(action=AuditLog.ACTION_RELEASE_PROPERTY,
                                                entity_id=self.property.id).exists())
        self.assertTrue(Notification.objects.filter(event='application_cancelled_by_admin').exists())

    def test_occupied_property_cannot_be_cancelled(self):
        self.pay(self.deposit, 'pi_1', T0 + hours(2))
        self.property.refresh_from_db()
        self.property.status = PropertyStatus.OCCUPIED
        self.property.save()
        with self.assertRaises(InvalidStateError) as ctx:
            self.service.cancel(self.application.id, actor=self.admin, actor_type='admin')
        self.assertEqual(ctx.exception.code, 'PROPERTY_OCCUPIED')

    def test_cancel_twice(self):
        self.service.cancel(self.application.id, actor_type='tenant')
        with self.assertRaises(DuplicateOperationError):
            self.service.cancel(self.application.id, actor_type='tenant')

    def test_tenant_cannot_cancel_while_someone_else_occupies(self):
        self.property.status = PropertyStatus.OCCUPIED
        self.property.tenant = make_tenant(email='ravi@example.com')
        self.property.save()
        with self.assertRaises(InvalidStateError) as ctx:
            self.service.cancel(self.application.id, actor_type='tenant')
        self.assertEqual(ctx.exception.code, 'PROPERTY_OCCUPIED')
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.APPROVED)


class PropertyHoldTests(LeaseFlowMixin, TestCase):
    """An approved application keeps the property for its deposit window"""

    def test_no_new_applications_during_deposit_window(self):
        with self.assertRaises(InvalidStateError) as ctx:
            self.service.submit_application(dto(self.property, email='bob@example.com', name='Bob Das'),
                                            now=T0 + hours(1))
        self.assertEqual(ctx.exception.code, 'PROPERTY_NOT_AVAILABLE')
        self.assertEqual(ctx.exception.details['application_id'], self.application.id)

    def test_second_approval_is_refused(self):
        rival = make_application(self.property, email='bob@example.com', applicant_name='Bob Das')
        with self.assertRaises(InvalidStateError):
            self.service.decide(rival.id, 'approve', actor=self.admin, now=T0 + hours(1))

        rival.refresh_from_db()
        self.assertEqual(rival.status, ApplicationStatus.PENDING)
        self.assertEqual(Invoice.objects.filter(invoice_type=InvoiceType.BOOKING_DEPOSIT,
                                                property=self.property).count(), 1)

    def test_reserved_property_is_still_held(self):
        self.pay(self.deposit, 'pi_1', T0 + hours(2))
        rival = make_application(self.property, email='bob@example.com', applicant_name='Bob Das')
        with self.assertRaises(InvalidStateError):
            self.service.decide(rival.id, 'approve', actor=self.admin, now=T0 + hours(3))

    def test_property_opens_again_after_cancel(self):
        self.service.cancel(self.application.id, actor_type='tenant')
        application = self.service.submit_application(
            dto(self.property, email='bob@example.com', name='Bob Das'), now=T0 + hours(1)
        )
        self.assertEqual(application.status, ApplicationStatus.PENDING)


class ExpiryTests(LeaseFlowMixin, TestCase):

    def test_not_expired_before_deadline(self):
        result = self.service.expire_overdue_applications(now=T0 + hours(47))
        self.assertEqual(result.created, 0)
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.APPROVED)

    def test_expires_after_deadline_without_payment(self):
        with self.captureOnCommitCallbacks(execute=True):
            result = self.service.expire_overdue_applications(now=T0 + hours(49))

        self.assertEqual(result.created, 1)
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.EXPIRED)
        self.assertEqual(self.property.status, PropertyStatus.AVAILABLE)
        self.assertTrue(Notification.objects.filter(event='booking_deposit_expired').exists())

    def test_paid_deposit_prevents_expiry(self):
        self.deposit.paid_amount = self.deposit.total_amount
        self.deposit.save()
        self.service.expire_overdue_applications(now=T0 + hours(49))
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.APPROVED)

    def test_reserved_is_never_expired(self):
        self.pay(self.deposit, 'pi_1', T0 + hours(10))
        self.service.expire_overdue_applications(now=T0 + hours(200))
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.RESERVED)
        self.assertEqual(self.property.status, PropertyStatus.RESERVED)

    def test_pending_application_past_move_in_expires(self):
        stale = make_application(make_property(name='Old flat'), email='late@example.com',
                                 preferred_move_in=date(2026, 3, 1))
        self.service.expire_overdue_applications(now=T0)
        stale.refresh_from_db()
        self.assertEqual(stale.status, ApplicationStatus.EXPIRED)

    def test_late_payment_after_expiry_changes_nothing(self):
        self.service.expire_overdue_applications(now=T0 + hours(49))
        result = self.pay(self.deposit, 'pi_late', T0 + hours(50))

        self.assertEqual(result.deposit.changes, [])
        self.assertIsNone(result.rent_invoice_id)
        self.assertFalse(Invoice.objects.filter(invoice_type=InvoiceType.MONTHLY_RENT).exists())
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.EXPIRED)
        self.assertEqual(self.property.status, PropertyStatus.AVAILABLE)


class ExpiryWarningTests(LeaseFlowMixin, TestCase):

    def warnings(self):
        return Notification.objects.filter(event='booking_deposit_expiring').count()

    def test_outside_window(self):
        self.service.send_expiry_warnings(now=T0 + hours(10))
        self.assertEqual(self.warnings(), 0)

    def test_warned_once(self):
        first = self.service.send_expiry_warnings(now=T0 + hours(30))
        second = self.service.send_expiry_warnings(now=T0 + hours(31))

        self.assertEqual(first.created, 1)
        self.assertEqual(second.created, 0)
        self.assertEqual(self.warnings(), 1)
        self.refresh()
        self.assertEqual(self.application.expiry_warning_sent_at, T0 + hours(30))


class RepairDepositStateTests(LeaseFlowMixin, TestCase):

    def test_reapplies_transition_for_paid_deposits(self):
        self.deposit.paid_amount = self.deposit.total_amount
        self.deposit.save()

        result = self.service.repair_deposit_state(today=date(2026, 3, 11))
        self.assertEqual(result.created, 1)

        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.RESERVED)
        self.assertEqual(self.property.status, PropertyStatus.RESERVED)
        self.assertEqual(self.property.tenant, self.tenant)
        self.assertEqual(self.tenant.property, self.property)
        self.assertEqual(self.tenant.application, self.application)
        self.assertTrue(Invoice.objects.filter(invoice_type=InvoiceType.MONTHLY_RENT, tenant=self.tenant).exists())

        again = self.service.repair_deposit_state(today=date(2026, 3, 11))
        self.assertEqual(again.created, 0)
        self.assertEqual(again.skipped, 1)
        self.assertEqual(Invoice.objects.filter(invoice_type=InvoiceType.MONTHLY_RENT).count(), 1)


class EndToEndTests(LeaseFlowMixin, TestCase):

    def test_approval_to_paid_rent(self):
        self.assertEqual(self.deposit.due_date, date(2026, 3, 12))

        result = self.pay(self.deposit, 'pi_deposit', T0 + hours(10))
        self.refresh()
        self.assertEqual(self.application.status, ApplicationStatus.RESERVED)
        self.assertEqual(self.property.status, PropertyStatus.RESERVED)
        self.assertEqual(self.property.tenant, self.tenant)
        self.assertEqual(self.tenant.property, self.property)

        rent = Invoice.objects.get(id=result.rent_invoice_id)
        self.assertEqual(rent.invoice_type, InvoiceType.MONTHLY_RENT)
        self.assertEqual(rent.due_date, date(2026, 4, 5))

        self.pay(rent, 'pi_rent', timezone.make_aware(datetime(2026, 4, 2, 10, 0)))
        rent.refresh_from_db()
        self.assertEqual(rent.status, InvoiceStatus.PAID)
        self.assertEqual(rent.balance, Decimal('0.00'))

        BillingService().apply_late_fees(today=date(2026, 4, 30))
        self.assertFalse(Invoice.objects.filter(invoice_type=InvoiceType.LATE_FEE).exists())
        self.assertEqual(LedgerEntry.objects.filter(tenant=self.tenant).last().balance, Decimal('0.00'))


class ApplicationEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.admin = make_admin()
        self.user = make_user()
        self.property = make_property()
        self.move_in = timezone.localdate() + timedelta(days=30)

    def submit(self, property_id=None):
        return self.client.post('/api/applications/', {
            'property_id': property_id or self.property.id,
            'applicant_name': 'Renter One',
            'applicant_email': 'renter@example.com',
            'monthly_income': '60000.00',
            'preferred_move_in': self.move_in.isoformat(),
        }, format='json')

    def test_submit_and_approve(self):
        self.client.force_authenticate(self.user)
        response = self.submit()
        self.assertEqual(response.status_code, 201)
        application_id = response.data['id']

        self.client.force_authenticate(self.admin)
        response = self.client.post(f'/api/applications/{application_id}/decide/', {'decision': 'approve'},
                                    format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], ApplicationStatus.APPROVED)
        self.assertEqual(Application.objects.get(id=application_id).tenant.user, self.user)

    def test_duplicate_submission_is_reported(self):
        self.client.force_authenticate(self.user)
        self.submit()
        response = self.submit()
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['duplicate'])
        self.assertEqual(Application.objects.count(), 1)

    def test_unknown_property_is_404(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.submit(property_id=9999).status_code, 404)

    def test_unavailable_property_is_400(self):
        self.property.status = PropertyStatus.OCCUPIED
        self.property.save()
        self.client.force_authenticate(self.user)
        response = self.submit()
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'PROPERTY_NOT_AVAILABLE')

    def test_tenants_cannot_decide(self):
        application = make_application(self.property, email='renter@example.com')
        self.client.force_authenticate(self.user)
        response = self.client.post(f'/api/applications/{application.id}/decide/', {'decision': 'approve'},
                                    format='json')
        self.assertEqual(response.status_code, 403)

    def test_cannot_cancel_someone_elses_application(self):
        application = make_application(self.property, email='other@example.com')
        self.client.force_authenticate(self.user)
        response = self.client.post(f'/api/applications/{application.id}/cancel/', format='json')
        self.assertEqual(response.status_code, 403)

    def test_cancel_own_application(self):
        application = make_application(self.property, email='renter@example.com')
        self.client.force_authenticate(self.user)
        response = self.client.post(f'/api/applications/{application.id}/cancel/', format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['status'], ApplicationStatus.CANCELLED)

    def test_list_is_scoped_to_the_applicant(self):
        make_application(self.property, email='renter@example.com')
        make_application(self.property, email='other@example.com')
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/applications/')
        self.assertEqual(response.data['count'], 1)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/applications/')
        self.assertEqual(response.data['count'], 2)
