from datetime import date
from decimal import Decimal
from unittest import mock

import httpx
from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from applications.services import LeaseService
from audit.models import AuditLog
from core.constants import (
    ActorType, ApplicationStatus, InvoiceStatus, InvoiceType, LedgerEntryType, PaymentPurpose,
    PaymentStatus, PropertyStatus, ReminderStage,
)
from core.dto import GatewayEvent, InvoiceDTO
from core.exceptions import DuplicateOperationError, ExternalDependencyError, NotFoundError, ValidationError
from core.testing import T0, hours, make_admin, make_application, make_property, make_tenant, make_user, occupied_property
from notifications.models import Notification
from .conf import BillingConfig, get_billing_config
from .gateway import HttpPaymentGateway, event_from_payload, event_from_session
from .models import Invoice, LedgerEntry, Payment
from .services import BillingService, first_rent_due_date

WEBHOOK_SETTINGS = {'WEBHOOK_TOKEN': 'gw-secret', 'BASE_URL': ''}


def rent_invoice(tenant, prop, month='2026-04', due_date=date(2026, 4, 5), total='15500.00', **kwargs):
    return Invoice.objects.create(
        invoice_type=InvoiceType.MONTHLY_RENT,
        tenant=tenant,
        property=prop,
        month=month,
        rent_amount=prop.rent,
        maintenance_charges=prop.maintenance_fee,
        total_amount=Decimal(total),
        due_date=due_date,
        **kwargs
    )


class ApprovedApplicationMixin:
    """An approved application with its booking deposit invoice"""

    def setUp(self):
        self.admin = make_admin()
        self.property = make_property()
        application = make_application(self.property)
        self.application = LeaseService().decide(application.id, 'approve', actor=self.admin, now=T0)
        self.tenant = self.application.tenant
        self.deposit = Invoice.objects.get(invoice_type=InvoiceType.BOOKING_DEPOSIT)

    def deposit_event(self, reference='pi_123', amount_minor=300000):
        return GatewayEvent(
            invoice_id=self.deposit.id,
            tenant_id=self.tenant.id,
            purpose=PaymentPurpose.BOOKING_DEPOSIT,
            amount_paid_minor=amount_minor,
            external_reference=reference,
        )


class InvoiceModelTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()
        self.property = occupied_property(self.tenant)

    def test_balance_and_status_follow_paid_amount(self):
        invoice = rent_invoice(self.tenant, self.property, total='1000.00')
        self.assertEqual(invoice.balance, Decimal('1000.00'))
        self.assertEqual(invoice.status, InvoiceStatus.UNPAID)

        invoice.paid_amount = Decimal('400.00')
        invoice.save()
        invoice.refresh_from_db()
        self.assertEqual(invoice.balance, Decimal('600.00'))
        self.assertEqual(invoice.status, InvoiceStatus.PARTIAL)

        invoice.paid_amount = Decimal('1200.00')
        invoice.save(update_fields=['paid_amount'])
        invoice.refresh_from_db()
        self.assertEqual(invoice.balance, Decimal('0.00'))
        self.assertEqual(invoice.status, InvoiceStatus.PAID)
        self.assertIsNotNone(invoice.paid_at)

    def test_overdue_stays_until_fully_paid(self):
        invoice = rent_invoice(self.tenant, self.property, total='1000.00', status=InvoiceStatus.OVERDUE)
        invoice.paid_amount = Decimal('500.00')
        invoice.save()
        self.assertEqual(invoice.status, InvoiceStatus.OVERDUE)

        invoice.paid_amount = Decimal('1000.00')
        invoice.save()
        self.assertEqual(invoice.status, InvoiceStatus.PAID)

    def test_reminder_stage_defaults_to_none(self):
        invoice = rent_invoice(self.tenant, self.property)
        self.assertEqual(invoice.last_reminder_type, ReminderStage.NONE)

    def test_one_monthly_rent_invoice_per_period(self):
        rent_invoice(self.tenant, self.property)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                rent_invoice(self.tenant, self.property)

    def test_approved_payment_reference_is_unique_per_invoice(self):
        invoice = rent_invoice(self.tenant, self.property)
        Payment.objects.create(tenant=self.tenant, invoice=invoice, amount_paid=Decimal('15500.00'),
                               external_reference='pi_1', status=PaymentStatus.APPROVED)
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                Payment.objects.create(tenant=self.tenant, invoice=invoice, amount_paid=Decimal('15500.00'),
                                       external_reference='pi_1', status=PaymentStatus.APPROVED)

    def test_ledger_entries_are_append_only(self):
        entry = LedgerEntry.objects.create(
            tenant=self.tenant, entry_type=LedgerEntryType.DEBIT, amount=Decimal('10.00'),
            description='Adjustment', reference_type='adjustment', balance=Decimal('10.00'),
        )
        entry.amount = Decimal('20.00')
        with self.assertRaises(PermissionDenied):
            entry.save()
        with self.assertRaises(PermissionDenied):
            entry.delete()


class BillingConfigTests(TestCase):

    def test_defaults(self):
        config = BillingConfig()
        self.assertEqual(config.fee_per_day, Decimal('100'))
        self.assertEqual(config.grace_period_days, 3)
        self.assertEqual(config.deposit_window_hours, 48)
        self.assertEqual(config.reminder_stage_schedule[ReminderStage.FRIENDLY], -2)

    @override_settings(LEASE_BILLING={'FEE_PER_DAY': '50', 'REMINDER_STAGE_SCHEDULE': {'friendly': -3}})
    def test_settings_override_defaults(self):
        config = get_billing_config()
        self.assertEqual(config.fee_per_day, Decimal('50'))
        self.assertEqual(config.reminder_stage_schedule[ReminderStage.FRIENDLY], -3)
        self.assertEqual(config.reminder_stage_schedule[ReminderStage.WARNING_7], 7)

    @override_settings(LEASE_BILLING={'RENT_DUE_DAY': 31})
    def test_rejects_due_day_past_28(self):
        with self.assertRaises(ValueError):
            get_billing_config()

    def test_rejects_unknown_reminder_stage(self):
        with self.assertRaises(ValueError):
            BillingConfig(reminder_stage_schedule={'shouting': 3})


class DepositAmountTests(TestCase):

    def test_explicit_booking_deposit_wins(self):
        prop = make_property(rent='15000.00', booking_deposit='5000.00')
        self.assertEqual(prop.effective_booking_deposit(Decimal('0.20')), Decimal('5000.00'))

    def test_falls_back_to_share_of_rent(self):
        prop = make_property(rent='15000.00')
        self.assertEqual(prop.effective_booking_deposit(Decimal('0.20')), Decimal('3000'))

    def test_share_is_rounded_half_up(self):
        prop = make_property(rent='7.50')
        self.assertEqual(prop.effective_booking_deposit(Decimal('0.20')), Decimal('2'))

    def test_falls_back_to_full_rent_when_share_rounds_to_zero(self):
        prop = make_property(rent='2.00')
        self.assertEqual(prop.effective_booking_deposit(Decimal('0.20')), Decimal('2.00'))


class FirstRentDueDateTests(TestCase):

    def test_this_month_when_due_day_not_passed(self):
        self.assertEqual(first_rent_due_date(date(2026, 3, 3), 5), date(2026, 3, 5))
        self.assertEqual(first_rent_due_date(date(2026, 3, 5), 5), date(2026, 3, 5))

    def test_next_month_after_due_day(self):
        self.assertEqual(first_rent_due_date(date(2026, 3, 10), 5), date(2026, 4, 5))
        self.assertEqual(first_rent_due_date(date(2026, 12, 20), 5), date(2027, 1, 5))


class ReconcilePaymentTests(ApprovedApplicationMixin, TestCase):

    def test_deposit_payment_reserves_and_invoices_first_rent(self):
        with self.captureOnCommitCallbacks(execute=True):
            result = BillingService().reconcile_payment(self.deposit_event(), now=T0 + hours(10))

        self.deposit.refresh_from_db()
        self.assertEqual(self.deposit.status, InvoiceStatus.PAID)
        self.assertEqual(self.deposit.balance, Decimal('0.00'))

        payment = Payment.objects.get(id=result.payment_id)
        self.assertEqual(payment.amount_paid, Decimal('3000.00'))
        self.assertEqual(payment.purpose, PaymentPurpose.BOOKING_DEPOSIT)
        self.assertEqual(payment.status, PaymentStatus.APPROVED)

        self.assertEqual(result.deposit.changes, ['application_reserved', 'property_reserved', 'tenant_linked'])
        rent = Invoice.objects.get(id=result.rent_invoice_id)
        self.assertEqual(rent.invoice_type, InvoiceType.MONTHLY_RENT)
        self.assertEqual(rent.total_amount, Decimal('15500.00'))
        self.assertEqual(rent.due_date, date(2026, 4, 5))

        self.assertTrue(Notification.objects.filter(event='payment_confirmed', tenant=self.tenant).exists())

    def test_same_event_is_recorded_once(self):
        service = BillingService()
        service.reconcile_payment(self.deposit_event(), now=T0 + hours(10))
        with self.assertRaises(DuplicateOperationError):
            service.reconcile_payment(self.deposit_event(), now=T0 + hours(11))

        self.assertEqual(Payment.objects.count(), 1)
        self.assertEqual(LedgerEntry.objects.filter(entry_type=LedgerEntryType.CREDIT).count(), 1)
        self.assertEqual(Invoice.objects.filter(invoice_type=InvoiceType.MONTHLY_RENT).count(), 1)

    def test_new_reference_for_paid_invoice_is_a_duplicate(self):
        service = BillingService()
        service.reconcile_payment(self.deposit_event('pi_1'), now=T0 + hours(10))
        with self.assertRaises(DuplicateOperationError):
            service.reconcile_payment(self.deposit_event('pi_2'), now=T0 + hours(11))
        self.assertEqual(Payment.objects.count(), 1)

    def test_missing_amount_uses_outstanding_balance(self):
        result = BillingService().reconcile_payment(self.deposit_event(amount_minor=0), now=T0 + hours(1))
        self.assertEqual(Payment.objects.get(id=result.payment_id).amount_paid, Decimal('3000.00'))

    def test_tenant_mismatch_is_rejected(self):
        other = make_tenant(email='someone@example.com')
        event = GatewayEvent(invoice_id=self.deposit.id, tenant_id=other.id, amount_paid_minor=300000)
        with self.assertRaises(ValidationError):
            BillingService().reconcile_payment(event, now=T0 + hours(1))
        self.assertFalse(Payment.objects.exists())

    def test_ledger_running_balance(self):
        BillingService().reconcile_payment(self.deposit_event(), now=T0 + hours(10))
        entries = list(LedgerEntry.objects.filter(tenant=self.tenant).order_by('id'))

        self.assertEqual([e.entry_type for e in entries], [
            LedgerEntryType.DEBIT, LedgerEntryType.CREDIT, LedgerEntryType.DEBIT,
        ])
        self.assertEqual([e.balance for e in entries], [
            Decimal('3000.00'), Decimal('0.00'), Decimal('15500.00'),
        ])


class GenerateMonthlyInvoicesTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()
        self.property = occupied_property(self.tenant)
        make_property(name='Empty flat')

    def test_only_runs_on_the_first(self):
        result = BillingService().generate_monthly_invoices(today=date(2026, 5, 2))
        self.assertEqual(result.created, 0)
        self.assertFalse(Invoice.objects.exists())

    def test_invoices_occupied_properties_once(self):
        result = BillingService().generate_monthly_invoices(today=date(2026, 5, 1))
        self.assertEqual(result.created, 1)

        invoice = Invoice.objects.get()
        self.assertEqual(invoice.month, '2026-05')
        self.assertEqual(invoice.due_date, date(2026, 5, 5))
        self.assertEqual(invoice.total_amount, Decimal('15500.00'))
        self.assertEqual(LedgerEntry.objects.filter(reference_id=invoice.id).count(), 1)

        again = BillingService().generate_monthly_invoices(today=date(2026, 5, 1))
        self.assertEqual(again.created, 0)
        self.assertEqual(again.skipped, 1)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_dry_run_writes_nothing(self):
        result = BillingService().generate_monthly_invoices(today=date(2026, 5, 1), dry_run=True)
        self.assertEqual(result.created, 1)
        self.assertFalse(Invoice.objects.exists())


class LateFeeTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()
        self.property = occupied_property(self.tenant)
        self.invoice = rent_invoice(self.tenant, self.property)
        self.service = BillingService()

    def late_fees(self):
        return Invoice.objects.filter(invoice_type=InvoiceType.LATE_FEE, parent_invoice=self.invoice)

    def test_target_respects_grace_period(self):
        due = date(2026, 4, 5)
        for days_late in (1, 2, 3):
            self.assertEqual(self.service.late_fee_target(due, date(2026, 4, 5 + days_late)), Decimal('0.00'))
        self.assertEqual(self.service.late_fee_target(due, date(2026, 4, 9)), Decimal('100.00'))
        self.assertEqual(self.service.late_fee_target(due, date(2026, 4, 15)), Decimal('700.00'))

    def test_nothing_within_grace_period(self):
        self.service.apply_late_fees(today=date(2026, 4, 8))
        self.assertFalse(self.late_fees().exists())
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, InvoiceStatus.UNPAID)

    def test_accrues_incrementally_as_new_invoices(self):
        self.service.apply_late_fees(today=date(2026, 4, 9))
        self.service.apply_late_fees(today=date(2026, 4, 15))

        self.assertEqual(
            sorted(self.late_fees().values_list('total_amount', flat=True)),
            [Decimal('100.00'), Decimal('600.00')],
        )
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.late_fees_accrued, Decimal('700.00'))
        self.assertEqual(self.invoice.status, InvoiceStatus.OVERDUE)

    def test_same_day_rerun_adds_nothing(self):
        self.service.apply_late_fees(today=date(2026, 4, 15))
        result = self.service.apply_late_fees(today=date(2026, 4, 15))

        self.assertEqual(result.created, 0)
        self.assertEqual(self.late_fees().count(), 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.late_fees_accrued, Decimal('700.00'))

    def test_paid_invoices_are_skipped(self):
        self.invoice.paid_amount = self.invoice.total_amount
        self.invoice.save()
        self.service.apply_late_fees(today=date(2026, 4, 30))
        self.assertFalse(self.late_fees().exists())


class RentReminderTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()
        self.property = occupied_property(self.tenant)
        self.invoice = rent_invoice(self.tenant, self.property)
        self.service = BillingService()

    def sent(self, stage):
        return Notification.objects.filter(event=stage, tenant=self.tenant).count()

    def test_stage_schedule(self):
        due = date(2026, 4, 5)
        stage = self.service.reminder_stage
        self.assertEqual(stage(due, date(2026, 4, 3)), ReminderStage.FRIENDLY)
        self.assertIsNone(stage(due, date(2026, 4, 4)))
        self.assertEqual(stage(due, date(2026, 4, 5)), ReminderStage.DUE_TODAY)
        self.assertEqual(stage(due, date(2026, 4, 6)), ReminderStage.OVERDUE_1)
        self.assertIsNone(stage(due, date(2026, 4, 8)))
        self.assertEqual(stage(due, date(2026, 4, 12)), ReminderStage.WARNING_7)
        self.assertEqual(stage(due, date(2026, 4, 19)), ReminderStage.WARNING_7)
        self.assertEqual(stage(due, date(2026, 4, 20)), ReminderStage.ALERT_15)
        self.assertEqual(stage(due, date(2026, 5, 5)), ReminderStage.DEFAULT_30)

    def test_each_stage_sent_at_most_once(self):
        self.service.send_rent_reminders(today=date(2026, 4, 3))
        self.service.send_rent_reminders(today=date(2026, 4, 3))
        self.assertEqual(self.sent(ReminderStage.FRIENDLY), 1)

        self.service.send_rent_reminders(today=date(2026, 4, 12))
        self.service.send_rent_reminders(today=date(2026, 4, 13))
        self.assertEqual(self.sent(ReminderStage.WARNING_7), 1)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.last_reminder_type, ReminderStage.WARNING_7)
        self.assertIsNotNone(self.invoice.last_reminder_at)

    def test_failed_delivery_is_retried(self):
        with mock.patch('billing.services.sink.send', side_effect=ExternalDependencyError("smtp down")):
            result = self.service.send_rent_reminders(today=date(2026, 4, 5))
        self.assertEqual(result.failed, 1)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.last_reminder_type, ReminderStage.NONE)

        self.service.send_rent_reminders(today=date(2026, 4, 5))
        self.assertEqual(self.sent(ReminderStage.DUE_TODAY), 1)

    def test_paid_invoices_get_no_reminders(self):
        self.invoice.paid_amount = self.invoice.total_amount
        self.invoice.save()
        self.service.send_rent_reminders(today=date(2026, 4, 5))
        self.assertFalse(Notification.objects.exists())


class GatewayTests(TestCase):

    def test_event_from_webhook_payload(self):
        event = event_from_payload({
            'invoiceId': '12', 'tenantId': 3, 'purpose': 'rent',
            'amountPaidMinor': 1550000, 'externalTransactionRef': 'pi_9',
        })
        self.assertEqual(event.invoice_id, 12)
        self.assertEqual(event.tenant_id, 3)
        self.assertEqual(event.amount_paid, Decimal('15500.00'))
        self.assertEqual(event.external_reference, 'pi_9')
        self.assertIsNone(event_from_payload({'tenantId': 3}))

    def test_unpaid_session_has_no_event(self):
        self.assertIsNone(event_from_session({'payment_status': 'unpaid', 'metadata': {'invoiceId': '1'}}))

    def test_fetch_event_polls_the_session(self):
        def handler(request):
            self.assertEqual(request.url.path, '/checkout/sessions/cs_1')
            self.assertEqual(request.headers['Authorization'], 'Bearer key')
            return httpx.Response(200, json={
                'id': 'cs_1',
                'payment_status': 'paid',
                'amount_total': 300000,
                'payment_intent': 'pi_1',
                'metadata': {'invoiceId': '7', 'tenantId': '2', 'purpose': 'booking_deposit'},
            })

        gateway = HttpPaymentGateway(base_url='https://gateway.test', api_key='key',
                                     transport=httpx.MockTransport(handler))
        event = gateway.fetch_event('cs_1')
        self.assertEqual(event.invoice_id, 7)
        self.assertEqual(event.external_reference, 'pi_1')
        self.assertEqual(event.amount_paid, Decimal('3000.00'))

    def test_gateway_errors_become_external_dependency_errors(self):
        gateway = HttpPaymentGateway(base_url='https://gateway.test', api_key='key',
                                     transport=httpx.MockTransport(lambda request: httpx.Response(500)))
        with self.assertRaises(ExternalDependencyError) as ctx:
            gateway.retrieve_session('cs_1')
        self.assertEqual(ctx.exception.code, 'GATEWAY_ERROR')

    @override_settings(PAYMENT_GATEWAY={})
    def test_unconfigured_gateway(self):
        with self.assertRaises(ExternalDependencyError) as ctx:
            HttpPaymentGateway(base_url='').retrieve_session('cs_1')
        self.assertEqual(ctx.exception.code, 'GATEWAY_NOT_CONFIGURED')


@override_settings(PAYMENT_GATEWAY=WEBHOOK_SETTINGS)
class PaymentEndpointTests(ApprovedApplicationMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.client = APIClient()
        self.user = make_user()
        self.tenant.user = self.user
        self.tenant.save()

    def webhook_body(self, reference='pi_123'):
        return {
            'invoiceId': self.deposit.id,
            'tenantId': self.tenant.id,
            'purpose': 'booking_deposit',
            'amountPaidMinor': 300000,
            'externalTransactionRef': reference,
        }

    def test_webhook_rejects_bad_token(self):
        response = self.client.post('/api/payments/webhook/', self.webhook_body(), format='json',
                                    HTTP_X_GATEWAY_TOKEN='wrong')
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Payment.objects.exists())

    def test_webhook_records_payment_once(self):
        response = self.client.post('/api/payments/webhook/', self.webhook_body(), format='json',
                                    HTTP_X_GATEWAY_TOKEN='gw-secret')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data['duplicate'])
        self.assertIn('application_reserved', response.data['deposit_changes'])

        response = self.client.post('/api/payments/webhook/', self.webhook_body(), format='json',
                                    HTTP_X_GATEWAY_TOKEN='gw-secret')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['duplicate'])
        self.assertEqual(Payment.objects.count(), 1)

    def test_webhook_unknown_invoice(self):
        body = self.webhook_body()
        body['invoiceId'] = 99999
        response = self.client.post('/api/payments/webhook/', body, format='json',
                                    HTTP_X_GATEWAY_TOKEN='gw-secret')
        self.assertEqual(response.status_code, 404)

    def test_success_page_confirmation_after_webhook_is_duplicate(self):
        self.client.post('/api/payments/webhook/', self.webhook_body(), format='json',
                         HTTP_X_GATEWAY_TOKEN='gw-secret')

        gateway = mock.Mock()
        gateway.fetch_event.return_value = GatewayEvent(
            invoice_id=self.deposit.id, tenant_id=self.tenant.id, purpose='booking_deposit',
            amount_paid_minor=300000, external_reference='pi_123',
        )
        self.client.force_authenticate(self.user)
        with mock.patch('billing.views.get_gateway', return_value=gateway):
            response = self.client.post('/api/payments/confirm/', {'session_id': 'cs_1'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['duplicate'])
        self.assertEqual(Payment.objects.count(), 1)

    def test_success_page_waits_for_payment(self):
        gateway = mock.Mock()
        gateway.fetch_event.return_value = None
        self.client.force_authenticate(self.user)
        with mock.patch('billing.views.get_gateway', return_value=gateway):
            response = self.client.post('/api/payments/confirm/', {'session_id': 'cs_1'}, format='json')
        self.assertEqual(response.status_code, 202)

    def test_success_page_rejects_other_tenants_invoice(self):
        stranger = make_user('stranger')
        make_tenant(email='stranger@example.com', user=stranger)
        gateway = mock.Mock()
        gateway.fetch_event.return_value = GatewayEvent(invoice_id=self.deposit.id, amount_paid_minor=300000)
        self.client.force_authenticate(stranger)
        with mock.patch('billing.views.get_gateway', return_value=gateway):
            response = self.client.post('/api/payments/confirm/', {'session_id': 'cs_1'}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_gateway_outage_is_bad_gateway(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/payments/confirm/', {'session_id': 'cs_1'}, format='json')
        self.assertEqual(response.status_code, 502)

    def test_tenant_sees_only_own_invoices(self):
        self.client.force_authenticate(self.user)
        response = self.client.get('/api/invoices/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['id'] for row in response.data['results']], [self.deposit.id])

        stranger = make_user('stranger')
        self.client.force_authenticate(stranger)
        response = self.client.get('/api/invoices/')
        self.assertEqual(response.data['results'], [])

    def test_pay_rejects_settled_invoice(self):
        BillingService().reconcile_payment(self.deposit_event(), now=T0 + hours(1))
        self.client.force_authenticate(self.user)
        response = self.client.post(f'/api/invoices/{self.deposit.id}/pay/')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'INVOICE_PAID')


class ReservedPropertyStateTests(ApprovedApplicationMixin, TestCase):

    def test_deposit_payment_leaves_occupied_property_alone(self):
        self.property.status = PropertyStatus.OCCUPIED
        self.property.tenant = self.tenant
        self.property.save()

        result = BillingService().reconcile_payment(self.deposit_event(), now=T0 + hours(1))

        self.property.refresh_from_db()
        self.assertEqual(self.property.status, PropertyStatus.OCCUPIED)
        self.assertNotIn('property_reserved', result.deposit.changes)
        self.application.refresh_from_db()
        self.assertEqual(self.application.status, ApplicationStatus.RESERVED)


class ManualInvoiceTests(TestCase):

    def setUp(self):
        self.admin = make_admin()
        self.tenant = make_tenant()
        self.property = occupied_property(self.tenant)
        self.service = BillingService()

    def data(self, **kwargs):
        values = dict(
            tenant_id=self.tenant.id,
            property_id=self.property.id,
            invoice_type=InvoiceType.OTHER,
            month='2026-04',
            due_date=date(2026, 4, 20),
            water_charges=Decimal('350.00'),
            electricity_charges=Decimal('1200.00'),
            notes='Utilities for April',
        )
        values.update(kwargs)
        return InvoiceDTO(**values)

    def test_total_defaults_to_charge_lines(self):
        invoice = self.service.create_invoice(self.data(), actor=self.admin)

        self.assertEqual(invoice.invoice_type, InvoiceType.OTHER)
        self.assertEqual(invoice.total_amount, Decimal('1550.00'))
        self.assertEqual(invoice.balance, Decimal('1550.00'))
        self.assertEqual(invoice.status, InvoiceStatus.UNPAID)

        entry = LedgerEntry.objects.get(reference_id=invoice.id)
        self.assertEqual(entry.entry_type, LedgerEntryType.DEBIT)
        self.assertEqual(entry.balance, Decimal('1550.00'))

        log = AuditLog.objects.get(action=AuditLog.ACTION_CREATE_INVOICE, entity_id=invoice.id)
        self.assertEqual(log.actor, self.admin)
        self.assertEqual(log.actor_type, ActorType.ADMIN)

    def test_explicit_total_wins(self):
        invoice = self.service.create_invoice(
            self.data(invoice_type=InvoiceType.RENT, rent_amount=Decimal('15000.00'),
                      total_amount=Decimal('14000.00')),
            actor=self.admin,
        )
        self.assertEqual(invoice.total_amount, Decimal('14000.00'))
        self.assertTrue(invoice.is_rent)

    def test_system_types_are_refused(self):
        for invoice_type in (InvoiceType.MONTHLY_RENT, InvoiceType.LATE_FEE, InvoiceType.BOOKING_DEPOSIT):
            with self.assertRaises(ValidationError):
                self.service.create_invoice(self.data(invoice_type=invoice_type), actor=self.admin)
        self.assertFalse(Invoice.objects.exists())

    def test_nothing_to_charge(self):
        with self.assertRaises(ValidationError) as ctx:
            self.service.create_invoice(
                self.data(water_charges=Decimal('0'), electricity_charges=Decimal('0')), actor=self.admin
            )
        self.assertEqual(ctx.exception.code, 'INVALID_AMOUNT')

    def test_bad_month(self):
        with self.assertRaises(ValidationError):
            self.service.create_invoice(self.data(month='2026-13'), actor=self.admin)

    def test_unknown_tenant(self):
        with self.assertRaises(NotFoundError):
            self.service.create_invoice(self.data(tenant_id=9999), actor=self.admin)
        self.assertFalse(LedgerEntry.objects.exists())


class ManualInvoiceEndpointTests(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.user = make_user()
        self.tenant = make_tenant(user=self.user)
        self.property = occupied_property(self.tenant)
        self.payload = {
            'tenant_id': self.tenant.id,
            'property_id': self.property.id,
            'invoice_type': 'rent',
            'month': '2026-05',
            'due_date': '2026-05-05',
            'rent_amount': '15000.00',
            'maintenance_charges': '500.00',
        }

    def test_admin_creates_invoice(self):
        self.client.force_authenticate(make_admin())
        response = self.client.post('/api/invoices/', self.payload, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['invoice_type'], InvoiceType.RENT)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('15500.00'))
        self.assertEqual(LedgerEntry.objects.filter(tenant=self.tenant).count(), 1)

    def test_tenant_cannot_create(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/invoices/', self.payload, format='json')
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Invoice.objects.exists())

    def test_invalid_input(self):
        self.client.force_authenticate(make_admin())
        response = self.client.post('/api/invoices/', dict(self.payload, month='May 2026'), format='json')
        self.assertEqual(response.status_code, 400)

    def test_unknown_property(self):
        self.client.force_authenticate(make_admin())
        response = self.client.post('/api/invoices/', dict(self.payload, property_id=9999), format='json')
        self.assertEqual(response.status_code, 404)
