from datetime import date
from decimal import Decimal
from io import StringIO
from unittest import mock

from apscheduler.schedulers.background import BackgroundScheduler
from django.apps import apps
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from applications.models import Application
from applications.services import LeaseService
from billing.models import Invoice
from core.constants import ApplicationStatus, InvoiceType
from core.testing import T0, make_admin, make_application, make_property, make_tenant, occupied_property
from .logging_config import get_request_id
from .scheduler import JOBS, build_scheduler, run_command_job


def run(command, *args):
    out = StringIO()
    call_command(command, *args, stdout=out)
    return out.getvalue()


class GenerateMonthlyInvoicesCommandTests(TestCase):

    def setUp(self):
        self.tenant = make_tenant()
        occupied_property(self.tenant)

    def test_dry_run_creates_nothing(self):
        output = run('generate_monthly_invoices', '--date', '2026-05-01', '--dry-run')
        self.assertIn('Created (dry run): 1', output)
        self.assertFalse(Invoice.objects.exists())

    def test_creates_invoices_on_the_first(self):
        output = run('generate_monthly_invoices', '--date', '2026-05-01')
        self.assertIn('Created: 1', output)
        invoice = Invoice.objects.get()
        self.assertEqual(invoice.month, '2026-05')
        self.assertEqual(invoice.due_date, date(2026, 5, 5))

    def test_other_days_do_nothing(self):
        output = run('generate_monthly_invoices', '--date', '2026-05-02')
        self.assertIn('not the first of the month', output)
        self.assertFalse(Invoice.objects.exists())

    def test_bad_date(self):
        with self.assertRaises(CommandError):
            run('generate_monthly_invoices', '--date', '05/01/2026')


class ApplyLateFeesCommandTests(TestCase):

    def test_creates_late_fee_invoice(self):
        tenant = make_tenant()
        prop = occupied_property(tenant)
        Invoice.objects.create(
            invoice_type=InvoiceType.MONTHLY_RENT, tenant=tenant, property=prop, month='2026-04',
            rent_amount=prop.rent, maintenance_charges=prop.maintenance_fee,
            total_amount=Decimal('15500.00'), due_date=date(2026, 4, 5),
        )
        output = run('apply_late_fees', '--date', '2026-04-10')
        self.assertIn('Late fee invoices: 1', output)
        fee = Invoice.objects.get(invoice_type=InvoiceType.LATE_FEE)
        self.assertEqual(fee.total_amount, Decimal('200.00'))


class FixLeaseStateCommandTests(TestCase):

    def setUp(self):
        application = LeaseService().decide(make_application(make_property()).id, 'approve',
                                            actor=make_admin(), now=T0)
        self.application_id = application.id
        deposit = Invoice.objects.get(invoice_type=InvoiceType.BOOKING_DEPOSIT)
        deposit.paid_amount = deposit.total_amount
        deposit.save()

    def status(self):
        return Application.objects.get(id=self.application_id).status

    def test_dry_run_rolls_back(self):
        output = run('fix_lease_state', '--date', '2026-03-11', '--dry-run')
        self.assertIn('DRY RUN', output)
        self.assertEqual(self.status(), ApplicationStatus.APPROVED)
        self.assertFalse(Invoice.objects.filter(invoice_type=InvoiceType.MONTHLY_RENT).exists())

    def test_repairs_state(self):
        output = run('fix_lease_state', '--date', '2026-03-11')
        self.assertIn('Fixed: 1', output)
        self.assertEqual(self.status(), ApplicationStatus.RESERVED)


class SchedulerTests(TestCase):

    def test_registers_every_sweep(self):
        scheduler = build_scheduler(BackgroundScheduler)
        self.assertEqual({job.id for job in scheduler.get_jobs()}, {command for command, _, _ in JOBS})
        self.assertEqual(len(scheduler.get_jobs()), 5)

    def test_job_failures_are_logged(self):
        with mock.patch('common.scheduler.call_command', side_effect=RuntimeError('boom')):
            with self.assertLogs('common.scheduler', level='ERROR') as logs:
                run_command_job('apply_late_fees')
        self.assertIn('apply_late_fees', logs.output[0])
        self.assertIsNone(get_request_id())

    def test_list_jobs(self):
        output = run('run_scheduler', '--list')
        for command, _, _ in JOBS:
            self.assertIn(command, output)


class ModelRegistryTests(TestCase):

    def test_all_project_models_are_registered(self):
        labels = {model._meta.label for model in apps.get_models()}
        for label in ('users.User', 'properties.Property', 'tenants.Tenant', 'applications.Application',
                      'billing.Invoice', 'billing.Payment', 'billing.LedgerEntry',
                      'notifications.Notification', 'audit.AuditLog'):
            self.assertIn(label, labels)

    def test_computed_attributes_next_to_property_foreign_keys(self):
        tenant = make_tenant()
        prop = occupied_property(tenant)
        self.assertEqual(tenant.full_name, 'Asha Rao')
        self.assertEqual(tenant.property, prop)

        application = make_application(make_property(name='Hilltop 1BHK'))
        self.assertTrue(application.is_open)

        invoice = Invoice.objects.create(
            invoice_type=InvoiceType.RENT, tenant=tenant, property=prop, month='2026-04',
            total_amount=Decimal('100.00'), due_date=date(2026, 4, 5),
        )
        self.assertTrue(invoice.is_open)
        self.assertTrue(invoice.is_rent)
        self.assertEqual(invoice.outstanding_balance, Decimal('100.00'))
        self.assertEqual(invoice.property, prop)
