"""
Billing engine.

Creates deposit, rent and late-fee invoices, reconciles gateway payments
and stages rent reminders. Every invoice appends a ledger debit and every
reconciled payment appends a ledger credit.
"""
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from django.db import transaction, IntegrityError, DatabaseError
from django.utils import timezone

from audit.helpers import log_action
from audit.models import AuditLog
from core.constants import (
    ActorType, InvoiceType, InvoiceStatus, PaymentMethod, PaymentPurpose,
    PaymentStatus, PropertyStatus, ReminderStage, LedgerEntryType, LedgerReferenceType,
)
from core.dto import GatewayEvent, InvoiceDTO, ReconciliationResult, BatchResult
from core.exceptions import (
    BaseApplicationException, DataIntegrityError, DuplicateOperationError,
    ExternalDependencyError, ValidationError,
)
from core.repositories import BaseRepository
from core.services import BaseService
from notifications import sink
from notifications.catalog import Event
from properties.models import Property
from tenants.repositories import TenantRepository
from .conf import get_billing_config
from .models import Invoice
from .repositories import InvoiceRepository, PaymentRepository, LedgerRepository


MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def local_date(value) -> date:
    """Calendar date of a datetime in the project time zone"""
    if timezone.is_aware(value):
        return timezone.localtime(value).date()
    return value.date()


def format_deadline(value) -> str:
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    return value.strftime('%Y-%m-%d %H:%M')


def first_rent_due_date(today: date, due_day: int) -> date:
    """This month's due day if it has not passed yet, otherwise next month's"""
    if today.day <= due_day:
        return today.replace(day=due_day)
    if today.month == 12:
        return date(today.year + 1, 1, due_day)
    return date(today.year, today.month + 1, due_day)


PURPOSE_BY_INVOICE_TYPE = {
    InvoiceType.BOOKING_DEPOSIT: PaymentPurpose.BOOKING_DEPOSIT,
    InvoiceType.MONTHLY_RENT: PaymentPurpose.RENT,
    InvoiceType.RENT: PaymentPurpose.RENT,
    InvoiceType.LATE_FEE: PaymentPurpose.LATE_FEE,
}


class BillingService(BaseService):
    """Service for invoices, payments and the tenant ledger"""

    def __init__(self, config=None):
        super().__init__()
        self.config = config or get_billing_config()
        self.invoices = InvoiceRepository()
        self.payments = PaymentRepository()
        self.ledger = LedgerRepository()

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def _post_invoice(self, invoice: Invoice, actor=None, actor_type=ActorType.SYSTEM, description='', request=None):
        """Ledger debit and audit row for a freshly created invoice"""
        self.ledger.append(
            tenant_id=invoice.tenant_id,
            entry_type=LedgerEntryType.DEBIT,
            amount=invoice.total_amount,
            description=f"{invoice.get_invoice_type_display()} invoice for {invoice.month}",
            reference_type=LedgerReferenceType.INVOICE,
            reference_id=invoice.id,
        )
        log_action(
            actor=actor,
            actor_type=actor_type,
            action=AuditLog.ACTION_CREATE_INVOICE,
            entity=AuditLog.ENTITY_INVOICE,
            entity_id=invoice.id,
            after={
                'invoice_type': invoice.invoice_type,
                'month': invoice.month,
                'total_amount': str(invoice.total_amount),
                'due_date': invoice.due_date.isoformat(),
                **invoice.snapshot(),
            },
            description=description,
            request=request,
            metadata={'tenant_id': invoice.tenant_id, 'property_id': invoice.property_id},
        )

    def create_booking_deposit_invoice(self, application, property: Property, now=None, actor=None) -> Invoice:
        """
        Invoice the booking deposit for an approved application.
        Due date is the end of the deposit window.
        """
        now = now or timezone.now()
        if application.tenant_id is None:
            raise DataIntegrityError(
                message=f"Application {application.id} has no tenant to invoice",
                code="MISSING_TENANT"
            )

        amount = property.effective_booking_deposit(self.config.min_booking_deposit_fraction)
        deadline = now + timedelta(hours=self.config.deposit_window_hours)

        invoice = self.invoices.create(
            invoice_type=InvoiceType.BOOKING_DEPOSIT,
            tenant_id=application.tenant_id,
            property=property,
            month=month_key(local_date(now)),
            other_charges=amount,
            total_amount=amount,
            due_date=local_date(deadline),
            status=InvoiceStatus.UNPAID,
            notes=f"Booking deposit for application #{application.id}",
        )
        self._post_invoice(invoice, actor=actor, actor_type=ActorType.ADMIN,
                           description=f"Booking deposit for application #{application.id}")

        self.log_info("Booking deposit invoice created", invoice_id=invoice.id,
                      application_id=application.id, amount=str(amount))

        sink.notify_on_commit(
            Event.BOOKING_DEPOSIT_REQUIRED,
            tenant=application.tenant,
            context={
                'tenant_name': application.tenant.full_name,
                'property_name': property.name,
                'amount': amount,
                'deadline': format_deadline(deadline),
            },
            metadata={'invoice_id': invoice.id, 'application_id': application.id},
        )
        return invoice

    def create_first_rent_invoice(self, tenant, property: Property, today=None, actor_type=ActorType.SYSTEM) -> Optional[Invoice]:
        """
        First monthly_rent invoice after the booking deposit.

        Raises:
            DuplicateOperationError: an open rent invoice (or the same month's) already exists

        Returns None when the property carries no monthly charges.
        """
        today = today or timezone.localdate()

        existing = self.invoices.open_rent_invoice(tenant.id, property.id)
        if existing:
            raise DuplicateOperationError(
                message="An open rent invoice already exists",
                code="RENT_INVOICE_EXISTS",
                details={'invoice_id': existing.id}
            )

        total = property.monthly_charges
        if total <= 0:
            self.log_warning("No monthly charges, first rent invoice skipped", property_id=property.id)
            return None

        due_date = first_rent_due_date(today, self.config.rent_due_day)
        try:
            with transaction.atomic():
                invoice = self.invoices.create(
                    invoice_type=InvoiceType.MONTHLY_RENT,
                    tenant=tenant,
                    property=property,
                    month=month_key(due_date),
                    rent_amount=property.rent,
                    maintenance_charges=property.maintenance_fee,
                    total_amount=total,
                    due_date=due_date,
                    status=InvoiceStatus.UNPAID,
                    notes="First month rent after booking deposit",
                )
                self._post_invoice(invoice, actor_type=actor_type,
                                   description="First month rent after booking deposit")
        except IntegrityError:
            raise DuplicateOperationError(
                message=f"Rent invoice for {month_key(due_date)} already exists",
                code="RENT_INVOICE_EXISTS"
            )

        self.log_info("First rent invoice created", invoice_id=invoice.id, tenant_id=tenant.id,
                      due_date=due_date.isoformat())
        return invoice

    @transaction.atomic
    def create_invoice(self, data: InvoiceDTO, actor=None, request=None) -> Invoice:
        """
        Raise a rent or other invoice by hand and post it to the tenant's ledger.

        The total defaults to the sum of the charge lines.

        Raises:
            NotFoundError: unknown tenant or property
            ValidationError: wrong type, malformed month, or nothing to charge
        """
        if data.invoice_type not in InvoiceType.MANUAL_TYPES:
            raise ValidationError(
                message=f"Invoice type must be one of {', '.join(InvoiceType.MANUAL_TYPES)}",
                code="INVALID_INVOICE_TYPE"
            )
        if not MONTH_PATTERN.match(data.month or ''):
            raise ValidationError(message="Month must look like YYYY-MM", code="INVALID_MONTH")
        if data.due_date is None:
            raise ValidationError(message="Due date is required", code="DUE_DATE_REQUIRED")

        total = data.total_amount if data.total_amount is not None else data.charges_total
        if total <= 0:
            raise ValidationError(message="Invoice total must be greater than zero", code="INVALID_AMOUNT")

        tenant = TenantRepository().get_or_raise(data.tenant_id)
        prop = BaseRepository(Property).get_or_raise(data.property_id)

        invoice = self.invoices.create(
            invoice_type=data.invoice_type,
            tenant=tenant,
            property=prop,
            month=data.month,
            rent_amount=data.rent_amount,
            maintenance_charges=data.maintenance_charges,
            water_charges=data.water_charges,
            electricity_charges=data.electricity_charges,
            other_charges=data.other_charges,
            total_amount=total,
            due_date=data.due_date,
            status=InvoiceStatus.UNPAID,
            notes=data.notes,
        )
        self._post_invoice(invoice, actor=actor, actor_type=ActorType.ADMIN, request=request,
                           description=data.notes or f"Invoice for {data.month} raised by admin")

        self.log_info("Manual invoice created", invoice_id=invoice.id, tenant_id=tenant.id,
                      invoice_type=data.invoice_type, total=str(total))
        return invoice

    def generate_monthly_invoices(self, today=None, dry_run=False) -> BatchResult:
        """
        One monthly_rent invoice per occupied property for the current month.
        Runs only on the 1st of the month.
        """
        today = today or timezone.localdate()
        result = BatchResult()
        if today.day != 1:
            result.note(f"{today.isoformat()} is not the first of the month, nothing to do")
            return result

        month = month_key(today)
        due_date = today.replace(day=self.config.rent_due_day)
        properties = Property.objects.filter(
            status=PropertyStatus.OCCUPIED,
            tenant__isnull=False,
            rent__gt=0,
        ).select_related('tenant').order_by('id')

        for prop in properties:
            result.processed += 1
            tenant = prop.tenant
            if self.invoices.monthly_rent_exists(tenant.id, prop.id, month):
                result.skipped += 1
                result.note(f"{prop.name}: invoice for {month} already exists")
                continue

            total = prop.monthly_charges
            if dry_run:
                result.created += 1
                result.note(f"{prop.name}: would invoice {tenant.full_name} {total}")
                continue

            try:
                with transaction.atomic():
                    invoice = self.invoices.create(
                        invoice_type=InvoiceType.MONTHLY_RENT,
                        tenant=tenant,
                        property=prop,
                        month=month,
                        rent_amount=prop.rent,
                        maintenance_charges=prop.maintenance_fee,
                        total_amount=total,
                        due_date=due_date,
                        status=InvoiceStatus.UNPAID,
                        notes=f"Auto-generated rent for {month}",
                    )
                    self._post_invoice(invoice, description=f"Monthly rent for {month}")
            except IntegrityError:
                result.skipped += 1
                result.note(f"{prop.name}: invoice for {month} already exists")
                continue
            except (DatabaseError, BaseApplicationException) as e:
                result.failed += 1
                result.note(f"{prop.name}: failed ({e})")
                self.log_error("Monthly invoice failed", error=e, property_id=prop.id)
                continue

            result.created += 1
            result.note(f"{prop.name}: invoiced {tenant.full_name} {total}")

        self.log_info("Monthly invoices generated", month=month, created=result.created,
                      skipped=result.skipped, failed=result.failed)
        return result

    # ------------------------------------------------------------------
    # Late fees
    # ------------------------------------------------------------------

    def late_fee_target(self, due_date: date, today: date) -> Decimal:
        """Cumulative late fee owed on an invoice as of today"""
        days_late = (today - due_date).days
        if days_late <= self.config.grace_period_days:
            return Decimal('0.00')
        chargeable_days = days_late - self.config.grace_period_days
        return (self.config.fee_per_day * chargeable_days).quantize(Decimal('0.01'))

    def apply_late_fees(self, today=None) -> BatchResult:
        """
        Accrue late fees on open monthly_rent invoices past the grace period.
        Each accrual increment becomes its own late_fee invoice.
        """
        today = today or timezone.localdate()
        result = BatchResult()

        invoice_ids = list(self.invoices.open_monthly_rent().filter(due_date__lt=today).values_list('id', flat=True))
        for invoice_id in invoice_ids:
            result.processed += 1
            try:
                fee_invoice = self._accrue_late_fee(invoice_id, today)
            except DataIntegrityError as e:
                result.failed += 1
                result.note(f"Invoice #{invoice_id}: {e.message}")
                self.log_error("Late fee skipped", error=e, invoice_id=invoice_id)
                continue
            except DatabaseError as e:
                result.failed += 1
                result.note(f"Invoice #{invoice_id}: failed ({e})")
                self.log_error("Late fee failed", error=e, invoice_id=invoice_id)
                continue

            if fee_invoice is None:
                result.skipped += 1
            else:
                result.created += 1
                result.note(f"Invoice #{invoice_id}: late fee {fee_invoice.total_amount}")

        self.log_info("Late fees applied", date=today.isoformat(), created=result.created,
                      skipped=result.skipped, failed=result.failed)
        return result

    @transaction.atomic
    def _accrue_late_fee(self, invoice_id, today) -> Optional[Invoice]:
        invoice = self.invoices.get_for_update(invoice_id)
        if invoice.status not in InvoiceStatus.OPEN:
            return None

        additional = self.late_fee_target(invoice.due_date, today) - invoice.late_fees_accrued
        if additional <= 0:
            return None
        if invoice.tenant_id is None or invoice.property_id is None:
            raise DataIntegrityError(
                message="Rent invoice has no tenant or property",
                code="MISSING_LINKAGE",
                details={'invoice_id': invoice.id}
            )

        fee_invoice = self.invoices.create(
            invoice_type=InvoiceType.LATE_FEE,
            tenant_id=invoice.tenant_id,
            property_id=invoice.property_id,
            month=invoice.month,
            other_charges=additional,
            total_amount=additional,
            due_date=today,
            status=InvoiceStatus.UNPAID,
            parent_invoice=invoice,
            notes=f"Late fee for {invoice.month} rent",
        )

        before = invoice.snapshot()
        invoice.late_fees_accrued += additional
        invoice.status = InvoiceStatus.OVERDUE
        invoice.save()

        self.ledger.append(
            tenant_id=fee_invoice.tenant_id,
            entry_type=LedgerEntryType.DEBIT,
            amount=additional,
            description=f"Late fee for {invoice.month}",
            reference_type=LedgerReferenceType.INVOICE,
            reference_id=fee_invoice.id,
        )
        log_action(
            actor=None,
            actor_type=ActorType.SYSTEM,
            action=AuditLog.ACTION_APPLY_LATE_FEE,
            entity=AuditLog.ENTITY_INVOICE,
            entity_id=invoice.id,
            before=before,
            after=invoice.snapshot(),
            description=f"Late fee {additional} accrued",
            metadata={'late_fee_invoice_id': fee_invoice.id},
        )
        return fee_invoice

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def reminder_stage(self, due_date: date, today: date) -> Optional[str]:
        """
        Escalation stage for an open rent invoice, or None.
        Exact stages fire only on their day; escalating stages hold until the next one.
        """
        offset = (today - due_date).days
        schedule = self.config.reminder_stage_schedule

        for stage in ReminderStage.EXACT:
            if stage in schedule and offset == schedule[stage]:
                return stage

        escalating = sorted(
            ((schedule[stage], stage) for stage in ReminderStage.ESCALATING if stage in schedule),
            reverse=True,
        )
        for start, stage in escalating:
            if offset >= start:
                return stage
        return None

    def send_rent_reminders(self, today=None, now=None) -> BatchResult:
        """Send at most one notification per stage per invoice"""
        now = now or timezone.now()
        today = today or local_date(now)
        result = BatchResult()

        for invoice in self.invoices.open_rent():
            result.processed += 1
            stage = self.reminder_stage(invoice.due_date, today)
            if stage is None or invoice.last_reminder_type == stage:
                result.skipped += 1
                continue

            if invoice.tenant is None or invoice.property is None:
                error = DataIntegrityError(
                    message="Rent invoice has no tenant or property",
                    code="MISSING_LINKAGE",
                    details={'invoice_id': invoice.id}
                )
                result.failed += 1
                result.note(f"Invoice #{invoice.id}: {error.message}")
                self.log_error("Reminder skipped", error=error, invoice_id=invoice.id)
                continue

            try:
                sink.send(
                    stage,
                    tenant=invoice.tenant,
                    context={
                        'tenant_name': invoice.tenant.full_name,
                        'property_name': invoice.property.name,
                        'month': invoice.month,
                        'amount_due': invoice.outstanding_balance,
                        'due_date': invoice.due_date.isoformat(),
                        'days_late': max(0, (today - invoice.due_date).days),
                    },
                    metadata={'invoice_id': invoice.id, 'stage': stage},
                )
            except ExternalDependencyError as e:
                result.failed += 1
                result.note(f"Invoice #{invoice.id}: {stage} not delivered")
                self.log_error("Reminder delivery failed", error=e, invoice_id=invoice.id, stage=stage)
                continue

            invoice.last_reminder_type = stage
            invoice.last_reminder_at = now
            invoice.save(update_fields=['last_reminder_type', 'last_reminder_at'])
            result.created += 1
            result.note(f"Invoice #{invoice.id}: sent {stage}")

        self.log_info("Rent reminders sent", date=today.isoformat(), sent=result.created,
                      skipped=result.skipped, failed=result.failed)
        return result

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def reconcile_payment(self, event: GatewayEvent, source='webhook', now=None, request=None) -> ReconciliationResult:
        """
        Record a gateway "paid" event exactly once.

        The webhook and the success-page poll both end here. The invoice row
        is locked for the whole unit; a concurrent duplicate that gets past
        the lookup hits the payment unique constraint instead.

        Raises:
            NotFoundError: unknown invoice
            DuplicateOperationError: the event was already reconciled
        """
        now = now or timezone.now()
        try:
            with transaction.atomic():
                return self._reconcile(event, source, now, request)
        except IntegrityError as e:
            self.log_warning("Concurrent duplicate payment rejected", invoice_id=event.invoice_id,
                             reference=event.external_reference, error=str(e))
            raise DuplicateOperationError(
                message="Payment already recorded",
                code="PAYMENT_ALREADY_RECORDED",
                details={'invoice_id': event.invoice_id}
            )

    def _reconcile(self, event, source, now, request):
        invoice = self.invoices.get_for_update(event.invoice_id)

        if event.tenant_id and invoice.tenant_id and event.tenant_id != invoice.tenant_id:
            raise ValidationError(
                message="Payment tenant does not match the invoice",
                code="TENANT_MISMATCH",
                details={'invoice_id': invoice.id}
            )

        amount = event.amount_paid if event.amount_paid_minor > 0 else invoice.outstanding_balance
        existing = self.payments.find_reconciled(invoice.id, event.external_reference, amount)
        if existing:
            raise DuplicateOperationError(
                message="Payment already recorded",
                code="PAYMENT_ALREADY_RECORDED",
                details={'invoice_id': invoice.id, 'payment_id': existing.id}
            )
        if invoice.status == InvoiceStatus.PAID:
            self.log_warning("Payment event for a settled invoice ignored", invoice_id=invoice.id,
                             reference=event.external_reference)
            raise DuplicateOperationError(
                message="Invoice already paid",
                code="INVOICE_ALREADY_PAID",
                details={'invoice_id': invoice.id}
            )
        if invoice.tenant_id is None:
            raise DataIntegrityError(
                message="Invoice has no tenant",
                code="MISSING_TENANT",
                details={'invoice_id': invoice.id}
            )

        before = invoice.snapshot()
        invoice.paid_amount = invoice.total_amount
        invoice.paid_at = now
        invoice.save()

        payment = self.payments.create(
            tenant_id=invoice.tenant_id,
            property_id=invoice.property_id,
            invoice=invoice,
            amount_paid=amount,
            payment_date=now,
            method=PaymentMethod.GATEWAY,
            external_reference=event.external_reference,
            purpose=event.purpose if event.purpose in dict(PaymentPurpose.CHOICES)
            else PURPOSE_BY_INVOICE_TYPE.get(invoice.invoice_type, PaymentPurpose.OTHER),
            status=PaymentStatus.APPROVED,
            notes=f"Confirmed via {source}",
        )
        self.ledger.append(
            tenant_id=invoice.tenant_id,
            entry_type=LedgerEntryType.CREDIT,
            amount=amount,
            description=f"Payment for {invoice.get_invoice_type_display()} {invoice.month}",
            reference_type=LedgerReferenceType.PAYMENT,
            reference_id=payment.id,
        )

        result = ReconciliationResult(invoice_id=invoice.id, payment_id=payment.id)

        if invoice.invoice_type == InvoiceType.BOOKING_DEPOSIT and invoice.property_id:
            from applications.services import LeaseService
            result.deposit = LeaseService(config=self.config).confirm_booking_deposit(
                invoice.tenant_id, invoice.property_id, actor_type=ActorType.SYSTEM, source=source
            )
        if result.deposit and result.deposit.application_id:
            try:
                rent_invoice = self.create_first_rent_invoice(invoice.tenant, invoice.property, today=local_date(now))
                result.rent_invoice_id = rent_invoice.id if rent_invoice else None
            except DuplicateOperationError as e:
                self.log_info("First rent invoice already present", invoice_id=invoice.id, detail=e.message)

        log_action(
            actor=None,
            actor_type=ActorType.SYSTEM,
            action=AuditLog.ACTION_RECORD_PAYMENT,
            entity=AuditLog.ENTITY_INVOICE,
            entity_id=invoice.id,
            before=before,
            after=invoice.snapshot(),
            description=f"Payment {amount} confirmed via {source}",
            request=request,
            metadata={'payment_id': payment.id, 'external_reference': event.external_reference},
        )

        sink.notify_on_commit(
            Event.PAYMENT_CONFIRMED,
            tenant=invoice.tenant,
            context={
                'tenant_name': invoice.tenant.full_name,
                'property_name': invoice.property.name if invoice.property else '',
                'amount': amount,
                'invoice_type': invoice.get_invoice_type_display(),
            },
            metadata={'invoice_id': invoice.id, 'payment_id': payment.id},
        )

        self.log_info("Payment reconciled", invoice_id=invoice.id, payment_id=payment.id, source=source)
        return result
