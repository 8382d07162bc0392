import builtins
from decimal import Decimal
from django.db import models
from django.db.models import Q
from django.core.exceptions import PermissionDenied
from django.core.validators import MinValueValidator
from django.utils import timezone
from core.constants import (
    InvoiceType, InvoiceStatus, ReminderStage, PaymentStatus, PaymentMethod,
    PaymentPurpose, LedgerEntryType, LedgerReferenceType,
)

ZERO = Decimal('0.00')


class Invoice(models.Model):
    """
    A billable obligation.
    balance and status are recomputed from total_amount/paid_amount on every save.
    """
    TYPE_CHOICES = InvoiceType.CHOICES
    STATUS_CHOICES = InvoiceStatus.CHOICES

    invoice_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=InvoiceType.RENT)
    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.PROTECT, null=True, blank=True,
                               related_name='invoices')
    property = models.ForeignKey('properties.Property', on_delete=models.PROTECT, null=True, blank=True,
                                 related_name='invoices')
    month = models.CharField(max_length=7, help_text="Billing month, YYYY-MM")

    rent_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    maintenance_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                              validators=[MinValueValidator(0)])
    water_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    electricity_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                              validators=[MinValueValidator(0)])
    other_charges = models.DecimalField(max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])

    due_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=InvoiceStatus.UNPAID)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    late_fees_accrued = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                            validators=[MinValueValidator(0)])
    parent_invoice = models.ForeignKey('self', on_delete=models.SET_NULL, null=True, blank=True,
                                       related_name='late_fee_invoices')

    last_reminder_type = models.CharField(max_length=20, choices=ReminderStage.CHOICES, default=ReminderStage.NONE)
    last_reminder_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-due_date', '-created_at']
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'property', 'month'],
                condition=Q(invoice_type=InvoiceType.MONTHLY_RENT),
                name='unique_monthly_rent_per_period',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='invoice_tenant_status_idx'),
            models.Index(fields=['invoice_type', 'status'], name='invoice_type_status_idx'),
            models.Index(fields=['tenant', 'property', 'month'], name='invoice_period_idx'),
            models.Index(fields=['due_date', 'status'], name='invoice_due_status_idx'),
        ]

    def __str__(self):
        return f"{self.get_invoice_type_display()} {self.month} - {self.total_amount} ({self.get_status_display()})"

    def compute_balance(self):
        total = self.total_amount or ZERO
        paid = self.paid_amount or ZERO
        return max(ZERO, total - paid)

    def projected_status(self):
        """Status implied by the paid amount. Overdue survives until fully paid."""
        total = self.total_amount or ZERO
        paid = self.paid_amount or ZERO
        if paid >= total:
            return InvoiceStatus.PAID
        if self.status == InvoiceStatus.OVERDUE:
            return InvoiceStatus.OVERDUE
        if paid > 0:
            return InvoiceStatus.PARTIAL
        return InvoiceStatus.UNPAID

    def save(self, *args, **kwargs):
        """Persist balance and status projection on every write"""
        self.balance = self.compute_balance()
        self.status = self.projected_status()
        if self.status == InvoiceStatus.PAID and not self.paid_at:
            self.paid_at = timezone.now()

        update_fields = kwargs.get('update_fields')
        if update_fields is not None:
            kwargs['update_fields'] = set(update_fields) | {'balance', 'status', 'paid_at', 'updated_at'}

        super().save(*args, **kwargs)

    @builtins.property
    def outstanding_balance(self):
        """Stored balance, recomputed when a row was written without one"""
        if self.balance and self.balance > 0:
            return self.balance
        return self.compute_balance()

    @builtins.property
    def is_open(self):
        return self.status in InvoiceStatus.OPEN

    @builtins.property
    def is_rent(self):
        return self.invoice_type in InvoiceType.RENT_TYPES

    def snapshot(self):
        return {
            'status': self.status,
            'paid_amount': str(self.paid_amount),
            'balance': str(self.balance),
            'late_fees_accrued': str(self.late_fees_accrued),
        }


class Payment(models.Model):
    """An executed payment against one invoice. Approved payments are reconciliation facts."""
    STATUS_CHOICES = PaymentStatus.CHOICES
    METHOD_CHOICES = PaymentMethod.CHOICES
    PURPOSE_CHOICES = PaymentPurpose.CHOICES

    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.PROTECT, related_name='payments')
    property = models.ForeignKey('properties.Property', on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='payments')
    invoice = models.ForeignKey(Invoice, on_delete=models.PROTECT, null=True, blank=True, related_name='payments')
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    payment_date = models.DateTimeField(default=timezone.now)
    method = models.CharField(max_length=20, choices=METHOD_CHOICES, default=PaymentMethod.CASH)
    external_reference = models.CharField(max_length=255, blank=True, default='',
                                          help_text="Gateway transaction or session reference")
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES, default=PaymentPurpose.OTHER)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PaymentStatus.PENDING)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-payment_date']
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        constraints = [
            models.UniqueConstraint(
                fields=['invoice', 'external_reference'],
                condition=Q(status=PaymentStatus.APPROVED) & ~Q(external_reference=''),
                name='unique_approved_payment_reference',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'status'], name='payment_tenant_status_idx'),
            models.Index(fields=['tenant', 'property', 'purpose', 'status'], name='payment_purpose_idx'),
            models.Index(fields=['invoice', 'status'], name='payment_invoice_status_idx'),
        ]

    def __str__(self):
        return f"{self.tenant} - {self.amount_paid} ({self.get_purpose_display()}, {self.get_status_display()})"

    def snapshot(self):
        return {
            'invoice_id': self.invoice_id,
            'amount_paid': str(self.amount_paid),
            'purpose': self.purpose,
            'status': self.status,
            'external_reference': self.external_reference,
        }


class LedgerEntry(models.Model):
    """
    Append-only tenant ledger. balance is the tenant's running
    debits minus credits after this entry.
    """
    TYPE_CHOICES = LedgerEntryType.CHOICES
    REFERENCE_CHOICES = LedgerReferenceType.CHOICES

    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.PROTECT, related_name='ledger_entries')
    entry_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    description = models.CharField(max_length=255)
    reference_type = models.CharField(max_length=20, choices=REFERENCE_CHOICES)
    reference_id = models.IntegerField(null=True, blank=True)
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        indexes = [
            models.Index(fields=['tenant', 'created_at'], name='ledger_tenant_created_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='ledger_reference_idx'),
        ]

    def __str__(self):
        return f"{self.tenant} {self.entry_type} {self.amount} (balance {self.balance})"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise PermissionDenied("Ledger entries are append-only and cannot be modified.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("Ledger entries are append-only and cannot be deleted.")
