"""
Billing repositories - data access for invoices, payments and the ledger.
"""
from decimal import Decimal
from typing import Optional
from django.db.models import QuerySet
from core.repositories import BaseRepository
from core.constants import (
    InvoiceType, InvoiceStatus, PaymentStatus, PaymentPurpose, LedgerEntryType,
)
from .models import Invoice, Payment, LedgerEntry


class InvoiceRepository(BaseRepository[Invoice]):
    """Repository for Invoice model"""

    def __init__(self):
        super().__init__(Invoice)

    def open_rent_invoice(self, tenant_id, property_id) -> Optional[Invoice]:
        """Any unpaid/partial/overdue rent invoice for tenant+property"""
        return self.model.objects.filter(
            tenant_id=tenant_id,
            property_id=property_id,
            invoice_type__in=InvoiceType.RENT_TYPES,
            status__in=InvoiceStatus.OPEN,
        ).first()

    def monthly_rent_exists(self, tenant_id, property_id, month: str) -> bool:
        return self.exists(
            tenant_id=tenant_id,
            property_id=property_id,
            month=month,
            invoice_type=InvoiceType.MONTHLY_RENT,
        )

    def open_monthly_rent(self) -> QuerySet:
        """Late-fee candidates"""
        return self.model.objects.filter(
            invoice_type=InvoiceType.MONTHLY_RENT,
            status__in=InvoiceStatus.OPEN,
        ).order_by('due_date', 'id')

    def open_rent(self) -> QuerySet:
        """Reminder candidates"""
        return self.model.objects.filter(
            invoice_type__in=InvoiceType.RENT_TYPES,
            status__in=InvoiceStatus.OPEN,
        ).select_related('tenant', 'property').order_by('due_date', 'id')

    def has_paid(self, tenant_id, property_id, invoice_types) -> bool:
        return self.exists(
            tenant_id=tenant_id,
            property_id=property_id,
            invoice_type__in=invoice_types,
            status=InvoiceStatus.PAID,
        )

    def unpaid_booking_deposit(self, tenant_id, property_id) -> Optional[Invoice]:
        return self.model.objects.filter(
            tenant_id=tenant_id,
            property_id=property_id,
            invoice_type=InvoiceType.BOOKING_DEPOSIT,
            status__in=InvoiceStatus.OPEN,
        ).order_by('-created_at').first()

    def for_tenant(self, tenant) -> QuerySet:
        return self.model.objects.filter(tenant=tenant)


class PaymentRepository(BaseRepository[Payment]):
    """Repository for Payment model"""

    def __init__(self):
        super().__init__(Payment)

    def find_reconciled(self, invoice_id, external_reference: str, amount: Decimal) -> Optional[Payment]:
        """
        Approved payment already recorded for this gateway event.
        Matched on reference when one is given, otherwise on amount.
        """
        queryset = self.model.objects.filter(invoice_id=invoice_id, status=PaymentStatus.APPROVED)
        if external_reference:
            return queryset.filter(external_reference=external_reference).first()
        return queryset.filter(amount_paid=amount).first()

    def has_approved_deposit(self, tenant_id, property_id) -> bool:
        return self.exists(
            tenant_id=tenant_id,
            property_id=property_id,
            purpose=PaymentPurpose.BOOKING_DEPOSIT,
            status=PaymentStatus.APPROVED,
        )


class LedgerRepository(BaseRepository[LedgerEntry]):
    """Append-only access to the tenant ledger"""

    def __init__(self):
        super().__init__(LedgerEntry)

    def current_balance(self, tenant_id) -> Decimal:
        last = self.model.objects.filter(tenant_id=tenant_id).order_by('-created_at', '-id').first()
        return last.balance if last else Decimal('0.00')

    def append(self, tenant_id, entry_type, amount: Decimal, description: str,
               reference_type: str, reference_id=None) -> LedgerEntry:
        """Add one entry and carry the running balance forward"""
        balance = self.current_balance(tenant_id)
        if entry_type == LedgerEntryType.DEBIT:
            balance += amount
        else:
            balance -= amount
        return self.create(
            tenant_id=tenant_id,
            entry_type=entry_type,
            amount=amount,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            balance=balance,
        )
