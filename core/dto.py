"""
Data Transfer Objects (DTOs).
Used for passing data between layers without exposing domain models.
"""
from dataclasses import dataclass, field
from typing import Optional, List
from decimal import Decimal
from datetime import date


@dataclass
class ApplicationDTO:
    """Data Transfer Object for a tenant's rental application"""
    property_id: int = None
    applicant_name: str = ""
    applicant_email: str = ""
    phone: str = ""
    monthly_income: Decimal = Decimal('0')
    occupation: str = ""
    occupants: int = 1
    lease_duration_months: int = 12
    preferred_move_in: date = None


@dataclass
class InvoiceDTO:
    """An invoice raised by hand from the admin console"""
    tenant_id: int = None
    property_id: int = None
    invoice_type: str = ""
    month: str = ""
    due_date: date = None
    rent_amount: Decimal = Decimal('0')
    maintenance_charges: Decimal = Decimal('0')
    water_charges: Decimal = Decimal('0')
    electricity_charges: Decimal = Decimal('0')
    other_charges: Decimal = Decimal('0')
    total_amount: Optional[Decimal] = None
    notes: str = ""

    @property
    def charges_total(self) -> Decimal:
        return (self.rent_amount + self.maintenance_charges + self.water_charges
                + self.electricity_charges + self.other_charges)


@dataclass(frozen=True)
class GatewayEvent:
    """
    A "payment succeeded" report from the payment gateway.
    Produced by the webhook and by the success-page status poll.
    """
    invoice_id: int
    tenant_id: Optional[int] = None
    purpose: Optional[str] = None
    amount_paid_minor: int = 0
    external_reference: str = ""

    @property
    def amount_paid(self) -> Decimal:
        """Amount in currency units (minor units / 100)"""
        return (Decimal(self.amount_paid_minor) / Decimal('100')).quantize(Decimal('0.01'))


@dataclass
class DepositConfirmation:
    """
    What the booking-deposit transition changed.
    application_id stays None when there was no live lease to move forward.
    """
    tenant_id: int = None
    property_id: int = None
    application_id: Optional[int] = None
    changes: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)


@dataclass
class ReconciliationResult:
    """Outcome of reconciling one gateway event"""
    invoice_id: int = None
    payment_id: Optional[int] = None
    duplicate: bool = False
    deposit: Optional[DepositConfirmation] = None
    rent_invoice_id: Optional[int] = None


@dataclass
class BatchResult:
    """Per-run counters for scheduled jobs"""
    processed: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[str] = field(default_factory=list)

    def note(self, message: str):
        self.details.append(message)
