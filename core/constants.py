"""
Application-wide constants.
Centralized status vocabularies for the lease and billing lifecycle.
"""

# User Roles
class UserRole:
    ADMIN = 'ADMIN'
    TENANT = 'TENANT'

    CHOICES = [
        (ADMIN, 'Admin'),
        (TENANT, 'Tenant'),
    ]


# Property Status
class PropertyStatus:
    AVAILABLE = 'available'
    RESERVED = 'reserved'
    OCCUPIED = 'occupied'
    MAINTENANCE = 'maintenance'

    CHOICES = [
        (AVAILABLE, 'Available'),
        (RESERVED, 'Reserved'),
        (OCCUPIED, 'Occupied'),
        (MAINTENANCE, 'Maintenance'),
    ]


# Tenant Status
class TenantStatus:
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    SUSPENDED = 'suspended'

    CHOICES = [
        (ACTIVE, 'Active'),
        (INACTIVE, 'Inactive'),
        (SUSPENDED, 'Suspended'),
    ]


# Application Status
class ApplicationStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    RESERVED = 'reserved'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'
    WITHDRAWN = 'withdrawn'

    CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (RESERVED, 'Reserved'),
        (REJECTED, 'Rejected'),
        (CANCELLED, 'Cancelled'),
        (EXPIRED, 'Expired'),
        (WITHDRAWN, 'Withdrawn'),
    ]

    OPEN = [PENDING, APPROVED]
    TERMINAL = [RESERVED, REJECTED, CANCELLED, EXPIRED, WITHDRAWN]


class Decision:
    APPROVE = 'approve'
    REJECT = 'reject'

    CHOICES = [
        (APPROVE, 'Approve'),
        (REJECT, 'Reject'),
    ]


# Invoice Types
class InvoiceType:
    RENT = 'rent'
    MONTHLY_RENT = 'monthly_rent'
    BOOKING_DEPOSIT = 'booking_deposit'
    LATE_FEE = 'late_fee'
    OTHER = 'other'

    CHOICES = [
        (RENT, 'Rent'),
        (MONTHLY_RENT, 'Monthly Rent'),
        (BOOKING_DEPOSIT, 'Booking Deposit'),
        (LATE_FEE, 'Late Fee'),
        (OTHER, 'Other'),
    ]

    RENT_TYPES = [MONTHLY_RENT, RENT]
    # Raised by hand from the admin console; the rest come from the billing jobs
    MANUAL_TYPES = [RENT, OTHER]


# Invoice Status
class InvoiceStatus:
    UNPAID = 'unpaid'
    PARTIAL = 'partial'
    PAID = 'paid'
    OVERDUE = 'overdue'

    CHOICES = [
        (UNPAID, 'Unpaid'),
        (PARTIAL, 'Partial'),
        (PAID, 'Paid'),
        (OVERDUE, 'Overdue'),
    ]

    OPEN = [UNPAID, PARTIAL, OVERDUE]


# Reminder escalation stages. NONE marks an invoice that has not been reminded yet.
class ReminderStage:
    NONE = 'none'
    FRIENDLY = 'friendly'
    DUE_TODAY = 'due_today'
    OVERDUE_1 = 'overdue_1'
    WARNING_7 = 'warning_7'
    ALERT_15 = 'alert_15'
    DEFAULT_30 = 'default_30'

    CHOICES = [
        (NONE, 'None'),
        (FRIENDLY, 'Friendly reminder'),
        (DUE_TODAY, 'Due today'),
        (OVERDUE_1, 'Overdue (1 day)'),
        (WARNING_7, 'Warning (7 days)'),
        (ALERT_15, 'Alert (15 days)'),
        (DEFAULT_30, 'Default notice (30 days)'),
    ]

    # Fire only on the exact day offset
    EXACT = [FRIENDLY, DUE_TODAY, OVERDUE_1]
    # Fire from the offset onwards until the next escalation takes over
    ESCALATING = [WARNING_7, ALERT_15, DEFAULT_30]


# Payments
class PaymentStatus:
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    CHOICES = [
        (PENDING, 'Pending'),
        (APPROVED, 'Approved'),
        (REJECTED, 'Rejected'),
    ]


class PaymentMethod:
    CASH = 'cash'
    CHECK = 'check'
    BANK_TRANSFER = 'bank_transfer'
    UPI = 'upi'
    CARD = 'card'
    GATEWAY = 'gateway'

    CHOICES = [
        (CASH, 'Cash'),
        (CHECK, 'Check'),
        (BANK_TRANSFER, 'Bank Transfer'),
        (UPI, 'UPI'),
        (CARD, 'Card'),
        (GATEWAY, 'Payment Gateway'),
    ]


class PaymentPurpose:
    BOOKING_DEPOSIT = 'booking_deposit'
    RENT = 'rent'
    LATE_FEE = 'late_fee'
    OTHER = 'other'

    CHOICES = [
        (BOOKING_DEPOSIT, 'Booking Deposit'),
        (RENT, 'Rent'),
        (LATE_FEE, 'Late Fee'),
        (OTHER, 'Other'),
    ]


# Ledger
class LedgerEntryType:
    DEBIT = 'debit'
    CREDIT = 'credit'

    CHOICES = [
        (DEBIT, 'Debit'),
        (CREDIT, 'Credit'),
    ]


class LedgerReferenceType:
    INVOICE = 'invoice'
    PAYMENT = 'payment'
    ADJUSTMENT = 'adjustment'
    REFUND = 'refund'

    CHOICES = [
        (INVOICE, 'Invoice'),
        (PAYMENT, 'Payment'),
        (ADJUSTMENT, 'Adjustment'),
        (REFUND, 'Refund'),
    ]


# Who triggered a state change
class ActorType:
    ADMIN = 'admin'
    TENANT = 'tenant'
    APPLICANT = 'applicant'
    SYSTEM = 'system'

    CHOICES = [
        (ADMIN, 'Admin'),
        (TENANT, 'Tenant'),
        (APPLICANT, 'Applicant'),
        (SYSTEM, 'System'),
    ]


# Default Limits
class DefaultLimits:
    MAX_PENDING_APPLICATIONS = 3
    MIN_INCOME_RENT_MULTIPLE = 3
    RENT_DUE_DAY = 5
