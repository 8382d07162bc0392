"""
Built-in notification texts.

Each event key maps to a subject and a body written in Django template
syntax. A NotificationTemplate row with the same key overrides both.
"""
from django.template import Template, Context

from notifications.models import Notification, NotificationTemplate


class Event:
    # Rent reminder stages
    FRIENDLY = 'friendly'
    DUE_TODAY = 'due_today'
    OVERDUE_1 = 'overdue_1'
    WARNING_7 = 'warning_7'
    ALERT_15 = 'alert_15'
    DEFAULT_30 = 'default_30'

    # Lease lifecycle
    BOOKING_DEPOSIT_REQUIRED = 'booking_deposit_required'
    BOOKING_DEPOSIT_EXPIRING = 'booking_deposit_expiring'
    BOOKING_DEPOSIT_EXPIRED = 'booking_deposit_expired'
    APPLICATION_SUBMITTED = 'application_submitted'
    APPLICATION_REJECTED = 'application_rejected'
    APPLICATION_CANCELLED_BY_ADMIN = 'application_cancelled_by_admin'
    PAYMENT_CONFIRMED = 'payment_confirmed'


DEFAULT_TEMPLATES = {
    Event.FRIENDLY: (
        "Upcoming rent: {{ month }}",
        "Hi {{ tenant_name }}, your rent of {{ amount_due }} for {{ property_name }} "
        "is due on {{ due_date }}. Paying on time avoids late fees.",
    ),
    Event.DUE_TODAY: (
        "Rent due today: {{ month }}",
        "Hi {{ tenant_name }}, your rent of {{ amount_due }} for {{ property_name }} is due today.",
    ),
    Event.OVERDUE_1: (
        "Rent overdue: {{ month }}",
        "Hi {{ tenant_name }}, your rent of {{ amount_due }} for {{ property_name }} was due on "
        "{{ due_date }} and is now overdue. Late fees apply after the grace period.",
    ),
    Event.WARNING_7: (
        "Payment warning: rent {{ days_late }} days overdue",
        "Hi {{ tenant_name }}, your rent for {{ property_name }} ({{ month }}) is {{ days_late }} days "
        "overdue. Outstanding balance: {{ amount_due }}. Please pay immediately.",
    ),
    Event.ALERT_15: (
        "Urgent: rent {{ days_late }} days overdue",
        "Hi {{ tenant_name }}, your rent for {{ property_name }} ({{ month }}) is {{ days_late }} days "
        "overdue. Outstanding balance: {{ amount_due }}. Continued non-payment may affect your lease.",
    ),
    Event.DEFAULT_30: (
        "Final notice: rent {{ days_late }} days overdue",
        "Hi {{ tenant_name }}, your rent for {{ property_name }} ({{ month }}) has been unpaid for "
        "{{ days_late }} days. Outstanding balance: {{ amount_due }}. This is a default notice.",
    ),
    Event.BOOKING_DEPOSIT_REQUIRED: (
        "Application approved: booking deposit required",
        "Hi {{ tenant_name }}, your application for {{ property_name }} was approved. "
        "Pay the booking deposit of {{ amount }} before {{ deadline }} to reserve the property.",
    ),
    Event.BOOKING_DEPOSIT_EXPIRING: (
        "Booking deposit deadline approaching",
        "Hi {{ applicant_name }}, your reservation of {{ property_name }} expires on {{ deadline }}. "
        "Pay the booking deposit of {{ amount }} to keep it.",
    ),
    Event.BOOKING_DEPOSIT_EXPIRED: (
        "Application expired",
        "Hi {{ applicant_name }}, your application for {{ property_name }} expired because the "
        "booking deposit was not received in time.",
    ),
    Event.APPLICATION_SUBMITTED: (
        "New application: {{ property_name }}",
        "{{ applicant_name }} ({{ applicant_email }}) applied for {{ property_name }}.",
    ),
    Event.APPLICATION_REJECTED: (
        "Application update: {{ property_name }}",
        "Hi {{ applicant_name }}, your application for {{ property_name }} was not approved."
        "{% if comments %} Comments: {{ comments }}{% endif %}",
    ),
    Event.APPLICATION_CANCELLED_BY_ADMIN: (
        "Application cancelled: {{ property_name }}",
        "Hi {{ applicant_name }}, your application for {{ property_name }} was cancelled by the "
        "property manager.{% if reason %} Reason: {{ reason }}{% endif %}",
    ),
    Event.PAYMENT_CONFIRMED: (
        "Payment received",
        "Hi {{ tenant_name }}, we received your payment of {{ amount }} for {{ property_name }} "
        "({{ invoice_type }}). Thank you.",
    ),
}

ADMIN_EVENTS = {Event.APPLICATION_SUBMITTED}


def audience_for(event):
    """Admin or tenant notification stream"""
    if event in ADMIN_EVENTS:
        return Notification.USER_TYPE_ADMIN
    return Notification.USER_TYPE_TENANT


def render(event, context):
    """Return (subject, body) for an event, preferring an active database override"""
    override = NotificationTemplate.objects.filter(key=event, is_active=True).first()
    if override:
        subject, body = override.subject, override.body
    else:
        try:
            subject, body = DEFAULT_TEMPLATES[event]
        except KeyError:
            raise ValueError(f"Unknown notification event: {event}")

    ctx = Context(context or {}, autoescape=False)
    return Template(subject).render(ctx).strip(), Template(body).render(ctx).strip()
