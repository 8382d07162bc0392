"""
Notification sink.

send() persists the in-app Notification and hands the email to Django's
mail backend. Delivery problems raise ExternalDependencyError.

notify() and notify_on_commit() are the best-effort variants used by the
billing and lease services: failures are logged and never reach the
caller's transaction.
"""
import logging
import smtplib
from functools import partial

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction, DatabaseError

from core.constants import UserRole
from core.exceptions import ExternalDependencyError
from notifications import catalog
from notifications.models import Notification

logger = logging.getLogger(__name__)


def admin_recipients():
    """Email addresses of active admin users"""
    from users.models import User
    return list(
        User.objects.filter(role=UserRole.ADMIN, is_active=True)
        .exclude(email='')
        .values_list('email', flat=True)
    )


def send(event, tenant=None, email=None, context=None, metadata=None):
    """
    Deliver one event.

    Args:
        event: catalog.Event key
        tenant: Tenant receiving the message (None for admin events)
        email: Override recipient address (applicants without a tenant account)
        context: Template variables
        metadata: Stored on the Notification row

    Returns:
        Notification instance

    Raises:
        ExternalDependencyError: the row could not be stored or the email failed
    """
    user_type = catalog.audience_for(event)
    try:
        title, message = catalog.render(event, context)
    except ValueError as e:
        raise ExternalDependencyError(message=str(e), code="UNKNOWN_NOTIFICATION_EVENT")

    if user_type == Notification.USER_TYPE_ADMIN:
        recipients = admin_recipients()
    else:
        address = email or (tenant.email if tenant else None)
        recipients = [address] if address else []

    try:
        # The stored row is rolled back when the email fails
        with transaction.atomic():
            notification = Notification.objects.create(
                user_type=user_type,
                tenant=tenant,
                event=event,
                title=title,
                message=message,
                metadata=metadata or {},
            )
            if getattr(settings, 'ENABLE_EMAIL_NOTIFICATIONS', False) and recipients:
                _deliver_email(event, title, message, recipients)
                notification.email_sent = True
                notification.save(update_fields=['email_sent', 'updated_at'])
    except DatabaseError as e:
        raise ExternalDependencyError(
            message=f"Could not store notification {event}: {e}",
            code="NOTIFICATION_STORE_FAILED"
        )

    logger.info(f"Notification sent: {event} -> {recipients or user_type}")
    return notification


def _deliver_email(event, subject, body, recipients):
    try:
        send_mail(
            subject=subject,
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipients,
            fail_silently=False,
        )
    except (smtplib.SMTPException, OSError) as e:
        raise ExternalDependencyError(
            message=f"Email delivery failed for {event}: {e}",
            code="EMAIL_DELIVERY_FAILED",
            details={'recipients': recipients}
        )


def notify(event, **kwargs):
    """Best-effort send(): logs failures and returns None instead of raising"""
    try:
        return send(event, **kwargs)
    except ExternalDependencyError as e:
        logger.error(f"Notification {event} failed: {e.message}", extra={'details': e.details})
        return None


def notify_on_commit(event, **kwargs):
    """Queue a best-effort notification for after the current transaction commits"""
    transaction.on_commit(partial(notify, event, **kwargs))
