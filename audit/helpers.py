"""
Audit Logging Helper Functions

Provides a centralized way to record state transitions.
"""

from audit.models import AuditLog
from core.constants import ActorType
from django.db import transaction, DatabaseError
import logging

logger = logging.getLogger(__name__)


def log_action(actor, actor_type, action, entity, entity_id, before=None, after=None,
               description='', request=None, metadata=None):
    """
    Log a state change to the audit log.

    Args:
        actor: User who performed the action (None for system jobs)
        actor_type: ActorType value
        action: AuditLog.ACTION_* value
        entity: AuditLog.ENTITY_* value
        entity_id: ID of the record
        before: State before the change (dict)
        after: State after the change (dict)
        description: Human-readable description
        request: Django/DRF request object (optional)
        metadata: Additional context data (optional)

    Returns:
        AuditLog instance, or None when the write failed

    Example:
        log_action(
            actor=request.user,
            actor_type=ActorType.ADMIN,
            action=AuditLog.ACTION_APPROVE_APPLICATION,
            entity=AuditLog.ENTITY_APPLICATION,
            entity_id=application.id,
            before={'status': 'pending'},
            after={'status': 'approved'},
        )
    """
    ip_address = None
    user_agent = None

    if request is not None:
        ip_address = get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')[:500]

    if actor is not None and not getattr(actor, 'is_authenticated', False):
        actor = None

    try:
        # Savepoint: a failed audit write must not break the caller's transaction
        with transaction.atomic():
            audit_log = AuditLog.objects.create(
                actor=actor,
                actor_type=actor_type or ActorType.SYSTEM,
                action=action,
                entity=entity,
                entity_id=entity_id,
                before_state=before or {},
                after_state=after or {},
                description=description,
                ip_address=ip_address,
                user_agent=user_agent,
                metadata=metadata or {}
            )
    except DatabaseError as e:
        logger.error(f"Failed to create audit log: {e}", exc_info=True)
        return None

    logger.info(f"Audit: {audit_log.actor_display} - {action} - {entity} #{entity_id}")
    return audit_log


def get_client_ip(request):
    """
    Extract client IP address from request.
    Handles proxies and load balancers.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')

    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')

    return ip


def get_entity_audit_trail(entity, entity_id, limit=50):
    """
    Get complete audit trail for a specific record.

    Returns:
        QuerySet of AuditLog entries, newest first
    """
    return AuditLog.objects.for_entity(entity, entity_id).newest_first()[:limit]
