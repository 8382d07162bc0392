"""
Audit Log Model

IMMUTABLE: Audit logs cannot be edited or deleted after creation.
Purpose: every lease and billing transition leaves a before/after record.
"""

from django.db import models
from django.conf import settings
from django.core.exceptions import PermissionDenied
from core.constants import ActorType


class AuditLogQuerySet(models.QuerySet):
    """Lookups used by the audit trail and the admin API"""

    def for_entity(self, entity, entity_id=None):
        queryset = self.filter(entity=entity)
        if entity_id is not None:
            queryset = queryset.filter(entity_id=entity_id)
        return queryset

    def newest_first(self):
        return self.order_by('-timestamp', '-id')


# ============================================================================
# AUDIT LOG MODEL
# ============================================================================

class AuditLog(models.Model):
    """
    Immutable audit log for lease and billing state changes.

    Security:
    - Logs CANNOT be edited after creation
    - Logs CANNOT be deleted
    - Only admins can read them through the API
    """

    # Action types
    ACTION_SUBMIT_APPLICATION = 'submit_application'
    ACTION_APPROVE_APPLICATION = 'approve_application'
    ACTION_REJECT_APPLICATION = 'reject_application'
    ACTION_CANCEL_APPLICATION = 'cancel_application'
    ACTION_AUTO_CANCEL_APPLICATION = 'auto_cancel_application'
    ACTION_AUTO_REJECT_APPLICATION = 'auto_reject_application'
    ACTION_EXPIRE_APPLICATION = 'auto_expire_application'
    ACTION_RESERVE_APPLICATION = 'system_reserve_application_after_deposit'
    ACTION_ASSIGN_PROPERTY = 'system_assign_property_after_deposit'
    ACTION_LINK_TENANT = 'system_link_tenant_after_deposit'
    ACTION_RELEASE_PROPERTY = 'release_property'
    ACTION_CREATE_TENANT = 'create_tenant'
    ACTION_CREATE_INVOICE = 'create_invoice'
    ACTION_RECORD_PAYMENT = 'record_payment'
    ACTION_APPLY_LATE_FEE = 'apply_late_fee'

    ACTION_CHOICES = [
        (ACTION_SUBMIT_APPLICATION, 'Submit Application'),
        (ACTION_APPROVE_APPLICATION, 'Approve Application'),
        (ACTION_REJECT_APPLICATION, 'Reject Application'),
        (ACTION_CANCEL_APPLICATION, 'Cancel Application'),
        (ACTION_AUTO_CANCEL_APPLICATION, 'Auto-cancel Application'),
        (ACTION_AUTO_REJECT_APPLICATION, 'Auto-reject Application'),
        (ACTION_EXPIRE_APPLICATION, 'Expire Application'),
        (ACTION_RESERVE_APPLICATION, 'Reserve Application'),
        (ACTION_ASSIGN_PROPERTY, 'Assign Property'),
        (ACTION_LINK_TENANT, 'Link Tenant'),
        (ACTION_RELEASE_PROPERTY, 'Release Property'),
        (ACTION_CREATE_TENANT, 'Create Tenant'),
        (ACTION_CREATE_INVOICE, 'Create Invoice'),
        (ACTION_RECORD_PAYMENT, 'Record Payment'),
        (ACTION_APPLY_LATE_FEE, 'Apply Late Fee'),
    ]

    # Entity types
    ENTITY_APPLICATION = 'Application'
    ENTITY_PROPERTY = 'Property'
    ENTITY_TENANT = 'Tenant'
    ENTITY_INVOICE = 'Invoice'
    ENTITY_PAYMENT = 'Payment'

    ENTITY_CHOICES = [
        (ENTITY_APPLICATION, 'Application'),
        (ENTITY_PROPERTY, 'Property'),
        (ENTITY_TENANT, 'Tenant'),
        (ENTITY_INVOICE, 'Invoice'),
        (ENTITY_PAYMENT, 'Payment'),
    ]

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action (empty for system jobs)"
    )

    actor_type = models.CharField(
        max_length=20,
        choices=ActorType.CHOICES,
        default=ActorType.SYSTEM,
        db_index=True
    )

    action = models.CharField(
        max_length=60,
        choices=ACTION_CHOICES,
        db_index=True,
        help_text="Type of action performed"
    )

    entity = models.CharField(
        max_length=50,
        choices=ENTITY_CHOICES,
        db_index=True,
        help_text="Type of record affected"
    )

    entity_id = models.IntegerField(
        db_index=True,
        null=True,
        blank=True,
        help_text="ID of the record affected"
    )

    before_state = models.JSONField(default=dict, blank=True)
    after_state = models.JSONField(default=dict, blank=True)

    description = models.TextField(blank=True)

    # Request metadata
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(null=True, blank=True)

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional context data"
    )

    timestamp = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="When the action occurred"
    )

    class Meta:
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['entity', 'entity_id'], name='audit_entity_idx'),
            models.Index(fields=['action', '-timestamp'], name='audit_action_time_idx'),
            models.Index(fields=['actor', '-timestamp'], name='audit_actor_time_idx'),
        ]

    objects = AuditLogQuerySet.as_manager()

    def __str__(self):
        return f"{self.actor_display} - {self.action} - {self.entity} #{self.entity_id} - {self.timestamp}"

    def save(self, *args, **kwargs):
        """
        Override save to enforce immutability.
        Only allow creation, not updates.
        """
        if self.pk is not None:
            raise PermissionDenied(
                "Audit logs are immutable and cannot be modified after creation."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied(
            "Audit logs are immutable and cannot be deleted."
        )

    @property
    def actor_display(self):
        if self.actor:
            return self.actor.get_full_name() or self.actor.username
        return self.get_actor_type_display()
