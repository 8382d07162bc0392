"""
Audit Log Serializers
"""

from rest_framework import serializers
from audit.models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    """
    Serializer for AuditLog model.

    Read-only: Audit logs cannot be created/updated via API.
    """

    actor_display = serializers.CharField(read_only=True)
    actor_username = serializers.CharField(source='actor.username', read_only=True, allow_null=True)

    class Meta:
        model = AuditLog
        fields = [
            'id',
            'actor',
            'actor_username',
            'actor_display',
            'actor_type',
            'action',
            'entity',
            'entity_id',
            'before_state',
            'after_state',
            'description',
            'ip_address',
            'metadata',
            'timestamp'
        ]
        read_only_fields = fields
