"""
Audit Log API

Read-only endpoints for admins.
"""

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from audit.helpers import get_entity_audit_trail
from audit.models import AuditLog
from audit.serializers import AuditLogSerializer
from api.permissions import IsAdmin
from core.exceptions import ValidationError


class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    List and retrieve audit logs.

    Query params:
        entity: Application, Property, Tenant, Invoice, Payment
        entity_id: record id (used together with entity)
        action: AuditLog.ACTION_* value
        actor_type: admin, tenant, applicant, system
    """
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('actor')
        params = self.request.query_params

        entity = params.get('entity')
        if entity:
            entity_id = params.get('entity_id')
            queryset = queryset.for_entity(entity, int(entity_id) if entity_id and entity_id.isdigit() else None)

        action = params.get('action')
        if action:
            queryset = queryset.filter(action=action)

        actor_type = params.get('actor_type')
        if actor_type:
            queryset = queryset.filter(actor_type=actor_type)

        return queryset.newest_first()

    @action(detail=False, methods=['get'])
    def trail(self, request):
        """Latest history of one record: ?entity=Invoice&entity_id=12[&limit=50]"""
        entity = request.query_params.get('entity')
        entity_id = request.query_params.get('entity_id', '')
        limit = request.query_params.get('limit', '50')
        if not entity or not entity_id.isdigit():
            raise ValidationError(message="entity and a numeric entity_id are required", code="ENTITY_REQUIRED")

        logs = get_entity_audit_trail(entity, int(entity_id), limit=int(limit) if limit.isdigit() else 50)
        return Response(AuditLogSerializer(logs, many=True).data)
