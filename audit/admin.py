"""
Audit Log Admin - READ ONLY

Audit logs are immutable and cannot be edited or deleted via admin.
"""

import json

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html
from audit.models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only admin for audit logs"""

    list_display = [
        'id',
        'timestamp',
        'actor_link',
        'actor_type',
        'action',
        'entity',
        'entity_id',
        'description_short',
    ]

    list_filter = [
        'action',
        'entity',
        'actor_type',
        'timestamp',
    ]

    search_fields = [
        'description',
        'actor__username',
        'actor__email',
    ]

    readonly_fields = [
        'actor',
        'actor_type',
        'action',
        'entity',
        'entity_id',
        'description',
        'before_display',
        'after_display',
        'ip_address',
        'user_agent',
        'metadata_display',
        'timestamp'
    ]

    fieldsets = (
        ('Action Details', {
            'fields': ('action', 'entity', 'entity_id', 'description')
        }),
        ('State Change', {
            'fields': ('before_display', 'after_display')
        }),
        ('Actor', {
            'fields': ('actor', 'actor_type', 'ip_address', 'user_agent')
        }),
        ('Additional Context', {
            'fields': ('metadata_display', 'timestamp'),
            'classes': ('collapse',)
        }),
    )

    date_hierarchy = 'timestamp'
    ordering = ['-timestamp']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        if 'delete_selected' in actions:
            del actions['delete_selected']
        return actions

    @admin.display(description='Actor')
    def actor_link(self, obj):
        if obj.actor:
            url = reverse('admin:users_user_change', args=[obj.actor.id])
            return format_html('<a href="{}">{}</a>', url, obj.actor.username)
        return obj.get_actor_type_display()

    @admin.display(description='Description')
    def description_short(self, obj):
        max_length = 80
        if len(obj.description) > max_length:
            return f"{obj.description[:max_length]}..."
        return obj.description

    @staticmethod
    def _pretty(data):
        if data:
            return format_html('<pre>{}</pre>', json.dumps(data, indent=2))
        return "-"

    @admin.display(description='Before')
    def before_display(self, obj):
        return self._pretty(obj.before_state)

    @admin.display(description='After')
    def after_display(self, obj):
        return self._pretty(obj.after_state)

    @admin.display(description='Metadata')
    def metadata_display(self, obj):
        return self._pretty(obj.metadata)
