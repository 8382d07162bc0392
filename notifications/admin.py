from django.contrib import admin
from .models import Notification, NotificationTemplate


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['event', 'user_type', 'tenant', 'title', 'is_read', 'email_sent', 'created_at']
    list_filter = ['user_type', 'event', 'is_read', 'email_sent']
    search_fields = ['title', 'message', 'tenant__email', 'tenant__first_name', 'tenant__last_name']
    readonly_fields = ['created_at', 'updated_at', 'read_at']
    date_hierarchy = 'created_at'

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('tenant')


@admin.register(NotificationTemplate)
class NotificationTemplateAdmin(admin.ModelAdmin):
    list_display = ['key', 'subject', 'is_active']
    list_filter = ['is_active']
    search_fields = ['key', 'subject']
