from django.contrib import admin
from .models import Application


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    list_display = ['applicant_name', 'applicant_email', 'property', 'status', 'expires_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['applicant_name', 'applicant_email', 'property__name']
    readonly_fields = ['status', 'tenant', 'reviewed_by', 'reviewed_at', 'approved_by', 'approved_at',
                       'expires_at', 'expiry_warning_sent_at', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Applicant', {
            'fields': ('applicant_name', 'applicant_email', 'phone', 'monthly_income', 'occupation',
                       'occupants', 'lease_duration_months', 'preferred_move_in', 'submitted_by')
        }),
        ('Lease', {
            'fields': ('property', 'tenant', 'status', 'admin_comments', 'expires_at', 'expiry_warning_sent_at')
        }),
        ('Review', {
            'fields': ('reviewed_by', 'reviewed_at', 'approved_by', 'approved_at'),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('property', 'tenant')
