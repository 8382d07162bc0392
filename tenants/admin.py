from django.contrib import admin
from .models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['tenant_code', 'first_name', 'last_name', 'email', 'phone', 'property', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['tenant_code', 'first_name', 'last_name', 'email', 'phone']

    fieldsets = (
        ('Basic Information', {
            'fields': ('tenant_code', 'first_name', 'last_name', 'email', 'phone', 'status')
        }),
        ('Portal Login', {
            'fields': ('user',)
        }),
        ('Lease', {
            'fields': ('property', 'application')
        }),
    )
