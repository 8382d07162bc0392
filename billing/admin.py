from django.contrib import admin
from .models import Invoice, Payment, LedgerEntry


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ['id', 'invoice_type', 'tenant', 'property', 'month', 'total_amount', 'paid_amount',
                    'balance', 'status', 'due_date', 'last_reminder_type']
    list_filter = ['invoice_type', 'status', 'last_reminder_type']
    search_fields = ['tenant__first_name', 'tenant__last_name', 'tenant__email', 'property__name', 'month']
    readonly_fields = ['balance', 'status', 'paid_at', 'late_fees_accrued', 'last_reminder_type',
                       'last_reminder_at', 'created_at', 'updated_at']
    date_hierarchy = 'due_date'

    fieldsets = (
        ('Invoice', {
            'fields': ('invoice_type', 'tenant', 'property', 'month', 'due_date', 'parent_invoice')
        }),
        ('Charges', {
            'fields': ('rent_amount', 'maintenance_charges', 'water_charges', 'electricity_charges',
                       'other_charges', 'total_amount')
        }),
        ('Payment', {
            'fields': ('paid_amount', 'balance', 'status', 'paid_at', 'late_fees_accrued')
        }),
        ('Reminders', {
            'fields': ('last_reminder_type', 'last_reminder_at'),
            'classes': ('collapse',)
        }),
        ('Notes', {
            'fields': ('notes',),
            'classes': ('collapse',)
        }),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('tenant', 'property')


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['id', 'tenant', 'invoice', 'amount_paid', 'method', 'purpose', 'status', 'payment_date']
    list_filter = ['status', 'method', 'purpose']
    search_fields = ['tenant__email', 'external_reference']

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('tenant', 'invoice')


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """Ledger entries are append-only"""
    list_display = ['id', 'tenant', 'entry_type', 'amount', 'balance', 'reference_type', 'reference_id',
                    'created_at']
    list_filter = ['entry_type', 'reference_type']
    search_fields = ['tenant__email', 'description']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
