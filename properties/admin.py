from django.contrib import admin
from .models import Property


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ['name', 'city', 'rent', 'maintenance_fee', 'booking_deposit', 'status', 'tenant']
    list_filter = ['status', 'city']
    search_fields = ['name', 'address', 'city']

    fieldsets = (
        ('Property', {
            'fields': ('name', 'address', 'city')
        }),
        ('Charges', {
            'fields': ('rent', 'maintenance_fee', 'booking_deposit')
        }),
        ('Lease State', {
            'fields': ('status', 'tenant')
        }),
    )

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related('tenant')
