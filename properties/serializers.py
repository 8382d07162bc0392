from rest_framework import serializers
from .models import Property


class PropertySerializer(serializers.ModelSerializer):
    """Serializer for Property"""
    monthly_charges = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    tenant_name = serializers.CharField(source='tenant.full_name', read_only=True, default=None)

    class Meta:
        model = Property
        fields = [
            'id', 'name', 'address', 'city', 'rent', 'maintenance_fee',
            'booking_deposit', 'monthly_charges', 'status', 'tenant', 'tenant_name',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'status', 'tenant', 'tenant_name', 'created_at', 'updated_at']
