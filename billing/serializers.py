from decimal import Decimal

from rest_framework import serializers
from core.constants import InvoiceType
from core.dto import InvoiceDTO
from .models import Invoice, Payment, LedgerEntry


class InvoiceSerializer(serializers.ModelSerializer):
    """Serializer for Invoice"""
    tenant_name = serializers.CharField(source='tenant.full_name', read_only=True, default=None)
    property_name = serializers.CharField(source='property.name', read_only=True, default=None)
    outstanding_balance = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id', 'invoice_type', 'tenant', 'tenant_name', 'property', 'property_name', 'month',
            'rent_amount', 'maintenance_charges', 'water_charges', 'electricity_charges',
            'other_charges', 'total_amount', 'paid_amount', 'balance', 'outstanding_balance',
            'late_fees_accrued', 'parent_invoice', 'due_date', 'status',
            'last_reminder_type', 'last_reminder_at', 'paid_at', 'created_at'
        ]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            'id', 'invoice', 'amount_paid', 'payment_date', 'method', 'purpose',
            'external_reference', 'status'
        ]
        read_only_fields = fields


class LedgerEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = LedgerEntry
        fields = ['id', 'entry_type', 'amount', 'description', 'reference_type', 'reference_id',
                  'balance', 'created_at']
        read_only_fields = fields


class ConfirmPaymentSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=255)


class InvoiceCreateSerializer(serializers.Serializer):
    """Admin input for a hand-raised invoice"""
    tenant_id = serializers.IntegerField()
    property_id = serializers.IntegerField()
    invoice_type = serializers.ChoiceField(choices=InvoiceType.MANUAL_TYPES, default=InvoiceType.RENT)
    month = serializers.RegexField(r'^\d{4}-(0[1-9]|1[0-2])$', max_length=7)
    due_date = serializers.DateField()
    rent_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=Decimal('0'))
    maintenance_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=Decimal('0'))
    water_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=Decimal('0'))
    electricity_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0,
                                                   default=Decimal('0'))
    other_charges = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=Decimal('0'))
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def to_dto(self) -> InvoiceDTO:
        return InvoiceDTO(**self.validated_data)
