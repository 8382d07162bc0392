from rest_framework import serializers
from core.constants import Decision
from core.dto import ApplicationDTO
from .models import Application


class ApplicationSerializer(serializers.ModelSerializer):
    """Read serializer for applications"""
    property_name = serializers.CharField(source='property.name', read_only=True)
    tenant_code = serializers.CharField(source='tenant.tenant_code', read_only=True, default=None)

    class Meta:
        model = Application
        fields = [
            'id', 'applicant_name', 'applicant_email', 'phone', 'monthly_income',
            'occupation', 'occupants', 'lease_duration_months', 'preferred_move_in',
            'property', 'property_name', 'tenant', 'tenant_code', 'status',
            'admin_comments', 'reviewed_at', 'approved_at', 'expires_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ApplicationCreateSerializer(serializers.Serializer):
    """Input for a new application"""
    property_id = serializers.IntegerField()
    applicant_name = serializers.CharField(max_length=255)
    applicant_email = serializers.EmailField()
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default='')
    monthly_income = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    occupation = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    occupants = serializers.IntegerField(min_value=1, default=1)
    lease_duration_months = serializers.IntegerField(min_value=1, default=12)
    preferred_move_in = serializers.DateField()

    def to_dto(self) -> ApplicationDTO:
        return ApplicationDTO(**self.validated_data)


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=Decision.CHOICES)
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
