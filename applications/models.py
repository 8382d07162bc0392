import builtins
from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator
from core.constants import ApplicationStatus


class Application(models.Model):
    """A prospective tenant's request to lease a property"""
    STATUS_CHOICES = ApplicationStatus.CHOICES

    applicant_name = models.CharField(max_length=255)
    applicant_email = models.EmailField()
    phone = models.CharField(max_length=20, blank=True)
    monthly_income = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    occupation = models.CharField(max_length=150, blank=True)
    occupants = models.PositiveIntegerField(default=1)
    lease_duration_months = models.PositiveIntegerField(default=12)
    preferred_move_in = models.DateField()

    property = models.ForeignKey('properties.Property', on_delete=models.CASCADE, related_name='applications')
    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='applications', help_text="Set when the application is approved")
    submitted_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='submitted_applications')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=ApplicationStatus.PENDING)
    admin_comments = models.TextField(blank=True)

    reviewed_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='reviewed_applications')
    reviewed_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='approved_applications')
    approved_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True, help_text="Booking deposit deadline")
    expiry_warning_sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Application"
        verbose_name_plural = "Applications"
        indexes = [
            models.Index(fields=['status', 'expires_at'], name='application_expiry_idx'),
            models.Index(fields=['property', 'status'], name='application_property_idx'),
            models.Index(fields=['applicant_email', 'status'], name='application_email_idx'),
        ]

    def __str__(self):
        return f"{self.applicant_name} -> {self.property_id} ({self.get_status_display()})"

    @builtins.property
    def is_open(self):
        return self.status in ApplicationStatus.OPEN

    def snapshot(self):
        return {
            'status': self.status,
            'tenant_id': self.tenant_id,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
        }
