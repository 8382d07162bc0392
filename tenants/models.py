import builtins
from django.db import models
from django.conf import settings
from core.constants import TenantStatus


class Tenant(models.Model):
    """Onboarded occupant account, created when an application is approved"""
    STATUS_CHOICES = TenantStatus.CHOICES

    tenant_code = models.CharField(max_length=20, unique=True, help_text="e.g. TEN00001")
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=20, blank=True)
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                                related_name='tenant_profile')
    property = models.ForeignKey('properties.Property', on_delete=models.SET_NULL, null=True, blank=True,
                                 related_name='linked_tenants')
    application = models.ForeignKey('applications.Application', on_delete=models.SET_NULL, null=True,
                                    blank=True, related_name='+')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=TenantStatus.ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['first_name', 'last_name']
        verbose_name = "Tenant"
        verbose_name_plural = "Tenants"
        indexes = [
            models.Index(fields=['email'], name='tenant_email_idx'),
            models.Index(fields=['status'], name='tenant_status_idx'),
        ]

    def __str__(self):
        return f"{self.full_name} ({self.tenant_code})"

    @builtins.property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def snapshot(self):
        return {
            'property_id': self.property_id,
            'application_id': self.application_id,
            'status': self.status,
        }
