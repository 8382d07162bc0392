from decimal import Decimal, ROUND_HALF_UP
from django.db import models
from django.core.validators import MinValueValidator
from core.constants import PropertyStatus


class Property(models.Model):
    """A rentable unit. Status follows the lease lifecycle of its current applicant."""
    STATUS_CHOICES = PropertyStatus.CHOICES

    name = models.CharField(max_length=255)
    address = models.TextField()
    city = models.CharField(max_length=100, blank=True)
    rent = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)],
                               help_text="Monthly rent")
    maintenance_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                          validators=[MinValueValidator(0)])
    booking_deposit = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)],
        help_text="Amount required to reserve the property. Leave 0 to charge a share of the monthly rent."
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PropertyStatus.AVAILABLE)
    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='held_properties')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "Property"
        verbose_name_plural = "Properties"
        indexes = [
            models.Index(fields=['status'], name='property_status_idx'),
            models.Index(fields=['status', 'tenant'], name='property_status_tenant_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_status_display()})"

    @property
    def monthly_charges(self):
        """Rent plus maintenance, billed every month"""
        return (self.rent or Decimal('0')) + (self.maintenance_fee or Decimal('0'))

    def effective_booking_deposit(self, fraction):
        """
        Deposit to invoice on approval.
        Uses booking_deposit when set, otherwise round(rent * fraction),
        otherwise the full monthly rent.
        """
        deposit = self.booking_deposit or Decimal('0')
        if deposit > 0:
            return deposit
        rent = self.rent or Decimal('0')
        deposit = (rent * Decimal(str(fraction))).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
        if deposit <= 0:
            deposit = rent
        return deposit

    def snapshot(self):
        """State recorded in audit logs"""
        return {
            'status': self.status,
            'tenant_id': self.tenant_id,
        }
