from django.contrib.auth.models import AbstractUser
from django.db import models
from core.constants import UserRole


class User(AbstractUser):
    """Custom User model - Admin/Tenant"""
    ROLE_CHOICES = UserRole.CHOICES

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=UserRole.TENANT)
    phone = models.CharField(max_length=15, blank=True)

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_admin_role(self):
        return self.role == UserRole.ADMIN
