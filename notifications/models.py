from django.db import models
from django.utils import timezone


class Notification(models.Model):
    """In-app copy of every message handed to the notification sink"""
    USER_TYPE_ADMIN = 'admin'
    USER_TYPE_TENANT = 'tenant'

    USER_TYPE_CHOICES = [
        (USER_TYPE_ADMIN, 'Admin'),
        (USER_TYPE_TENANT, 'Tenant'),
    ]

    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, db_index=True)
    tenant = models.ForeignKey('tenants.Tenant', on_delete=models.CASCADE, null=True, blank=True,
                               related_name='notifications')
    event = models.CharField(max_length=60, db_index=True, help_text="Template key, e.g. due_today")
    title = models.CharField(max_length=200)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    email_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_type', 'is_read'], name='notification_type_read_idx'),
            models.Index(fields=['tenant', 'is_read'], name='notification_tenant_read_idx'),
        ]

    def __str__(self):
        return f"{self.event} -> {self.tenant or self.get_user_type_display()}"

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at', 'updated_at'])


class NotificationTemplate(models.Model):
    """Database override for the built-in text of a notification event"""
    key = models.CharField(max_length=60, unique=True)
    subject = models.CharField(max_length=200)
    body = models.TextField(help_text="Django template syntax, e.g. {{ tenant_name }}")
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return self.key
