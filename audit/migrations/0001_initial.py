# Generated manually

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('actor_type', models.CharField(choices=[('admin', 'Admin'), ('tenant', 'Tenant'), ('applicant', 'Applicant'), ('system', 'System')], db_index=True, default='system', max_length=20)),
                ('action', models.CharField(choices=[('submit_application', 'Submit Application'), ('approve_application', 'Approve Application'), ('reject_application', 'Reject Application'), ('cancel_application', 'Cancel Application'), ('auto_cancel_application', 'Auto-cancel Application'), ('auto_reject_application', 'Auto-reject Application'), ('auto_expire_application', 'Expire Application'), ('system_reserve_application_after_deposit', 'Reserve Application'), ('system_assign_property_after_deposit', 'Assign Property'), ('system_link_tenant_after_deposit', 'Link Tenant'), ('release_property', 'Release Property'), ('create_tenant', 'Create Tenant'), ('create_invoice', 'Create Invoice'), ('record_payment', 'Record Payment'), ('apply_late_fee', 'Apply Late Fee')], db_index=True, help_text='Type of action performed', max_length=60)),
                ('entity', models.CharField(choices=[('Application', 'Application'), ('Property', 'Property'), ('Tenant', 'Tenant'), ('Invoice', 'Invoice'), ('Payment', 'Payment')], db_index=True, help_text='Type of record affected', max_length=50)),
                ('entity_id', models.IntegerField(blank=True, db_index=True, help_text='ID of the record affected', null=True)),
                ('before_state', models.JSONField(blank=True, default=dict)),
                ('after_state', models.JSONField(blank=True, default=dict)),
                ('description', models.TextField(blank=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional context data')),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When the action occurred')),
                ('actor', models.ForeignKey(blank=True, help_text='User who performed the action (empty for system jobs)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['entity', 'entity_id'], name='audit_entity_idx'),
                    models.Index(fields=['action', '-timestamp'], name='audit_action_time_idx'),
                    models.Index(fields=['actor', '-timestamp'], name='audit_actor_time_idx'),
                ],
            },
        ),
    ]
