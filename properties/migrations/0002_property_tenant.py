# Generated manually: Property.tenant needs the tenants table

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('properties', '0001_initial'),
        ('tenants', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='property',
            name='tenant',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='held_properties', to='tenants.tenant'),
        ),
        migrations.AddIndex(
            model_name='property',
            index=models.Index(fields=['status', 'tenant'], name='property_status_tenant_idx'),
        ),
    ]
