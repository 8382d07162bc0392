"""
Object builders shared by the app test suites.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.utils import timezone

from applications.models import Application
from core.constants import ApplicationStatus, PropertyStatus, UserRole
from properties.models import Property
from tenants.models import Tenant
from users.models import User

T0 = timezone.make_aware(datetime(2026, 3, 10, 12, 0))


def make_admin(username='admin', **kwargs):
    kwargs.setdefault('email', f'{username}@leasehub.test')
    return User.objects.create_user(username=username, password='pass12345', role=UserRole.ADMIN, **kwargs)


def make_user(username='renter', **kwargs):
    kwargs.setdefault('email', f'{username}@example.com')
    return User.objects.create_user(username=username, password='pass12345', role=UserRole.TENANT, **kwargs)


def make_property(name='Lakeview 2BHK', rent='15000.00', maintenance_fee='500.00', booking_deposit='0.00', **kwargs):
    return Property.objects.create(
        name=name,
        address='12 Lake Road',
        city='Pune',
        rent=Decimal(rent),
        maintenance_fee=Decimal(maintenance_fee),
        booking_deposit=Decimal(booking_deposit),
        **kwargs
    )


def make_tenant(email='asha@example.com', code=None, **kwargs):
    code = code or f"TEN{Tenant.objects.count() + 1:05d}"
    kwargs.setdefault('first_name', 'Asha')
    kwargs.setdefault('last_name', 'Rao')
    return Tenant.objects.create(tenant_code=code, email=email, **kwargs)


def make_application(prop, email='asha@example.com', status=ApplicationStatus.PENDING, **kwargs):
    kwargs.setdefault('applicant_name', 'Asha Rao')
    kwargs.setdefault('monthly_income', Decimal('90000.00'))
    kwargs.setdefault('preferred_move_in', date(2026, 4, 1))
    return Application.objects.create(property=prop, applicant_email=email, status=status, **kwargs)


def occupied_property(tenant, **kwargs):
    prop = make_property(status=PropertyStatus.OCCUPIED, tenant=tenant, **kwargs)
    tenant.property = prop
    tenant.save()
    return prop


def hours(n):
    return timedelta(hours=n)
