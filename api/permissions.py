"""
Role permissions - admins run the console, active tenants use the portal
"""
from rest_framework import permissions
from core.constants import TenantStatus


def tenant_profile(user):
    """Tenant record linked to a user, or None"""
    return getattr(user, 'tenant_profile', None)


class IsAdmin(permissions.BasePermission):
    """
    Permission to only allow admin console users.
    """
    message = "Admin access required."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return user.is_admin_role or user.is_superuser


class IsActiveTenant(permissions.BasePermission):
    """
    Tenant portal access. Users with a tenant record must be active;
    applicants without one may still file applications.
    """
    message = "Your tenant account is not active."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        tenant = tenant_profile(user)
        return tenant is None or tenant.status == TenantStatus.ACTIVE


class IsAdminOrActiveTenant(permissions.BasePermission):
    """Either audience; object filtering happens in get_queryset"""

    def has_permission(self, request, view):
        return IsAdmin().has_permission(request, view) or IsActiveTenant().has_permission(request, view)
