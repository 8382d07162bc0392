"""
API URLs for LeaseHub
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from applications.views import ApplicationViewSet
from audit.views import AuditLogViewSet
from billing.views import InvoiceViewSet, PaymentWebhookView, PaymentConfirmView
from notifications.views import NotificationViewSet
from properties.views import PropertyViewSet

# Create router
router = DefaultRouter()
router.register(r'properties', PropertyViewSet, basename='property')
router.register(r'applications', ApplicationViewSet, basename='application')
router.register(r'invoices', InvoiceViewSet, basename='invoice')
router.register(r'notifications', NotificationViewSet, basename='notification')
router.register(r'audit/logs', AuditLogViewSet, basename='auditlog')

urlpatterns = [
    # JWT Authentication
    path('auth/login/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Payment gateway
    path('payments/webhook/', PaymentWebhookView.as_view(), name='payment-webhook'),
    path('payments/confirm/', PaymentConfirmView.as_view(), name='payment-confirm'),

    # API routes
    path('', include(router.urls)),
]
