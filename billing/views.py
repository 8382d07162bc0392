import hmac
import logging

from django.conf import settings
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from api.permissions import IsAdmin, IsActiveTenant, IsAdminOrActiveTenant, tenant_profile
from core.exceptions import (
    InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError,
)
from .gateway import event_from_payload, get_gateway
from .models import Invoice, LedgerEntry
from .repositories import InvoiceRepository
from .serializers import (
    InvoiceSerializer, InvoiceCreateSerializer, LedgerEntrySerializer, ConfirmPaymentSerializer,
)
from .services import BillingService

logger = logging.getLogger(__name__)


def reconciliation_response(result):
    return {
        'received': True,
        'duplicate': result.duplicate,
        'invoice_id': result.invoice_id,
        'payment_id': result.payment_id,
        'deposit_changes': result.deposit.changes if result.deposit else [],
        'rent_invoice_id': result.rent_invoice_id,
    }


class InvoiceViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Invoices.
    Tenants see their own, admins see everything and may raise rent or
    other invoices by hand.
    """
    serializer_class = InvoiceSerializer
    permission_classes = [IsAuthenticated, IsAdminOrActiveTenant]

    def get_permissions(self):
        if self.action == 'create':
            return [IsAuthenticated(), IsAdmin()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = Invoice.objects.select_related('tenant', 'property')
        if not IsAdmin().has_permission(self.request, self):
            tenant = tenant_profile(self.request.user)
            if tenant is None:
                return queryset.none()
            queryset = queryset.filter(tenant=tenant)

        params = self.request.query_params
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('invoice_type'):
            queryset = queryset.filter(invoice_type=params['invoice_type'])
        if params.get('month'):
            queryset = queryset.filter(month=params['month'])
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice = BillingService().create_invoice(serializer.to_dto(), actor=request.user, request=request)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsActiveTenant])
    def pay(self, request, pk=None):
        """Open a gateway checkout session for an unpaid invoice"""
        invoice = self.get_object()
        if not invoice.is_open:
            raise InvalidStateError(message="Invoice is already paid", code="INVOICE_PAID")

        conf = getattr(settings, 'PAYMENT_GATEWAY', {}) or {}
        session = get_gateway().create_checkout_session(
            invoice,
            success_url=conf.get('SUCCESS_URL', ''),
            cancel_url=conf.get('CANCEL_URL', ''),
        )
        return Response({'session_id': session.get('id'), 'url': session.get('url')})

    @action(detail=False, methods=['get'])
    def ledger(self, request):
        """Ledger entries of the current tenant (admins pass ?tenant=<id>)"""
        if IsAdmin().has_permission(request, self):
            tenant_id = request.query_params.get('tenant')
            if not tenant_id:
                raise ValidationError(message="tenant query parameter is required", code="TENANT_REQUIRED")
        else:
            tenant = tenant_profile(request.user)
            if tenant is None:
                return Response([])
            tenant_id = tenant.id

        entries = LedgerEntry.objects.filter(tenant_id=tenant_id).order_by('created_at', 'id')
        return Response(LedgerEntrySerializer(entries, many=True).data)


class PaymentWebhookView(APIView):
    """
    Gateway "payment succeeded" callback.
    Authenticated with the shared token in the X-Gateway-Token header.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        expected = (getattr(settings, 'PAYMENT_GATEWAY', {}) or {}).get('WEBHOOK_TOKEN') or ''
        provided = request.headers.get('X-Gateway-Token', '')
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Webhook rejected: bad gateway token")
            raise PermissionDeniedError(message="Invalid gateway token", code="BAD_GATEWAY_TOKEN")

        event = event_from_payload(request.data)
        if event is None:
            raise ValidationError(message="invoiceId is required", code="INVALID_EVENT")

        result = BillingService().reconcile_payment(event, source='webhook', request=request)
        return Response(reconciliation_response(result))


class PaymentConfirmView(APIView):
    """
    Success-page fallback: poll the gateway for a checkout session and
    reconcile it the same way the webhook does.
    """
    permission_classes = [IsAuthenticated, IsAdminOrActiveTenant]

    def post(self, request):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        event = get_gateway().fetch_event(serializer.validated_data['session_id'])
        if event is None:
            return Response({'received': False, 'detail': 'Payment not completed yet'},
                            status=status.HTTP_202_ACCEPTED)

        if not IsAdmin().has_permission(request, self):
            invoice = InvoiceRepository().get_by_id(event.invoice_id)
            if invoice is None:
                raise NotFoundError(resource_type='Invoice', resource_id=event.invoice_id)
            tenant = tenant_profile(request.user)
            if tenant is None or invoice.tenant_id != tenant.id:
                raise PermissionDeniedError(message="This payment belongs to another tenant.")

        result = BillingService().reconcile_payment(event, source='success_page', request=request)
        return Response(reconciliation_response(result))
