"""
Payment gateway client.

The gateway reports "paid" events through the webhook or answers a
status poll for a checkout session. Both paths end in a GatewayEvent.
"""
import logging
from typing import Optional, Dict, Any

import httpx
from django.conf import settings

from core.dto import GatewayEvent
from core.exceptions import ExternalDependencyError

logger = logging.getLogger(__name__)


def _to_int(value):
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def event_from_payload(data: Dict[str, Any]) -> Optional[GatewayEvent]:
    """
    Build an event from a webhook body:
    {invoiceId, tenantId, purpose, amountPaidMinor, externalTransactionRef}
    """
    invoice_id = _to_int(data.get('invoiceId'))
    if invoice_id is None:
        return None
    return GatewayEvent(
        invoice_id=invoice_id,
        tenant_id=_to_int(data.get('tenantId')),
        purpose=data.get('purpose') or None,
        amount_paid_minor=_to_int(data.get('amountPaidMinor')) or 0,
        external_reference=str(data.get('externalTransactionRef') or ''),
    )


def event_from_session(session: Dict[str, Any]) -> Optional[GatewayEvent]:
    """Build an event from a checkout session, or None when it is not paid yet"""
    if session.get('payment_status') != 'paid':
        return None
    metadata = session.get('metadata') or {}
    invoice_id = _to_int(metadata.get('invoiceId'))
    if invoice_id is None:
        return None
    return GatewayEvent(
        invoice_id=invoice_id,
        tenant_id=_to_int(metadata.get('tenantId')),
        purpose=metadata.get('purpose') or None,
        amount_paid_minor=_to_int(session.get('amount_total')) or 0,
        external_reference=str(session.get('payment_intent') or session.get('id') or ''),
    )


class PaymentGateway:
    """Interface used by the billing views"""

    def create_checkout_session(self, invoice, success_url: str, cancel_url: str) -> Dict[str, Any]:
        raise NotImplementedError

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        raise NotImplementedError

    def fetch_event(self, session_id: str) -> Optional[GatewayEvent]:
        """Poll a checkout session and translate it into an event"""
        return event_from_session(self.retrieve_session(session_id))


class HttpPaymentGateway(PaymentGateway):
    """JSON-over-HTTP gateway configured from settings.PAYMENT_GATEWAY"""

    def __init__(self, base_url=None, api_key=None, timeout=None, transport=None):
        conf = getattr(settings, 'PAYMENT_GATEWAY', {}) or {}
        self.base_url = (base_url or conf.get('BASE_URL') or '').rstrip('/')
        self.api_key = api_key or conf.get('API_KEY') or ''
        self.timeout = timeout or conf.get('TIMEOUT', 10.0)
        self.transport = transport

    def _client(self):
        return httpx.Client(
            base_url=self.base_url,
            headers={'Authorization': f'Bearer {self.api_key}'},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _request(self, method, path, **kwargs) -> Dict[str, Any]:
        if not self.base_url:
            raise ExternalDependencyError(
                message="Payment gateway is not configured",
                code="GATEWAY_NOT_CONFIGURED"
            )
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gateway {method} {path} failed: {e.response.status_code}")
            raise ExternalDependencyError(
                message=f"Payment gateway returned {e.response.status_code}",
                code="GATEWAY_ERROR",
                details={'status_code': e.response.status_code}
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gateway {method} {path} error: {e}")
            raise ExternalDependencyError(
                message="Payment gateway unavailable",
                code="GATEWAY_UNAVAILABLE"
            )

    def create_checkout_session(self, invoice, success_url, cancel_url):
        amount_minor = int((invoice.outstanding_balance * 100).to_integral_value())
        return self._request('POST', '/checkout/sessions', json={
            'amount': amount_minor,
            'description': f"{invoice.get_invoice_type_display()} {invoice.month}",
            'success_url': success_url,
            'cancel_url': cancel_url,
            'metadata': {
                'invoiceId': str(invoice.id),
                'tenantId': str(invoice.tenant_id or ''),
                'purpose': invoice.invoice_type,
            },
        })

    def retrieve_session(self, session_id):
        return self._request('GET', f'/checkout/sessions/{session_id}')


def get_gateway() -> PaymentGateway:
    return HttpPaymentGateway()
