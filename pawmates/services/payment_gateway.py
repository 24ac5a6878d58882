"""
Razorpay Payment Gateway
Creates payment orders and refunds through the Razorpay REST API
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import (
    CURRENCY,
    RAZORPAY_API_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_TIMEOUT_SECONDS,
)
from ..shared.exceptions import PaymentGatewayError, RefundGatewayError

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Thin async client over the Razorpay orders and refunds endpoints"""

    def __init__(
        self,
        key_id: Optional[str] = RAZORPAY_KEY_ID,
        key_secret: Optional[str] = RAZORPAY_KEY_SECRET,
        api_url: str = RAZORPAY_API_URL,
        timeout: float = RAZORPAY_TIMEOUT_SECONDS,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

        if not self.is_available():
            logger.warning(
                "RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET not set; refunds will need manual processing"
            )

    def is_available(self) -> bool:
        return bool(self.key_id and self.key_secret)

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as http_client:
            response = await http_client.post(
                f"{self.api_url}{path}",
                json=payload,
                auth=(self.key_id, self.key_secret),
                headers={"Content-Type": "application/json"},
            )
        if response.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"Razorpay {path} failed with {response.status_code}: {response.text}",
                request=response.request,
                response=response,
            )
        return response.json()

    async def create_order(
        self, amount_minor_units: int, receipt: str, notes: Optional[dict] = None
    ) -> Dict[str, Any]:
        """Create a payment order for the already validated amount"""
        if not self.is_available():
            raise PaymentGatewayError("Payment gateway not configured")

        try:
            order = await self._post(
                "/orders",
                {
                    "amount": amount_minor_units,
                    "currency": CURRENCY,
                    "receipt": receipt,
                    "notes": notes or {},
                },
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Error creating Razorpay order: {e}")
            raise PaymentGatewayError(str(e)) from e

        logger.info(f"✅ Razorpay order created: {order.get('id')}")
        return order

    def verify_payment_signature(
        self, gateway_order_id: str, gateway_payment_id: str, signature: str
    ) -> bool:
        """Checkout signature is HMAC-SHA256 of "<order_id>|<payment_id>" keyed with the secret"""
        if not self.key_secret or not signature:
            return False
        payload = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
        expected = hmac.new(self.key_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def create_refund(
        self, gateway_payment_ref: str, amount_minor_units: int, notes: Optional[dict] = None
    ) -> Dict[str, Any]:
        """
        Refund part or all of a captured payment.

        Returns the gateway response containing the refund "id".

        Raises:
            RefundGatewayError: gateway not configured, unreachable or refused
        """
        if not self.is_available():
            raise RefundGatewayError("Payment gateway not configured")

        try:
            refund = await self._post(
                f"/payments/{gateway_payment_ref}/refund",
                {"amount": amount_minor_units, "notes": notes or {}},
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Refund failed for payment {gateway_payment_ref}: {e}")
            raise RefundGatewayError(str(e)) from e

        if not refund.get("id"):
            raise RefundGatewayError("Gateway response did not include a refund id")

        logger.info(f"✅ Refund {refund['id']} created for payment {gateway_payment_ref}")
        return refund


def get_payment_gateway() -> RazorpayGateway:
    """Dependency injection for the payment gateway"""
    return RazorpayGateway()
