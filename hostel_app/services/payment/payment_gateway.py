"""
Razorpay payment gateway adapter.

Talks to the Orders and Refunds REST API over httpx with basic auth
(key id / key secret) and verifies checkout signatures locally with hmac.
The razorpay SDK is not used: it wraps requests, and an httpx client lets
tests mount a transport in place of the network.

Failure mapping:
- timeouts, transport errors, 401/403 and 5xx raise GatewayUnavailableError;
- any other non-2xx answer raises GatewayRejectedError;
- a signature mismatch is a normal ``False`` from ``verify_payment``.

Nothing is retried automatically: an order is a payment intent and must not
be opened twice behind the caller's back.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from hostel_app.config.settings import Settings
from hostel_app.core.exceptions import GatewayRejectedError, GatewayUnavailableError
from hostel_app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    id: str
    amount: int
    currency: str
    status: str
    receipt: Optional[str] = None
    notes: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "GatewayOrder":
        notes = payload.get("notes") or {}
        # The API returns an empty list instead of an object when there are no notes
        if not isinstance(notes, dict):
            notes = {}
        return cls(
            id=payload["id"],
            amount=int(payload["amount"]),
            currency=payload.get("currency", ""),
            status=payload.get("status", "created"),
            receipt=payload.get("receipt"),
            notes={str(k): str(v) for k, v in notes.items()},
        )


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of ``order_id|payment_id`` keyed with the gateway secret."""
    return hmac.new(
        secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256,
    ).hexdigest()


class RazorpayGateway:
    """Payment gateway adapter. One instance per process; the HTTP client is thread-safe."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._key_id = key_id
        self._key_secret = key_secret
        self._client = httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "RazorpayGateway":
        return cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET.get_secret_value(),
            base_url=settings.RAZORPAY_BASE_URL,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS,
            transport=transport,
        )

    @property
    def public_key_id(self) -> str:
        """The key id the browser checkout widget needs. The secret never leaves."""
        return self._key_id

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------ HTTP

    def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error("Payment gateway timeout", extra={"path": path, "method": method})
            raise GatewayUnavailableError(reason="timeout") from e
        except httpx.TransportError as e:
            logger.error(
                "Payment gateway unreachable",
                extra={"path": path, "method": method, "error": str(e)},
            )
            raise GatewayUnavailableError(reason="network") from e

        if response.status_code in (401, 403):
            logger.critical("Payment gateway rejected our credentials", extra={"path": path})
            raise GatewayUnavailableError(reason="auth")

        if response.status_code >= 500:
            logger.error(
                "Payment gateway server error",
                extra={"path": path, "status_code": response.status_code},
            )
            raise GatewayUnavailableError(reason=f"http_{response.status_code}")

        if response.status_code >= 400:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {"description": response.text[:200]}
            logger.warning(
                "Payment gateway refused request",
                extra={"path": path, "status_code": response.status_code, "gateway_error": error},
            )
            raise GatewayRejectedError(
                error.get("description") or "Payment gateway refused the request",
                response.status_code,
                error,
            )

        return response.json()

    # ------------------------------------------------------------ operations

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> GatewayOrder:
        """Open a payment intent for ``amount_minor`` in ``currency``."""
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        order = GatewayOrder.from_payload(self._request("POST", "/orders", json=payload))
        logger.info(
            "Payment order created",
            extra={"order_id": order.id, "amount_minor": order.amount, "currency": order.currency},
        )
        return order

    def fetch_order(self, order_id: str) -> GatewayOrder:
        return GatewayOrder.from_payload(self._request("GET", f"/orders/{order_id}"))

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check a checkout signature in constant time.

        Never raises: malformed input simply fails verification.
        """
        if not (order_id and payment_id and signature):
            return False
        try:
            expected = compute_signature(self._key_secret, order_id, payment_id)
            return hmac.compare_digest(expected, signature.strip().lower())
        except (TypeError, ValueError, UnicodeError):
            return False

    def refund_payment(self, payment_id: str, amount_minor: Optional[int] = None) -> str:
        """Refund a captured payment (fully when ``amount_minor`` is None); returns the refund id."""
        payload = {"amount": amount_minor} if amount_minor is not None else {}
        refund = self._request("POST", f"/payments/{payment_id}/refund", json=payload)
        logger.info(
            "Payment refunded",
            extra={"payment_id": payment_id, "refund_id": refund.get("id"), "amount_minor": amount_minor},
        )
        return refund["id"]
