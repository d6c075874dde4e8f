"""BangoPay payment gateway client.

Two calls are used:
- POST {base}/create        -> hosted payment page URL
- GET  {base}/verify/{id}   -> authoritative payment status

Docs: https://bangopaybd.com/developers
"""

import json
from urllib.parse import quote
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from easy_education.core.config import settings

logger = structlog.get_logger()

GATEWAY_NAME = "BangoPay"
COMPLETED_STATUS = "completed"


class PaymentGatewayError(Exception):
    """The gateway is unreachable, misconfigured, or rejected the request."""


@dataclass
class GatewayPayment:
    """A payment as reported by the gateway's verify endpoint."""

    status: str
    transaction_id: str | None
    order_id: str | None
    amount: float
    currency: str
    payment_method: str | None
    customer_name: str | None
    customer_email: str | None
    metadata: dict[str, Any] = field(default_factory=dict)
    message: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED_STATUS

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "GatewayPayment":
        return cls(
            status=str(data.get("status", "")),
            transaction_id=data.get("transaction_id"),
            order_id=data.get("order_id"),
            amount=_to_float(data.get("amount")),
            currency=data.get("currency") or "BDT",
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name"),
            customer_email=data.get("customer_email"),
            metadata=parse_metadata(data.get("metadata")),
            message=data.get("message"),
        )


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_metadata(raw: Any) -> dict[str, Any]:
    """Decode payment metadata, which the gateway may echo back as a JSON string."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.error("Failed to parse payment metadata", metadata=str(raw)[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class PaymentGatewayClient:
    """Async client for the gateway API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 20.0,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.bangopay_api_key
        self.base_url = (base_url or settings.bangopay_base_url).rstrip("/")
        self._transport = transport
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise PaymentGatewayError("Server configuration error: payment service key missing")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def create_payment(
        self,
        *,
        fullname: str,
        email: str,
        amount: float,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a hosted payment.

        Returns:
            {"payment_url": ..., "order_id": ...}

        Raises:
            PaymentGatewayError: On transport errors or a non-success response
        """
        metadata = metadata or {}
        body = {
            "amount": float(amount),
            "currency": "BDT",
            "description": f"Course purchase by {fullname}",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "fail_url": cancel_url,
            "customer_email": email,
            "customer_phone": metadata.get("phone", ""),
            "metadata": json.dumps(metadata),
        }
        logger.info("Creating gateway payment", email=email, amount=body["amount"])

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.post(
                    f"{self.base_url}/create", json=body, headers=self._headers()
                )
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentGatewayError(f"Payment gateway unavailable: {e}") from e

        if data.get("status") == "success" and data.get("payment_url"):
            return {"payment_url": data["payment_url"], "order_id": data.get("order_id")}

        logger.error("Gateway rejected payment creation", response=data)
        raise PaymentGatewayError(
            data.get("message") or data.get("error") or "Failed to create payment link"
        )

    async def verify_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch the authoritative status of a payment.

        Raises:
            PaymentGatewayError: On transport errors or an unreadable response
        """
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self._timeout
            ) as client:
                response = await client.get(
                    f"{self.base_url}/verify/{quote(payment_id, safe='')}",
                    headers=self._headers(),
                )
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise PaymentGatewayError(f"Payment gateway unavailable: {e}") from e

        payment = GatewayPayment.from_response(data)
        logger.info(
            "Gateway verification",
            payment_id=payment_id,
            status=payment.status,
            transaction_id=payment.transaction_id,
        )
        return payment
