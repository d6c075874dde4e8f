"""Helpers shared by the API and service tests."""

import json
from typing import Any
from unittest.mock import patch

import httpx
from litestar.testing import AsyncTestClient


class RecordingDispatcher:
    """Collects submitted payloads instead of delivering them."""

    def __init__(self) -> None:
        self.payloads: list[Any] = []

    def submit(self, payload: Any) -> None:
        self.payloads.append(payload)


async def sign_in(client: AsyncTestClient, uid: str, email: str = "user@example.com") -> None:
    """Sign a test client in as `uid` through the ID token exchange."""
    claims = {"uid": uid, "email": email, "name": uid}
    with patch("easy_education.web.auth.verify_id_token", return_value=claims):
        response = await client.post("/auth/session", json={"idToken": "fake-id-token"})
    assert response.status_code == 200


async def csrf_headers(client: AsyncTestClient) -> dict[str, str]:
    """Fetch a page so the CSRF cookie is set, then build the header for unsafe requests."""
    if "csrf_token" not in client.cookies:
        await client.get("/announcements")
    return {"X-CSRF-Token": client.cookies.get("csrf_token", "")}


def gateway_transport(
    status: str = "completed",
    metadata: dict[str, Any] | None = None,
    transaction_id: str = "TXN-1001",
    amount: float = 500.0,
    calls: list[httpx.Request] | None = None,
) -> httpx.MockTransport:
    """Mock payment gateway whose verify endpoint reports one payment.

    Metadata is echoed back as a JSON string, the way the gateway does.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path.endswith("/create"):
            return httpx.Response(
                200,
                json={
                    "status": "success",
                    "payment_url": "https://pay.example.com/checkout/INV-1",
                    "order_id": "INV-1",
                },
            )
        return httpx.Response(
            200,
            json={
                "status": status,
                "transaction_id": transaction_id,
                "order_id": "INV-1",
                "amount": str(amount),
                "currency": "BDT",
                "payment_method": "bkash",
                "customer_email": "student@example.com",
                "metadata": json.dumps(metadata or {}),
            },
        )

    return httpx.MockTransport(handler)
