"""Tests for admin notification helpers."""

import json

import httpx

from easy_education.models.admin_token import AdminToken
from easy_education.push.device import DevicePushPlatform
from easy_education.push.platform import NotificationPermission
from easy_education.services.notifications import (
    CheckoutNotice,
    EnrollmentNotice,
    build_checkout_payload,
    build_enrollment_payload,
    collect_admin_tokens,
    format_amount,
    notify_admins_of_checkout,
    notify_admins_of_enrollment,
    save_admin_fcm_token,
    send_email_notification,
)


class StubFCM:
    """FCM client that is always available and records sends."""

    def __init__(self) -> None:
        self.sent: list[tuple] = []

    def is_available(self) -> bool:
        return True

    def send_multicast(self, tokens, title, body, **kwargs):
        from easy_education.core.firebase import MulticastResult

        self.sent.append((tokens, title, body, kwargs))
        return MulticastResult(success_count=len(tokens), failure_count=0)


def granted_platform(token: str | None = "fcm-token-admin") -> DevicePushPlatform:
    return DevicePushPlatform(
        tokens=[token] if token else [],
        permission=NotificationPermission.GRANTED,
        fcm=StubFCM(),
    )


def test_format_amount():
    assert format_amount(500) == "৳500"
    assert format_amount(499.5) == "৳499.5"


def test_checkout_payload_shape():
    payload = build_checkout_payload(
        ["t1", "t2"], CheckoutNotice(payment_id="pay-1", name="Rahim", total_amount=1200.0)
    )
    body = payload.to_request_body()

    assert body["tokens"] == ["t1", "t2"]
    assert body["notification"]["title"] == "New Checkout Request"
    assert body["notification"]["body"] == "Rahim has submitted a payment of ৳1200"
    assert body["notification"]["tag"] == "checkout-pay-1"
    assert body["notification"]["data"] == {
        "url": "/admin/payments",
        "paymentId": "pay-1",
        "type": "checkout",
    }


def test_enrollment_payload_mentions_free():
    payload = build_enrollment_payload(
        ["t1"],
        EnrollmentNotice(
            user_id="u1",
            user_name="Rahim",
            courses=[{"id": "c1", "title": "Intro to Maths"}],
            is_free_enrollment=True,
        ),
    )

    assert payload.title == "New Enrollment"
    assert payload.body == "Rahim enrolled in Intro to Maths (free)"
    assert payload.tag == "enrollment-u1-c1"


class TestSaveAdminToken:
    """Remembering admin browser tokens."""

    async def test_admin_token_saved(self, async_session, admin_user):
        token = await save_admin_fcm_token(async_session, admin_user.id, granted_platform())

        assert token == "fcm-token-admin"
        row = await async_session.get(AdminToken, admin_user.id)
        assert row.token == "fcm-token-admin"
        assert row.role == "admin"

    async def test_admin_token_overwritten(self, async_session, admin_user):
        await save_admin_fcm_token(async_session, admin_user.id, granted_platform("old"))
        await save_admin_fcm_token(async_session, admin_user.id, granted_platform("new"))

        assert await collect_admin_tokens(async_session) == ["new"]

    async def test_non_admin_skipped(self, async_session, test_user):
        token = await save_admin_fcm_token(async_session, test_user.id, granted_platform())

        assert token is None
        assert await async_session.get(AdminToken, test_user.id) is None

    async def test_unknown_user_skipped(self, async_session):
        assert await save_admin_fcm_token(async_session, "nobody", granted_platform()) is None

    async def test_no_token_available(self, async_session, admin_user):
        token = await save_admin_fcm_token(async_session, admin_user.id, granted_platform(None))

        assert token is None


class TestNotifyAdmins:
    """Fan-out to admin tokens."""

    async def test_no_admins_no_request(self, async_session, dispatcher):
        await notify_admins_of_checkout(
            async_session,
            CheckoutNotice(payment_id="p1", name="Rahim", total_amount=100),
            dispatcher,
        )

        assert dispatcher.payloads == []

    async def test_submits_to_every_admin_token(self, async_session, admin_user, dispatcher):
        async_session.add(AdminToken(user_id=admin_user.id, token="admin-token"))
        await async_session.commit()

        await notify_admins_of_enrollment(
            async_session,
            EnrollmentNotice(user_id="u1", user_name="Rahim", final_amount=500.0),
            dispatcher,
        )

        assert len(dispatcher.payloads) == 1
        assert dispatcher.payloads[0].tokens == ["admin-token"]

    async def test_missing_dispatcher_is_not_an_error(self, async_session, admin_user):
        async_session.add(AdminToken(user_id=admin_user.id, token="admin-token"))
        await async_session.commit()

        await notify_admins_of_checkout(
            async_session,
            CheckoutNotice(payment_id="p1", name="Rahim", total_amount=100),
            None,
        )


class TestSendEmailNotification:
    async def test_posts_to_email_endpoint_with_internal_token(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"success": True})

        ok = await send_email_notification(
            "admin@example.com", "New payment", "Rahim paid", transport=httpx.MockTransport(handler)
        )

        assert ok
        assert requests[0].url.path == "/api/send-email"
        assert requests[0].headers["X-Internal-Token"]
        assert json.loads(requests[0].content) == {
            "to": "admin@example.com",
            "subject": "New payment",
            "body": "Rahim paid",
        }

    async def test_failure_returns_false(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        assert not await send_email_notification("a@b.c", "s", "b", transport=transport)
