"""Admin notification helpers.

- `save_admin_fcm_token`: remember an admin browser's FCM token
- `notify_admins_of_checkout` / `notify_admins_of_enrollment`: push a summary
  to every admin token through the background dispatcher
- `send_email_notification`: POST to the e-mail endpoint

All of them are best effort: failures are logged and reported as None/False,
never raised to the caller.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import INTERNAL_TOKEN_HEADER
from easy_education.core.config import settings
from easy_education.models.admin_token import AdminToken
from easy_education.models.user import User, UserRole
from easy_education.push.bootstrap import get_fcm_token
from easy_education.push.platform import PushPlatform
from easy_education.services.dispatcher import Dispatcher, NotificationPayload

logger = structlog.get_logger()

CURRENCY_SYMBOL = "৳"


@dataclass
class CheckoutNotice:
    """A submitted checkout, as admins see it."""

    payment_id: str
    name: str
    total_amount: float
    course_count: int = 0


@dataclass
class EnrollmentNotice:
    """A completed enrollment, as admins see it."""

    user_id: str
    user_name: str
    courses: Sequence[dict[str, Any]] = field(default_factory=list)
    final_amount: float = 0.0
    is_free_enrollment: bool = False
    user_email: str | None = None


def format_amount(amount: float) -> str:
    """Format a money amount with the currency symbol, dropping a zero fraction."""
    value = int(amount) if float(amount).is_integer() else round(amount, 2)
    return f"{CURRENCY_SYMBOL}{value}"


async def save_admin_fcm_token(
    session: AsyncSession, user_id: str, platform: PushPlatform
) -> str | None:
    """Store the FCM token of an admin's browser.

    Non-admins (and unknown users) are skipped silently: nothing is written
    and None is returned.

    Returns:
        The saved token, or None
    """
    try:
        user = await session.get(User, user_id)
        if user is None or user.role != UserRole.ADMIN.value:
            return None

        token = await get_fcm_token(platform)
        if not token:
            logger.info("No FCM token available", user_id=user_id)
            return None

        admin_token = await session.get(AdminToken, user_id)
        if admin_token:
            admin_token.token = token
            admin_token.role = UserRole.ADMIN.value
        else:
            session.add(AdminToken(user_id=user_id, token=token, role=UserRole.ADMIN.value))
        await session.commit()

        logger.info("Admin FCM token saved", user_id=user_id)
        return token
    except Exception as e:
        await session.rollback()
        logger.error("Error saving admin FCM token", user_id=user_id, error=str(e))
        return None


async def collect_admin_tokens(session: AsyncSession) -> list[str]:
    """All non-empty admin FCM tokens."""
    result = await session.execute(select(AdminToken.token))
    return [token for token in result.scalars().all() if token]


def build_checkout_payload(tokens: list[str], checkout: CheckoutNotice) -> NotificationPayload:
    """Notification for a new checkout request."""
    return NotificationPayload(
        tokens=tokens,
        title="New Checkout Request",
        body=(
            f"{checkout.name} has submitted a payment of {format_amount(checkout.total_amount)}"
        ),
        tag=f"checkout-{checkout.payment_id}",
        data={
            "url": "/admin/payments",
            "paymentId": checkout.payment_id,
            "type": "checkout",
        },
    )


def _course_key(courses: Sequence[dict[str, Any]]) -> str:
    ids = [str(c["id"]) for c in courses if c.get("id")]
    return "-".join(ids) if ids else str(len(courses))


def build_enrollment_payload(
    tokens: list[str], enrollment: EnrollmentNotice
) -> NotificationPayload:
    """Notification for a new enrollment."""
    titles = [str(c.get("title", "")) for c in enrollment.courses if c.get("title")]
    course_text = ", ".join(titles) if titles else f"{len(enrollment.courses)} course(s)"
    if enrollment.is_free_enrollment:
        body = f"{enrollment.user_name} enrolled in {course_text} (free)"
    else:
        body = (
            f"{enrollment.user_name} enrolled in {course_text} "
            f"for {format_amount(enrollment.final_amount)}"
        )

    return NotificationPayload(
        tokens=tokens,
        title="New Enrollment",
        body=body,
        tag=f"enrollment-{enrollment.user_id}-{_course_key(enrollment.courses)}",
        data={
            "url": "/admin/payments",
            "userId": enrollment.user_id,
            "type": "enrollment",
        },
    )


async def notify_admins_of_checkout(
    session: AsyncSession, checkout: CheckoutNotice, dispatcher: Dispatcher | None
) -> None:
    """Tell every admin about a checkout. No admins, no request."""
    await _notify_admins(
        session, dispatcher, lambda tokens: build_checkout_payload(tokens, checkout)
    )


async def notify_admins_of_enrollment(
    session: AsyncSession, enrollment: EnrollmentNotice, dispatcher: Dispatcher | None
) -> None:
    """Tell every admin about an enrollment. No admins, no request."""
    await _notify_admins(
        session, dispatcher, lambda tokens: build_enrollment_payload(tokens, enrollment)
    )


async def _notify_admins(
    session: AsyncSession,
    dispatcher: Dispatcher | None,
    build: Callable[[list[str]], NotificationPayload],
) -> None:
    try:
        tokens = await collect_admin_tokens(session)
    except Exception as e:
        logger.error("Error notifying admins", error=str(e))
        return

    if not tokens:
        logger.info("No admin tokens found")
        return

    if dispatcher is None:
        logger.warning("Notification dispatcher not running, dropping admin notification")
        return

    dispatcher.submit(build(tokens))


async def send_email_notification(
    to: str,
    subject: str,
    body: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """POST an e-mail to the `/api/send-email` endpoint.

    Returns:
        True if the endpoint accepted it
    """
    base = (settings.base_url or f"http://127.0.0.1:{settings.api_port}").rstrip("/")
    try:
        async with httpx.AsyncClient(
            timeout=settings.notification_timeout_seconds, transport=transport
        ) as client:
            response = await client.post(
                f"{base}/api/send-email",
                json={"to": to, "subject": subject, "body": body},
                headers={INTERNAL_TOKEN_HEADER: settings.get_session_secret()},
            )
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error("Error sending email notification", to=to, error=str(e))
        return False

    logger.info("Email notification sent", to=to)
    return True
