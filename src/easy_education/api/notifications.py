"""Notification fan-out and e-mail endpoints.

Both are called by the server itself (the dispatcher and
`send_email_notification`) with the internal token; signed-in admins may
call them too.
"""

import asyncio
from typing import Any

import structlog
from litestar import Router, post
from litestar.response import Response
from litestar.status_codes import (
    HTTP_200_OK,
    HTTP_400_BAD_REQUEST,
    HTTP_503_SERVICE_UNAVAILABLE,
)
from pydantic import BaseModel, Field

from easy_education.core.auth import require_internal_or_admin
from easy_education.core.firebase import fcm_client
from easy_education.services.email import EmailDeliveryError, send_email

logger = structlog.get_logger()


class NotificationContent(BaseModel):
    """Notification shown on each device."""

    title: str
    body: str = ""
    icon: str | None = None
    badge: str | None = None
    tag: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class SendNotificationRequest(BaseModel):
    """Request body for a multicast push."""

    tokens: list[str] = Field(default_factory=list)
    notification: NotificationContent


class SendEmailRequest(BaseModel):
    """Request body for an e-mail."""

    to: str
    subject: str
    html: str | None = None
    text: str | None = None
    body: str | None = None  # Plain text, as sent by send_email_notification


@post("/send-notification", status_code=HTTP_200_OK, sync_to_thread=False)
async def send_notification(data: SendNotificationRequest) -> Response[dict[str, Any]]:
    """Push one notification to many FCM tokens."""
    tokens = [t for t in data.tokens if t]
    if not tokens:
        return Response(
            content={"success": False, "error": "No tokens provided"},
            status_code=HTTP_400_BAD_REQUEST,
        )
    if not fcm_client.is_available():
        return Response(
            content={"success": False, "error": "Push messaging is not configured"},
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
        )

    content = data.notification
    try:
        result = await asyncio.to_thread(
            fcm_client.send_multicast,
            tokens,
            content.title,
            content.body,
            data=content.data,
            icon=content.icon,
            badge=content.badge,
            tag=content.tag,
        )
    except Exception as e:
        logger.error("FCM multicast failed", tokens=len(tokens), error=str(e))
        return Response(
            content={"success": False, "error": str(e)},
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
        )

    logger.info(
        "Notification sent",
        tag=content.tag,
        success_count=result.success_count,
        failure_count=result.failure_count,
    )
    return Response(
        content={
            "success": True,
            "successCount": result.success_count,
            "failureCount": result.failure_count,
        }
    )


@post("/send-email", status_code=HTTP_200_OK, sync_to_thread=False)
async def send_email_endpoint(data: SendEmailRequest) -> Response[dict[str, Any]]:
    """Send one e-mail through SendGrid."""
    try:
        await send_email(data.to, data.subject, html=data.html, text=data.text or data.body)
    except EmailDeliveryError as e:
        return Response(content={"error": str(e)}, status_code=e.status_code)
    return Response(content={"success": True, "message": "Email sent successfully"})


notifications_router = Router(
    path="/api",
    route_handlers=[send_notification, send_email_endpoint],
    guards=[require_internal_or_admin],
    tags=["Notifications"],
)
