"""SendGrid e-mail delivery."""

from typing import Any

import httpx
import structlog

from easy_education.core.config import settings

logger = structlog.get_logger()

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class EmailDeliveryError(Exception):
    """SendGrid is not configured or refused the message."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_mail(to: str, subject: str, html: str | None, text: str | None) -> dict[str, Any]:
    """Build a v3 mail/send body."""
    content = []
    if html:
        content.append({"type": "text/html", "value": html})
    if text:
        content.append({"type": "text/plain", "value": text})
    return {
        "personalizations": [{"to": [{"email": to}], "subject": subject}],
        "from": {"email": settings.sendgrid_from_email, "name": settings.sendgrid_from_name},
        "content": content,
    }


async def send_email(
    to: str,
    subject: str,
    html: str | None = None,
    text: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """Send one e-mail through SendGrid.

    Raises:
        EmailDeliveryError: On missing fields, missing key or a rejected send
    """
    if not to or not subject or not (html or text):
        raise EmailDeliveryError(
            "Missing required fields: to, subject, and html or text", status_code=400
        )
    if not settings.sendgrid_api_key:
        raise EmailDeliveryError("SendGrid API key not configured")

    try:
        async with httpx.AsyncClient(timeout=15.0, transport=transport) as client:
            response = await client.post(
                SENDGRID_SEND_URL,
                json=build_mail(to, subject, html, text),
                headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
            )
    except httpx.HTTPError as e:
        logger.error("SendGrid request failed", to=to, error=str(e))
        raise EmailDeliveryError("Failed to send email") from e

    if response.status_code >= 400:
        logger.error("SendGrid error", to=to, status_code=response.status_code, body=response.text)
        raise EmailDeliveryError("Failed to send email", status_code=response.status_code)

    logger.info("Email sent", to=to, subject=subject)
