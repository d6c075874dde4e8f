"""Firebase Admin SDK access (Auth token verification and Cloud Messaging)."""

from dataclasses import dataclass
from typing import Any

import firebase_admin
import structlog
from firebase_admin import auth, credentials, messaging

from easy_education.core.config import settings

logger = structlog.get_logger()


def init_firebase() -> firebase_admin.App | None:
    """Initialize the default Firebase app from configured credentials.

    Returns None when no service account is configured; Firebase-backed
    features (login, push) then stay unavailable.
    """
    if firebase_ready():
        return firebase_admin.get_app()

    if not settings.firebase_configured():
        logger.warning("Firebase credentials not configured, push and login disabled")
        return None

    cred = credentials.Certificate(
        {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "client_email": settings.firebase_client_email,
            "private_key": (settings.firebase_private_key or "").replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )
    app = firebase_admin.initialize_app(cred)
    logger.info("Firebase initialized", project_id=settings.firebase_project_id)
    return app


def firebase_ready() -> bool:
    """Check if the default Firebase app exists."""
    try:
        firebase_admin.get_app()
    except ValueError:
        return False
    return True


def verify_id_token(id_token: str) -> dict[str, Any]:
    """Verify a Firebase ID token and return its decoded claims.

    Raises:
        ValueError: If Firebase is not initialized or the token is invalid
    """
    if not firebase_ready():
        raise ValueError("Firebase is not configured")
    try:
        return auth.verify_id_token(id_token)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError) as e:
        raise ValueError(f"Invalid ID token: {e}") from e


@dataclass
class MulticastResult:
    """Outcome of a multicast push."""

    success_count: int
    failure_count: int


class FCMClient:
    """Thin wrapper around firebase_admin.messaging multicast sends."""

    def is_available(self) -> bool:
        """Messaging is usable only once Firebase is initialized."""
        return firebase_ready()

    def send_multicast(
        self,
        tokens: list[str],
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
        icon: str | None = None,
        badge: str | None = None,
        tag: str | None = None,
        vibrate: list[int] | None = None,
    ) -> MulticastResult:
        """Send one notification to many device tokens.

        FCM data payloads only carry strings, so every data value is
        stringified.
        """
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data={k: str(v) for k, v in (data or {}).items()},
            webpush=messaging.WebpushConfig(
                notification=messaging.WebpushNotification(
                    title=title,
                    body=body,
                    icon=icon,
                    badge=badge,
                    tag=tag,
                    vibrate=vibrate,
                ),
            ),
        )
        response = messaging.send_each_for_multicast(message)
        return MulticastResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
        )


fcm_client = FCMClient()
