"""Service worker, permission and notification bootstrap.

Every function degrades silently: an unsupported capability, a refused
permission or a failed platform call yields False/None instead of an error.
"""

from typing import Any

import structlog

from easy_education.core.config import settings
from easy_education.push.platform import (
    NotificationPermission,
    PushPlatform,
    PushSubscription,
)

logger = structlog.get_logger()

SERVICE_WORKER_SCRIPTS: tuple[str, ...] = (
    "/service-worker.js",
    "/firebase-messaging-sw.js",
)

DEFAULT_NOTIFICATION_ICON = "/placeholder-logo.png"
DEFAULT_NOTIFICATION_OPTIONS: dict[str, Any] = {
    "icon": DEFAULT_NOTIFICATION_ICON,
    "badge": DEFAULT_NOTIFICATION_ICON,
    "vibrate": [200, 100, 200],
}


async def register_service_workers(platform: PushPlatform) -> dict[str, str | None]:
    """Register the app and messaging service workers.

    Each registration is attempted on its own; one failing does not stop
    the other.

    Returns:
        Script URL -> registration scope, or None for a failed registration.
        Empty when service workers are unsupported.
    """
    if not platform.supports_service_worker:
        return {}

    scopes: dict[str, str | None] = {}
    for script_url in SERVICE_WORKER_SCRIPTS:
        try:
            registration = await platform.register_worker(script_url)
        except Exception as e:
            logger.info("Service worker registration failed", script=script_url, error=str(e))
            scopes[script_url] = None
        else:
            logger.info("Service worker registered", script=script_url, scope=registration.scope)
            scopes[script_url] = registration.scope
    return scopes


async def request_notification_permission(platform: PushPlatform) -> bool:
    """Make sure notification permission is granted.

    Prompts only when the user has not decided yet.
    """
    if not platform.supports_notifications:
        logger.info("Notifications not supported")
        return False

    permission = platform.permission
    if permission is NotificationPermission.GRANTED:
        return True
    if permission is NotificationPermission.DENIED:
        return False

    return (await platform.request_permission()) is NotificationPermission.GRANTED


async def subscribe_user_to_push(platform: PushPlatform) -> PushSubscription | None:
    """Subscribe the client to push messages.

    Returns:
        The subscription, or None if unsupported, refused, or failed
    """
    if not platform.supports_service_worker or not platform.supports_push_manager:
        logger.info("Push notifications not supported")
        return None

    try:
        registration = await platform.ready()
        if not await request_notification_permission(platform):
            logger.info("Notification permission denied")
            return None

        return await registration.subscribe(
            user_visible_only=True,
            application_server_key=settings.fcm_vapid_key,
        )
    except Exception as e:
        logger.error("Failed to subscribe to push notifications", error=str(e))
        return None


async def send_local_notification(
    platform: PushPlatform, title: str, options: dict[str, Any] | None = None
) -> None:
    """Show a notification through the ready service worker.

    Caller options override the default icon, badge and vibration pattern.
    """
    if not platform.supports_notifications:
        logger.info("Notifications not supported")
        return
    if not platform.supports_service_worker:
        logger.info("Service worker not supported")
        return

    try:
        if await request_notification_permission(platform):
            registration = await platform.ready()
            await registration.show_notification(
                title, {**DEFAULT_NOTIFICATION_OPTIONS, **(options or {})}
            )
    except Exception as e:
        logger.error("Error showing notification", title=title, error=str(e))


async def get_fcm_token(platform: PushPlatform) -> str | None:
    """Get the client's FCM registration token once permission is granted."""
    try:
        if not await request_notification_permission(platform):
            return None
        token = await platform.get_token()
    except Exception as e:
        logger.error("Error getting FCM token", error=str(e))
        return None

    if not token:
        logger.info("No FCM token available")
    return token
