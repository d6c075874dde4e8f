"""Push notification bootstrap and platforms."""

from easy_education.push.bootstrap import (
    SERVICE_WORKER_SCRIPTS,
    get_fcm_token,
    register_service_workers,
    request_notification_permission,
    send_local_notification,
    subscribe_user_to_push,
)
from easy_education.push.platform import (
    NotificationPermission,
    PushPlatform,
    PushSubscription,
    ServiceWorkerError,
)

__all__ = [
    "SERVICE_WORKER_SCRIPTS",
    "NotificationPermission",
    "PushPlatform",
    "PushSubscription",
    "ServiceWorkerError",
    "get_fcm_token",
    "register_service_workers",
    "request_notification_permission",
    "send_local_notification",
    "subscribe_user_to_push",
]
