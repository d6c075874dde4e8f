"""Browser device registration for push notifications.

The page script feature-detects the browser, asks for notification
permission and fetches an FCM token, then reports all of it here. The
server replays the report through the push bootstrap, which records the
outcome and, for admins, keeps the admin token used for fan-out
notifications up to date.
"""

from typing import Any

import structlog
from litestar import Request, Router, post
from litestar.exceptions import NotAuthorizedException
from litestar.status_codes import HTTP_200_OK
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.auth import current_user_id, require_login
from easy_education.models.user import User
from easy_education.push.bootstrap import (
    register_service_workers,
    request_notification_permission,
    subscribe_user_to_push,
)
from easy_education.push.device import DevicePushPlatform, DeviceReport, store_device
from easy_education.services.notifications import save_admin_fcm_token

logger = structlog.get_logger()


@post("/devices", status_code=HTTP_200_OK, guards=[require_login])
async def register_device(
    request: Request[Any, Any, Any], session: AsyncSession, data: DeviceReport
) -> dict[str, Any]:
    """Record a browser's push capabilities, permission and token.

    Refused permission is reported in the response, not as an error.
    """
    user_id = current_user_id(request)
    if user_id is None:
        raise NotAuthorizedException(detail="Authentication required")
    platform = DevicePushPlatform.from_report(data)

    workers = await register_service_workers(platform)
    granted = await request_notification_permission(platform)
    await store_device(session, user_id, data, platform.permission)

    subscription = await subscribe_user_to_push(platform) if granted else None

    admin_token = None
    user = await session.get(User, user_id)
    if user is not None and user.is_admin:
        admin_token = await save_admin_fcm_token(session, user_id, platform)

    logger.info(
        "Push device reported",
        user_id=user_id,
        permission=platform.permission.value,
        subscribed=subscription is not None,
    )
    return {
        "permission": platform.permission.value,
        "granted": granted,
        "workers": workers,
        "subscribed": subscription is not None,
        "adminTokenSaved": admin_token is not None,
    }


push_router = Router(path="/api/push", route_handlers=[register_device], tags=["Push"])
