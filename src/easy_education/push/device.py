"""Server-side push platform backed by reported browser devices.

Browsers report their capabilities, permission decision and FCM token to
`POST /api/push/devices`. `DevicePushPlatform` turns either such a report or
a user's stored devices into a `PushPlatform`, so notifications "shown" by the
bootstrap functions are delivered as FCM pushes to the user's browsers.
"""

import asyncio
from typing import Any

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.core.firebase import FCMClient, fcm_client
from easy_education.models.push_device import PushDevice
from easy_education.push.bootstrap import SERVICE_WORKER_SCRIPTS
from easy_education.push.platform import (
    NotificationPermission,
    PushSubscription,
    ServiceWorkerError,
)

logger = structlog.get_logger()

FCM_ENDPOINT_PREFIX = "https://fcm.googleapis.com/fcm/send/"


class DeviceCapabilities(BaseModel):
    """Browser feature detection results."""

    service_worker: bool = Field(default=False, alias="serviceWorker")
    push_manager: bool = Field(default=False, alias="pushManager")
    notifications: bool = False

    model_config = {"populate_by_name": True}


class DeviceReport(BaseModel):
    """What a browser tells us about itself."""

    token: str | None = None
    permission: str | None = None
    capabilities: DeviceCapabilities = Field(default_factory=DeviceCapabilities)
    user_agent: str | None = Field(default=None, alias="userAgent")

    model_config = {"populate_by_name": True}


class FCMWorkerRegistration:
    """Worker registration whose notifications go out through FCM."""

    scope = "/"

    def __init__(self, tokens: list[str], fcm: FCMClient) -> None:
        self.tokens = tokens
        self.fcm = fcm

    async def subscribe(
        self, *, user_visible_only: bool, application_server_key: str | None
    ) -> PushSubscription:
        if not self.tokens:
            raise ServiceWorkerError("No FCM token registered for this device")
        token = self.tokens[0]
        return PushSubscription(endpoint=f"{FCM_ENDPOINT_PREFIX}{token}", token=token)

    async def show_notification(self, title: str, options: dict[str, Any]) -> None:
        if not self.tokens:
            return
        result = await asyncio.to_thread(
            self.fcm.send_multicast,
            self.tokens,
            title,
            options.get("body", ""),
            data=options.get("data"),
            icon=options.get("icon"),
            badge=options.get("badge"),
            tag=options.get("tag"),
            vibrate=options.get("vibrate"),
        )
        logger.info(
            "Notification pushed",
            title=title,
            success_count=result.success_count,
            failure_count=result.failure_count,
        )


class DevicePushPlatform:
    """`PushPlatform` over one or more known browser devices."""

    def __init__(
        self,
        *,
        tokens: list[str],
        permission: NotificationPermission,
        supports_service_worker: bool = True,
        supports_push_manager: bool = True,
        prompt_answer: NotificationPermission | None = None,
        fcm: FCMClient = fcm_client,
    ) -> None:
        self.tokens = tokens
        self.supports_notifications = fcm.is_available()
        self.supports_service_worker = supports_service_worker
        self.supports_push_manager = supports_push_manager
        self._permission = permission
        self._prompt_answer = prompt_answer
        self._registration = FCMWorkerRegistration(tokens, fcm)

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        """Answer the permission prompt with the decision the browser reported.

        The browser shows the real prompt; without a reported decision the
        prompt counts as dismissed and the state stays undecided.
        """
        if self._prompt_answer is not None:
            self._permission = self._prompt_answer
        return self._permission

    async def register_worker(self, script_url: str) -> FCMWorkerRegistration:
        if script_url not in SERVICE_WORKER_SCRIPTS:
            raise ServiceWorkerError(f"Unknown service worker script: {script_url}")
        return self._registration

    async def ready(self) -> FCMWorkerRegistration:
        return self._registration

    async def get_token(self) -> str | None:
        return self.tokens[0] if self.tokens else None

    @classmethod
    def from_report(cls, report: DeviceReport, fcm: FCMClient = fcm_client) -> "DevicePushPlatform":
        """Build a platform for the browser that sent the report.

        The reported permission is the answer to the browser's own prompt, so
        it is replayed through `request_permission`.
        """
        reported = NotificationPermission.parse(report.permission)
        platform = cls(
            tokens=[report.token] if report.token else [],
            permission=NotificationPermission.DEFAULT,
            supports_service_worker=report.capabilities.service_worker,
            supports_push_manager=report.capabilities.push_manager,
            prompt_answer=reported,
            fcm=fcm,
        )
        if not report.capabilities.notifications:
            platform.supports_notifications = False
        return platform

    @classmethod
    async def for_user(
        cls, session: AsyncSession, user_id: str, fcm: FCMClient = fcm_client
    ) -> "DevicePushPlatform":
        """Build a platform over every device a user has registered."""
        result = await session.execute(select(PushDevice).where(PushDevice.user_id == user_id))
        devices = result.scalars().all()

        granted = [d for d in devices if d.permission == NotificationPermission.GRANTED.value]
        if granted:
            permission = NotificationPermission.GRANTED
        elif devices and all(d.permission == NotificationPermission.DENIED.value for d in devices):
            permission = NotificationPermission.DENIED
        else:
            permission = NotificationPermission.DEFAULT

        return cls(
            tokens=[d.token for d in granted if d.token],
            permission=permission,
            supports_service_worker=bool(devices),
            fcm=fcm,
        )


async def store_device(
    session: AsyncSession,
    user_id: str,
    report: DeviceReport,
    permission: NotificationPermission,
) -> PushDevice | None:
    """Upsert the reporting browser by its FCM token.

    Reports without a token carry nothing to push to and are not stored.
    """
    if not report.token:
        return None

    result = await session.execute(select(PushDevice).where(PushDevice.token == report.token))
    device = result.scalar_one_or_none()
    if device:
        device.user_id = user_id
        device.permission = permission.value
        device.user_agent = report.user_agent
    else:
        device = PushDevice(
            user_id=user_id,
            token=report.token,
            permission=permission.value,
            user_agent=report.user_agent,
        )
        session.add(device)

    await session.commit()
    return device
