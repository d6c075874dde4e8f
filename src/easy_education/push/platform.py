"""Push platform capability interface.

The bootstrap functions in `easy_education.push.bootstrap` are written against
these protocols rather than a concrete browser or messaging backend.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class NotificationPermission(str, Enum):
    """Notification permission state, as the browser reports it."""

    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"  # Not asked yet

    @classmethod
    def parse(cls, value: str | None) -> "NotificationPermission":
        """Parse a reported permission, treating unknown values as not asked."""
        try:
            return cls(value) if value else cls.DEFAULT
        except ValueError:
            return cls.DEFAULT


@dataclass(frozen=True)
class PushSubscription:
    """A push subscription handle."""

    endpoint: str
    token: str | None = None


class ServiceWorkerError(Exception):
    """A service worker could not be registered."""


class WorkerRegistration(Protocol):
    """An active service worker registration."""

    scope: str

    async def subscribe(
        self, *, user_visible_only: bool, application_server_key: str | None
    ) -> PushSubscription: ...

    async def show_notification(self, title: str, options: dict[str, Any]) -> None: ...


class PushPlatform(Protocol):
    """Notification, service worker and push capabilities of a client."""

    supports_notifications: bool
    supports_service_worker: bool
    supports_push_manager: bool

    @property
    def permission(self) -> NotificationPermission: ...

    async def request_permission(self) -> NotificationPermission: ...

    async def register_worker(self, script_url: str) -> WorkerRegistration: ...

    async def ready(self) -> WorkerRegistration: ...

    async def get_token(self) -> str | None: ...
