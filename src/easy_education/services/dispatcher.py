"""Fire-and-forget notification delivery.

Admin notifications must never block or fail the action that triggered them
(a checkout, an enrollment). Callers hand a payload to the dispatcher, which
runs the POST to the fan-out endpoint as a detached APScheduler job.

    caller ──submit()──> AsyncIOScheduler job ──POST──> /api/send-notification
                              │
                              └── logs success / failure, never raises

There is no retry, backoff or delivery tracking.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from easy_education.core.auth import INTERNAL_TOKEN_HEADER
from easy_education.core.config import settings

logger = structlog.get_logger()


@dataclass
class NotificationPayload:
    """Body of a fan-out request."""

    tokens: list[str]
    title: str
    body: str
    tag: str
    icon: str = "/placeholder-logo.png"
    badge: str = "/placeholder-logo.png"
    data: dict[str, Any] = field(default_factory=dict)

    def to_request_body(self) -> dict[str, Any]:
        """Serialize to the `/api/send-notification` request shape."""
        return {
            "tokens": self.tokens,
            "notification": {
                "title": self.title,
                "body": self.body,
                "icon": self.icon,
                "badge": self.badge,
                "tag": self.tag,
                "data": self.data,
            },
        }


class Dispatcher(Protocol):
    """Anything that accepts payloads for background delivery."""

    def submit(self, payload: NotificationPayload) -> None: ...


class NotificationDispatcher:
    """Deliver notification payloads in the background.

    Attributes:
        endpoint: Fan-out URL payloads are POSTed to
        scheduler: APScheduler instance running delivery jobs
        is_running: Whether the scheduler has been started
    """

    def __init__(
        self,
        endpoint: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint or settings.get_notification_endpoint()
        self.timeout = timeout or settings.notification_timeout_seconds
        self.scheduler = AsyncIOScheduler()
        self.is_running = False
        self._transport = transport
        self.logger = logger.bind(component="notification_dispatcher")

    def start(self) -> None:
        """Start the scheduler. Must be called from a running event loop."""
        if self.is_running:
            self.logger.warning("Dispatcher already running")
            return
        self.scheduler.start()
        self.is_running = True
        self.logger.info("Notification dispatcher started", endpoint=self.endpoint)

    def stop(self) -> None:
        """Stop the scheduler, dropping jobs that have not run yet."""
        if not self.is_running:
            return
        self.scheduler.shutdown(wait=False)
        self.is_running = False
        self.logger.info("Notification dispatcher stopped")

    def submit(self, payload: NotificationPayload) -> None:
        """Queue a payload for delivery and return immediately.

        The job runs as soon as the scheduler picks it up. Jobs submitted
        before `start()` run once the scheduler starts.
        """
        self.scheduler.add_job(
            self.deliver,
            args=[payload],
            name=f"notify:{payload.tag}",
            misfire_grace_time=None,
        )
        self.logger.debug("Notification queued", tag=payload.tag, tokens=len(payload.tokens))

    async def deliver(self, payload: NotificationPayload) -> bool:
        """POST one payload to the fan-out endpoint.

        Returns:
            True if the endpoint accepted it. Failures are logged, not raised.
        """
        log = self.logger.bind(tag=payload.tag, tokens=len(payload.tokens))
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    json=payload.to_request_body(),
                    headers={INTERNAL_TOKEN_HEADER: settings.get_session_secret()},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.warning(
                "Notification endpoint rejected payload",
                status_code=e.response.status_code,
            )
            return False
        except httpx.HTTPError as e:
            log.warning("Notification endpoint not available", error=str(e))
            return False

        log.info("Admin notification sent")
        return True


# Global dispatcher instance (set by the app lifespan)
_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher | None:
    """Get the global dispatcher instance."""
    return _dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher | None) -> None:
    """Set the global dispatcher instance."""
    global _dispatcher
    _dispatcher = dispatcher
