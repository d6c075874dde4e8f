"""Tests for the push bootstrap functions and device platform."""

from typing import Any

from easy_education.models.push_device import PushDevice
from easy_education.push.bootstrap import (
    SERVICE_WORKER_SCRIPTS,
    get_fcm_token,
    register_service_workers,
    request_notification_permission,
    send_local_notification,
    subscribe_user_to_push,
)
from easy_education.push.device import (
    DeviceCapabilities,
    DevicePushPlatform,
    DeviceReport,
    store_device,
)
from easy_education.push.platform import (
    NotificationPermission,
    PushSubscription,
    ServiceWorkerError,
)


class FakeRegistration:
    scope = "/"

    def __init__(self, fail_subscribe: bool = False) -> None:
        self.shown: list[tuple[str, dict[str, Any]]] = []
        self.fail_subscribe = fail_subscribe

    async def subscribe(self, *, user_visible_only, application_server_key):
        if self.fail_subscribe:
            raise RuntimeError("push service unavailable")
        return PushSubscription(endpoint="https://push.example.com/sub/1")

    async def show_notification(self, title, options):
        self.shown.append((title, options))


class FakePlatform:
    """Scriptable browser."""

    def __init__(
        self,
        permission: NotificationPermission = NotificationPermission.DEFAULT,
        prompt_answer: NotificationPermission = NotificationPermission.GRANTED,
        notifications: bool = True,
        service_worker: bool = True,
        push_manager: bool = True,
        failing_scripts: tuple[str, ...] = (),
        token: str | None = "fcm-token-1",
        fail_subscribe: bool = False,
    ) -> None:
        self.supports_notifications = notifications
        self.supports_service_worker = service_worker
        self.supports_push_manager = push_manager
        self._permission = permission
        self.prompt_answer = prompt_answer
        self.prompts = 0
        self.failing_scripts = failing_scripts
        self.token = token
        self.registration = FakeRegistration(fail_subscribe)

    @property
    def permission(self) -> NotificationPermission:
        return self._permission

    async def request_permission(self) -> NotificationPermission:
        self.prompts += 1
        self._permission = self.prompt_answer
        return self._permission

    async def register_worker(self, script_url: str):
        if script_url in self.failing_scripts:
            raise ServiceWorkerError(f"cannot register {script_url}")
        return self.registration

    async def ready(self):
        return self.registration

    async def get_token(self) -> str | None:
        return self.token


class TestRegisterServiceWorkers:
    async def test_both_registered(self):
        scopes = await register_service_workers(FakePlatform())

        assert scopes == {script: "/" for script in SERVICE_WORKER_SCRIPTS}

    async def test_one_failure_does_not_stop_the_other(self):
        scopes = await register_service_workers(
            FakePlatform(failing_scripts=("/service-worker.js",))
        )

        assert scopes["/service-worker.js"] is None
        assert scopes["/firebase-messaging-sw.js"] == "/"

    async def test_unsupported_is_a_no_op(self):
        assert await register_service_workers(FakePlatform(service_worker=False)) == {}


class TestRequestPermission:
    async def test_granted_without_prompt(self):
        platform = FakePlatform(permission=NotificationPermission.GRANTED)

        assert await request_notification_permission(platform)
        assert platform.prompts == 0

    async def test_denied_never_prompts(self):
        platform = FakePlatform(permission=NotificationPermission.DENIED)

        assert not await request_notification_permission(platform)
        assert platform.prompts == 0

    async def test_undecided_prompts_once(self):
        platform = FakePlatform()

        assert await request_notification_permission(platform)
        assert platform.prompts == 1

    async def test_prompt_refused(self):
        platform = FakePlatform(prompt_answer=NotificationPermission.DENIED)

        assert not await request_notification_permission(platform)

    async def test_unsupported(self):
        assert not await request_notification_permission(FakePlatform(notifications=False))


class TestSubscribe:
    async def test_subscribes_when_granted(self):
        subscription = await subscribe_user_to_push(FakePlatform())

        assert subscription == PushSubscription(endpoint="https://push.example.com/sub/1")

    async def test_no_push_manager(self):
        assert await subscribe_user_to_push(FakePlatform(push_manager=False)) is None

    async def test_permission_refused(self):
        platform = FakePlatform(prompt_answer=NotificationPermission.DENIED)

        assert await subscribe_user_to_push(platform) is None

    async def test_subscribe_failure_returns_none(self):
        assert await subscribe_user_to_push(FakePlatform(fail_subscribe=True)) is None


class TestLocalNotification:
    async def test_default_options_merged(self):
        platform = FakePlatform(permission=NotificationPermission.GRANTED)

        await send_local_notification(platform, "Hello", {"body": "World", "icon": "/x.png"})

        title, options = platform.registration.shown[0]
        assert title == "Hello"
        assert options["body"] == "World"
        assert options["icon"] == "/x.png"
        assert options["badge"] == "/placeholder-logo.png"
        assert options["vibrate"] == [200, 100, 200]

    async def test_nothing_shown_without_permission(self):
        platform = FakePlatform(permission=NotificationPermission.DENIED)

        await send_local_notification(platform, "Hello")

        assert platform.registration.shown == []

    async def test_nothing_shown_without_service_worker(self):
        platform = FakePlatform(
            permission=NotificationPermission.GRANTED, service_worker=False
        )

        await send_local_notification(platform, "Hello")

        assert platform.registration.shown == []


class TestFcmToken:
    async def test_token_after_permission(self):
        assert await get_fcm_token(FakePlatform()) == "fcm-token-1"

    async def test_no_token_without_permission(self):
        platform = FakePlatform(prompt_answer=NotificationPermission.DENIED)

        assert await get_fcm_token(platform) is None


class StubFCM:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.sent: list[tuple] = []

    def is_available(self) -> bool:
        return self.available

    def send_multicast(self, tokens, title, body, **kwargs):
        from easy_education.core.firebase import MulticastResult

        self.sent.append((tokens, title, body, kwargs))
        return MulticastResult(success_count=len(tokens), failure_count=0)


class TestDevicePlatform:
    """Reported browsers as push platforms."""

    def test_report_accepts_camel_case(self):
        report = DeviceReport.model_validate(
            {
                "token": "tok",
                "permission": "granted",
                "capabilities": {"serviceWorker": True, "pushManager": True, "notifications": True},
                "userAgent": "Firefox",
            }
        )

        assert report.capabilities.service_worker
        assert report.user_agent == "Firefox"

    async def test_reported_permission_replayed_as_prompt_answer(self):
        report = DeviceReport(
            token="tok",
            permission="granted",
            capabilities=DeviceCapabilities(
                service_worker=True, push_manager=True, notifications=True
            ),
        )
        platform = DevicePushPlatform.from_report(report, fcm=StubFCM())

        assert platform.permission is NotificationPermission.DEFAULT
        assert await request_notification_permission(platform)
        assert platform.permission is NotificationPermission.GRANTED

    async def test_both_workers_share_fcm_registration(self):
        platform = DevicePushPlatform(
            tokens=[], permission=NotificationPermission.GRANTED, fcm=StubFCM()
        )

        scopes = await register_service_workers(platform)

        assert all(scope == "/" for scope in scopes.values())

    async def test_local_notification_pushed_through_fcm(self):
        fcm = StubFCM()
        platform = DevicePushPlatform(
            tokens=["tok"], permission=NotificationPermission.GRANTED, fcm=fcm
        )

        await send_local_notification(platform, "Payment Successful!", {"body": "Thanks"})

        tokens, title, body, kwargs = fcm.sent[0]
        assert tokens == ["tok"]
        assert title == "Payment Successful!"
        assert body == "Thanks"
        assert kwargs["icon"] == "/placeholder-logo.png"

    async def test_firebase_unavailable_means_no_notifications(self):
        platform = DevicePushPlatform(
            tokens=["tok"], permission=NotificationPermission.GRANTED, fcm=StubFCM(False)
        )

        assert not platform.supports_notifications

    async def test_for_user_uses_granted_devices(self, async_session, test_user):
        async_session.add_all(
            [
                PushDevice(user_id=test_user.id, token="granted-tok", permission="granted"),
                PushDevice(user_id=test_user.id, token="denied-tok", permission="denied"),
            ]
        )
        await async_session.commit()

        platform = await DevicePushPlatform.for_user(async_session, test_user.id, fcm=StubFCM())

        assert platform.tokens == ["granted-tok"]
        assert platform.permission is NotificationPermission.GRANTED

    async def test_for_user_without_devices(self, async_session, test_user):
        platform = await DevicePushPlatform.for_user(async_session, test_user.id, fcm=StubFCM())

        assert platform.tokens == []
        assert not platform.supports_service_worker

    async def test_store_device_upserts_by_token(self, async_session, test_user):
        report = DeviceReport(token="tok", permission="default", user_agent="Chrome")
        await store_device(async_session, test_user.id, report, NotificationPermission.DEFAULT)
        await store_device(async_session, test_user.id, report, NotificationPermission.GRANTED)

        platform = await DevicePushPlatform.for_user(async_session, test_user.id, fcm=StubFCM())

        assert platform.tokens == ["tok"]

    async def test_store_device_skips_tokenless_reports(self, async_session, test_user):
        report = DeviceReport(permission="denied")

        assert await store_device(
            async_session, test_user.id, report, NotificationPermission.DENIED
        ) is None
