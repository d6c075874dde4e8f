"""Payment confirmation flow.

After the gateway redirects the buyer back, the confirmation page moves
through three states:

    VERIFYING ──> SUCCESS
        │
        └──────> ERROR

VERIFYING is the initial (loading) state; SUCCESS and ERROR are terminal.
The enrollment backend is the only authority on whether a payment counts;
the page never decides that from the redirect parameters alone, except to
reject an explicit non-completed status early.
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from easy_education.push.bootstrap import send_local_notification
from easy_education.push.platform import PushPlatform
from easy_education.services.notifications import format_amount

logger = structlog.get_logger()

COMPLETED_STATUSES = frozenset({"COMPLETED", "completed"})

NO_PAYMENT_ID_ERROR = "No payment ID found in redirect URL"
NOT_COMPLETED_ERROR = "Payment was not completed successfully"
VERIFICATION_FAILED_ERROR = "Payment verification failed"
PROCESSING_ERROR = "Failed to process payment. Please contact support."

# (invoice_id, transaction_id, user_id) -> verification response body
Verifier = Callable[[str, str, str], Awaitable[Mapping[str, Any]]]


class ConfirmationState(str, Enum):
    """Confirmation page state."""

    VERIFYING = "verifying"
    ERROR = "error"
    SUCCESS = "success"

    @property
    def is_terminal(self) -> bool:
        return self is not ConfirmationState.VERIFYING


class InvalidTransitionError(Exception):
    """A terminal confirmation state was asked to change."""


@dataclass
class RedirectParams:
    """Identifiers the gateway appends to the success redirect."""

    invoice_id: str | None = None
    transaction_id: str | None = None
    status: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "RedirectParams":
        """Read both the camelCase and snake_case parameter spellings."""
        return cls(
            invoice_id=query.get("invoiceId") or query.get("invoice_id") or None,
            transaction_id=query.get("transactionId") or query.get("transaction_id") or None,
            status=query.get("status") or None,
        )

    @property
    def has_payment_id(self) -> bool:
        return bool(self.invoice_id or self.transaction_id)

    @property
    def status_rejected(self) -> bool:
        """A status is present and is not a completed one."""
        return self.status is not None and self.status not in COMPLETED_STATUSES


@dataclass
class PaymentRecord:
    """What the success panel shows about the confirmed payment."""

    transaction_id: str | None
    final_amount: float
    courses: list[dict[str, Any]] = field(default_factory=list)

    @property
    def course_count(self) -> int:
        return len(self.courses)

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "PaymentRecord":
        """Derive the record from a verification response.

        Prefers the backend's own `paymentRecord` and falls back to the raw
        gateway `payment` with its `metadata.courses`.
        """
        record = response.get("paymentRecord")
        if isinstance(record, Mapping):
            return cls(
                transaction_id=record.get("transactionId"),
                final_amount=_amount(record.get("finalAmount")),
                courses=list(record.get("courses") or []),
            )

        payment = response.get("payment") or {}
        metadata = payment.get("metadata") or {}
        return cls(
            transaction_id=payment.get("transaction_id"),
            final_amount=_amount(payment.get("amount")),
            courses=list(metadata.get("courses") or []),
        )


def _amount(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class Toast:
    """A one-off message shown on the page."""

    title: str
    description: str
    variant: str = "success"


class PaymentConfirmation:
    """State machine for one visit to the confirmation page."""

    def __init__(self) -> None:
        self.state = ConfirmationState.VERIFYING
        self.error: str | None = None
        self.record: PaymentRecord | None = None
        self.already_processed = False
        self.toast: Toast | None = None
        self.notified = False

    def _transition(self, target: ConfirmationState) -> None:
        if self.state.is_terminal:
            raise InvalidTransitionError(
                f"Cannot move from {self.state.value} to {target.value}"
            )
        self.state = target

    def fail(self, message: str) -> None:
        self._transition(ConfirmationState.ERROR)
        self.error = message

    def succeed(self, record: PaymentRecord, already_processed: bool) -> None:
        self._transition(ConfirmationState.SUCCESS)
        self.record = record
        self.already_processed = already_processed

    @property
    def should_notify(self) -> bool:
        """Only a first-time confirmation announces itself."""
        return self.state is ConfirmationState.SUCCESS and not self.already_processed

    async def run(
        self,
        params: RedirectParams,
        user_id: str,
        verifier: Verifier,
        platform: PushPlatform | None = None,
    ) -> ConfirmationState:
        """Verify the redirected payment and settle into a terminal state.

        Args:
            params: Redirect query parameters
            user_id: The signed-in buyer
            verifier: Enrollment/verification backend
            platform: Buyer's push platform for the success notification

        Returns:
            The terminal state
        """
        log = logger.bind(
            invoice_id=params.invoice_id,
            transaction_id=params.transaction_id,
            user_id=user_id,
        )

        if not params.has_payment_id:
            self.fail(NO_PAYMENT_ID_ERROR)
            return self.state

        if params.status_rejected:
            log.info("Payment not completed", status=params.status)
            self.fail(NOT_COMPLETED_ERROR)
            return self.state

        invoice_id = params.invoice_id or params.transaction_id or ""
        transaction_id = params.transaction_id or params.invoice_id or ""

        try:
            response = await verifier(invoice_id, transaction_id, user_id)
        except Exception as e:
            log.error("Error processing payment", error=str(e))
            self.fail(PROCESSING_ERROR)
            return self.state

        if not (response.get("success") and response.get("verified")):
            message = response.get("error") or VERIFICATION_FAILED_ERROR
            log.warning("Verification failed", error=message)
            self.fail(message)
            return self.state

        record = PaymentRecord.from_response(response)
        self.succeed(record, bool(response.get("alreadyProcessed")))
        log.info("Payment confirmed", already_processed=self.already_processed)

        if self.should_notify:
            await self._announce(record, platform)
        return self.state

    async def _announce(self, record: PaymentRecord, platform: PushPlatform | None) -> None:
        count = record.course_count
        if platform is not None:
            await send_local_notification(
                platform,
                "Payment Successful! 🎉",
                {
                    "body": (
                        f"Your payment of {format_amount(record.final_amount)} has been "
                        f"confirmed. You now have access to {count} course(s)."
                    ),
                    "tag": "payment-success",
                    "requireInteraction": False,
                },
            )
            self.notified = True
        self.toast = Toast(
            title="Payment Successful!",
            description=f"You now have access to {count} course(s).",
        )
