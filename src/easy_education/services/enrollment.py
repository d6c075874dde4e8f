"""Payment processing and course enrollment.

Gateway payments flow through `EnrollmentService.process_enrollment` (called
from the payment confirmation page and `POST /api/process-enrollment`) or
`EnrollmentService.handle_webhook`. Both re-verify with the gateway before
touching the database, and both are idempotent per transaction ID.

Manual checkouts (`submit_checkout`) and free courses
(`enroll_in_free_course`) never touch the gateway.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.models.course import Course
from easy_education.models.payment import Enrollment, Payment, PaymentStatus
from easy_education.models.user import User
from easy_education.services.dispatcher import Dispatcher
from easy_education.services.notifications import (
    CheckoutNotice,
    EnrollmentNotice,
    notify_admins_of_checkout,
    notify_admins_of_enrollment,
)
from easy_education.services.payment_gateway import (
    GATEWAY_NAME,
    PaymentGatewayClient,
    PaymentGatewayError,
)

logger = structlog.get_logger()


@dataclass
class EnrollmentOutcome:
    """Result of recording a payment and enrolling its user."""

    success: bool
    already_processed: bool = False
    message: str = ""
    payment_record: dict[str, Any] | None = None
    error: str | None = None


class VerificationResponse(BaseModel):
    """Response of the enrollment/verification backend.

    Serialized with camelCase keys for `POST /api/process-enrollment`;
    `status_code` is the HTTP status and is not part of the body.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    verified: bool = False
    already_processed: bool = Field(default=False, alias="alreadyProcessed")
    message: str | None = None
    courses_enrolled: int | None = Field(default=None, alias="coursesEnrolled")
    payment: dict[str, Any] | None = None
    payment_record: dict[str, Any] | None = Field(default=None, alias="paymentRecord")
    error: str | None = None
    status_code: int = Field(default=200, exclude=True)

    def to_body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def failure(
        cls, error: str, status_code: int, verified: bool | None = None
    ) -> "VerificationResponse":
        response = cls(success=False, error=error, status_code=status_code)
        if verified is not None:
            response.verified = verified
        return response


def _course_snapshot(courses: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {"id": c.get("id"), "title": c.get("title", ""), "price": c.get("price", 0)}
        for c in courses
    ]


async def _approved_payment_exists(session: AsyncSession, transaction_id: str) -> bool:
    result = await session.execute(
        select(Payment.id)
        .where(
            Payment.transaction_id == transaction_id,
            Payment.status == PaymentStatus.APPROVED.value,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


def _already_processed() -> EnrollmentOutcome:
    return EnrollmentOutcome(
        success=True, already_processed=True, message="Payment already processed"
    )


async def process_payment_and_enroll(
    session: AsyncSession,
    *,
    user_id: str,
    user_name: str | None,
    user_email: str | None,
    transaction_id: str,
    invoice_id: str | None,
    payment_method: str | None,
    courses: Sequence[dict[str, Any]],
    subtotal: float,
    discount: float,
    coupon_code: str,
    final_amount: float,
    currency: str,
) -> EnrollmentOutcome:
    """Record an approved payment and enroll the user in its courses.

    An approved payment with the same transaction ID means this payment was
    already processed; nothing is written in that case. Concurrent calls for
    one transaction (redirect page and webhook) are settled by the unique
    index on approved gateway payments: the losing commit is rolled back and
    reported as already processed.
    """
    try:
        if await _approved_payment_exists(session, transaction_id):
            logger.info("Payment already processed", transaction_id=transaction_id)
            return _already_processed()

        now = datetime.now(UTC)
        snapshot = _course_snapshot(courses)
        payment = Payment(
            user_id=user_id,
            user_name=user_name,
            user_email=user_email,
            transaction_id=transaction_id,
            invoice_id=invoice_id,
            payment_method=payment_method or GATEWAY_NAME,
            gateway=GATEWAY_NAME,
            courses=snapshot,
            subtotal=float(subtotal or final_amount),
            discount=float(discount or 0),
            coupon_code=coupon_code or "",
            final_amount=float(final_amount),
            currency=currency or "BDT",
            status=PaymentStatus.APPROVED.value,
            submitted_at=now,
            approved_at=now,
        )
        session.add(payment)
        await enroll_user(session, user_id, [c["id"] for c in snapshot if c.get("id")])
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if await _approved_payment_exists(session, transaction_id):
            logger.info("Payment processed concurrently", transaction_id=transaction_id)
            return _already_processed()
        logger.error("Error processing payment", transaction_id=transaction_id, error=str(e))
        return EnrollmentOutcome(success=False, error=str(e))
    except Exception as e:
        await session.rollback()
        logger.error("Error processing payment", transaction_id=transaction_id, error=str(e))
        return EnrollmentOutcome(success=False, error=str(e))

    logger.info("User enrolled", user_id=user_id, courses=len(snapshot))
    return EnrollmentOutcome(
        success=True,
        already_processed=False,
        message="Payment processed and user enrolled successfully",
        payment_record={
            "transactionId": transaction_id,
            "finalAmount": float(final_amount),
            "courses": snapshot,
        },
    )


async def enroll_user(session: AsyncSession, user_id: str, course_ids: Sequence[str]) -> None:
    """Grant course access. Existing enrollments are left as they are."""
    for course_id in course_ids:
        enrollment_id = Enrollment.make_id(user_id, str(course_id))
        if await session.get(Enrollment, enrollment_id):
            continue
        session.add(
            Enrollment(
                id=enrollment_id,
                user_id=user_id,
                course_id=str(course_id),
                progress=0,
                enrolled_at=datetime.now(UTC),
            )
        )


class EnrollmentService:
    """Verify gateway payments and enroll their users."""

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGatewayClient | None = None,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        self.session = session
        self.gateway = gateway or PaymentGatewayClient()
        self.dispatcher = dispatcher

    async def process_enrollment(
        self, invoice_id: str | None, transaction_id: str | None, user_id: str | None
    ) -> VerificationResponse:
        """Verify a payment with the gateway and enroll the requesting user.

        The payment's metadata must name the same user that asks for the
        enrollment.
        """
        payment_id = invoice_id or transaction_id
        if not payment_id or not user_id:
            return VerificationResponse.failure(
                "Missing order_id/transaction_id or userId in request body.", 400
            )

        logger.info("Processing enrollment", payment_id=payment_id, user_id=user_id)
        try:
            payment = await self.gateway.verify_payment(payment_id)
        except PaymentGatewayError as e:
            logger.error("Payment verification failed", payment_id=payment_id, error=str(e))
            return VerificationResponse.failure(
                "Failed to process enrollment. Please try again.", 500
            )

        if not payment.is_completed:
            return VerificationResponse.failure(
                payment.message or "Payment verification failed", 400, verified=False
            )

        metadata_user_id = payment.metadata.get("userId")
        if not metadata_user_id:
            return VerificationResponse.failure("No userId found in payment metadata", 400)
        if metadata_user_id != user_id:
            return VerificationResponse.failure(
                "User ID mismatch - this payment belongs to a different user", 403
            )

        outcome = await self._record(payment, metadata_user_id)
        if not outcome.success:
            return VerificationResponse.failure(outcome.error or "Enrollment failed", 500)

        courses = payment.metadata.get("courses") or []
        return VerificationResponse(
            success=True,
            verified=True,
            already_processed=outcome.already_processed,
            message=outcome.message,
            courses_enrolled=len(courses),
            payment={
                "transaction_id": payment.transaction_id,
                "order_id": payment.order_id,
                "amount": payment.amount,
                "metadata": payment.metadata,
            },
            payment_record=outcome.payment_record,
        )

    async def handle_webhook(self, event: dict[str, Any]) -> dict[str, Any]:
        """Process a gateway webhook.

        Only completed payments are processed, and only after re-verifying
        them with the gateway. Anything else is acknowledged and ignored.
        """
        logger.info(
            "Payment webhook received",
            event=event.get("event"),
            order_id=event.get("order_id"),
            transaction_id=event.get("transaction_id"),
            status=event.get("status"),
        )
        if event.get("event") != "payment.success" and event.get("status") != "completed":
            return {"success": True, "message": "Webhook received but payment not completed"}

        payment_id = event.get("order_id") or event.get("transaction_id")
        if not payment_id:
            return {"success": True, "message": "Webhook received without payment ID"}

        payment = await self.gateway.verify_payment(str(payment_id))
        if not payment.is_completed:
            return {"success": True, "message": "Webhook received but payment not completed"}

        user_id = payment.metadata.get("userId")
        if not user_id:
            logger.error("No userId in payment metadata", payment_id=payment_id)
            return {"success": True, "message": "Webhook received but no user ID in metadata"}

        outcome = await self._record(payment, user_id)
        if not outcome.success:
            return {"success": False, "error": outcome.error}
        return {
            "success": True,
            "message": outcome.message,
            "alreadyProcessed": outcome.already_processed,
        }

    async def _record(self, payment: Any, user_id: str) -> EnrollmentOutcome:
        metadata = payment.metadata
        courses = metadata.get("courses") or []
        user_name = metadata.get("fullname") or payment.customer_name or "N/A"
        outcome = await process_payment_and_enroll(
            self.session,
            user_id=user_id,
            user_name=user_name,
            user_email=payment.customer_email or metadata.get("email"),
            transaction_id=payment.transaction_id or payment.order_id,
            invoice_id=payment.order_id,
            payment_method=payment.payment_method,
            courses=courses,
            subtotal=float(metadata.get("subtotal") or payment.amount),
            discount=float(metadata.get("discount") or 0),
            coupon_code=metadata.get("couponCode") or "",
            final_amount=payment.amount,
            currency=payment.currency,
        )
        if outcome.success and not outcome.already_processed:
            await notify_admins_of_enrollment(
                self.session,
                EnrollmentNotice(
                    user_id=user_id,
                    user_name=user_name,
                    user_email=payment.customer_email,
                    courses=courses,
                    final_amount=payment.amount,
                ),
                self.dispatcher,
            )
        return outcome


class CheckoutError(ValueError):
    """A checkout that cannot be accepted."""


async def purchased_course_ids(session: AsyncSession, user_id: str) -> tuple[set[str], set[str]]:
    """Course IDs covered by a user's approved and pending payments."""
    result = await session.execute(
        select(Payment).where(
            Payment.user_id == user_id,
            Payment.status.in_([PaymentStatus.APPROVED.value, PaymentStatus.PENDING.value]),
        )
    )
    approved: set[str] = set()
    pending: set[str] = set()
    for payment in result.scalars().all():
        target = approved if payment.status == PaymentStatus.APPROVED.value else pending
        target.update(payment.course_ids())
    return approved, pending


@dataclass
class CheckoutForm:
    """Manual (send money + transaction ID) checkout submission."""

    name: str
    email: str
    sender_number: str
    transaction_id: str
    course_ids: list[str] = field(default_factory=list)
    coupon_code: str = ""

    def validate(self) -> list[str]:
        errors = []
        if not self.name.strip():
            errors.append("Name is required")
        if not self.email.strip():
            errors.append("Email is required")
        if not self.sender_number.strip():
            errors.append("Sender number is required")
        if not self.transaction_id.strip():
            errors.append("Transaction ID is required")
        if not self.course_ids:
            errors.append("Select at least one course")
        return errors


async def submit_checkout(
    session: AsyncSession,
    user: User,
    form: CheckoutForm,
    dispatcher: Dispatcher | None,
) -> Payment:
    """Record a pending manual payment and tell the admins about it.

    Raises:
        CheckoutError: If the selection cannot be bought (unknown courses or
            courses the user already has a payment for)
    """
    result = await session.execute(select(Course).where(Course.id.in_(form.course_ids)))
    courses = result.scalars().all()
    if not courses:
        raise CheckoutError("Selected courses were not found")

    approved, pending = await purchased_course_ids(session, user.id)
    requested = {c.id for c in courses}
    if owned := requested & approved:
        raise CheckoutError(
            f"You have already purchased {len(owned)} course(s) in your cart. "
            "Please remove them before checkout."
        )
    if requested & pending:
        raise CheckoutError(
            "Some courses in your cart are already in a pending payment. "
            "Please wait for approval or remove them."
        )

    total = sum(c.price for c in courses)
    payment = Payment(
        user_id=user.id,
        user_name=form.name.strip(),
        user_email=form.email.strip(),
        sender_number=form.sender_number.strip(),
        transaction_id=form.transaction_id.strip(),
        payment_method="manual",
        courses=[{"id": c.id, "title": c.title, "price": c.price} for c in courses],
        subtotal=total,
        discount=0.0,
        coupon_code=form.coupon_code,
        final_amount=total,
        status=PaymentStatus.PENDING.value,
        submitted_at=datetime.now(UTC),
    )
    session.add(payment)
    await session.commit()
    logger.info("Checkout submitted", payment_id=payment.id, amount=total)

    await notify_admins_of_checkout(
        session,
        CheckoutNotice(
            payment_id=payment.id,
            name=payment.user_name or "",
            total_amount=total,
            course_count=len(courses),
        ),
        dispatcher,
    )
    return payment


async def enroll_in_free_course(
    session: AsyncSession,
    user: User,
    course: Course,
    dispatcher: Dispatcher | None,
) -> tuple[bool, str]:
    """Enroll a user in a free course.

    Returns:
        (success, message for the user)
    """
    approved, pending = await purchased_course_ids(session, user.id)
    if course.id in approved:
        return False, "You are already enrolled in this course"
    if course.id in pending:
        return False, "You have a pending payment for this course"

    now = datetime.now(UTC)
    course_entry = {"id": course.id, "title": course.title, "price": 0}
    try:
        session.add(
            Payment(
                user_id=user.id,
                user_name=user.display_name,
                user_email=user.email,
                sender_number="N/A - Free Course",
                transaction_id=f"FREE-{int(now.timestamp() * 1000)}",
                courses=[course_entry],
                final_amount=0.0,
                status=PaymentStatus.APPROVED.value,
                is_free_enrollment=True,
                submitted_at=now,
                approved_at=now,
            )
        )
        await enroll_user(session, user.id, [course.id])
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error("Error enrolling in free course", course_id=course.id, error=str(e))
        return False, "Failed to enroll. Please try again."

    await notify_admins_of_enrollment(
        session,
        EnrollmentNotice(
            user_id=user.id,
            user_name=user.display_name or user.email or user.id,
            user_email=user.email,
            courses=[course_entry],
            final_amount=0.0,
            is_free_enrollment=True,
        ),
        dispatcher,
    )
    return True, "Successfully enrolled in free course!"
