"""Payment and enrollment models."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from easy_education.models.base import Base, TimestampMixin, generate_uuid


class PaymentStatus(str, Enum):
    """Lifecycle of a payment."""

    PENDING = "pending"  # Manual checkout awaiting admin review
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(Base, TimestampMixin):
    """A course purchase.

    `courses` is a snapshot of the purchased courses at checkout time:
    a list of {id, title, price} dicts.
    """

    __tablename__ = "payments"
    __table_args__ = (
        # One approved gateway payment per transaction; manual and free rows have no gateway
        Index(
            "uq_payments_approved_gateway_transaction",
            "transaction_id",
            unique=True,
            postgresql_where=text("status = 'approved' AND gateway IS NOT NULL"),
            sqlite_where=text("status = 'approved' AND gateway IS NOT NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    user_name: Mapped[str | None] = mapped_column(String(255))
    user_email: Mapped[str | None] = mapped_column(String(255))

    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    invoice_id: Mapped[str | None] = mapped_column(String(255))
    sender_number: Mapped[str | None] = mapped_column(String(64))
    payment_method: Mapped[str | None] = mapped_column(String(64))
    gateway: Mapped[str | None] = mapped_column(String(64))

    courses: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    discount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    coupon_code: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    final_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="BDT", nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True
    )
    is_free_enrollment: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def course_ids(self) -> set[str]:
        """IDs of the courses covered by this payment."""
        return {str(c.get("id")) for c in self.courses if c.get("id")}

    def __repr__(self) -> str:
        """String representation."""
        return f"<Payment(transaction_id={self.transaction_id}, status={self.status})>"


class Enrollment(Base, TimestampMixin):
    """Access grant for one user to one course.

    The primary key is `<user_id>_<course_id>`, so re-enrolling is a merge.
    """

    __tablename__ = "enrollments"

    id: Mapped[str] = mapped_column(String(300), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    course_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enrolled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    @staticmethod
    def make_id(user_id: str, course_id: str) -> str:
        """Build the deterministic enrollment key."""
        return f"{user_id}_{course_id}"

    def __repr__(self) -> str:
        """String representation."""
        return f"<Enrollment(user_id={self.user_id}, course_id={self.course_id})>"
