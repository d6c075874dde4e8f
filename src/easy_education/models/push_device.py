"""Push device model - one row per browser that reported an FCM token."""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from easy_education.models.base import Base, TimestampMixin, generate_uuid


class PushDevice(Base, TimestampMixin):
    """Registered browser for push notifications."""

    __tablename__ = "push_devices"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str | None] = mapped_column(Text, unique=True)
    permission: Mapped[str] = mapped_column(String(20), default="default", nullable=False)
    user_agent: Mapped[str | None] = mapped_column(Text)

    def __repr__(self) -> str:
        """String representation."""
        return f"<PushDevice(user_id={self.user_id}, permission={self.permission})>"
