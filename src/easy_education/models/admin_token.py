"""Admin push token model."""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from easy_education.models.base import Base, TimestampMixin


class AdminToken(Base, TimestampMixin):
    """FCM token of an admin account.

    One row per admin user, overwritten whenever the admin (re)grants
    notification permission. Read by the notification dispatch helpers to
    know whom to push to.
    """

    __tablename__ = "admin_tokens"

    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    token: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="admin", nullable=False)

    def __repr__(self) -> str:
        """String representation."""
        return f"<AdminToken(user_id={self.user_id})>"
