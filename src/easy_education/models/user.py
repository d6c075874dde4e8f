"""User model for Firebase-authenticated accounts."""

from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from easy_education.models.base import Base, TimestampMixin


class UserRole(str, Enum):
    """Account role."""

    STUDENT = "student"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """Platform user.

    The primary key is the Firebase Auth uid, so a verified ID token maps
    straight onto a row.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    display_name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default=UserRole.STUDENT.value, nullable=False)

    @property
    def is_admin(self) -> bool:
        """Check if the user holds the admin role."""
        return self.role == UserRole.ADMIN.value

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, role={self.role})>"
