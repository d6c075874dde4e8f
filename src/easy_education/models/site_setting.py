"""Site settings documents stored in the database."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from easy_education.models.base import Base, TimestampMixin


class SiteSetting(Base, TimestampMixin):
    """One settings document per discriminator.

    The discriminator (`general`, `payment`, `pwa`) is the primary key, so
    two concurrent first saves cannot create duplicate rows.
    """

    __tablename__ = "site_settings"

    type: Mapped[str] = mapped_column(String(32), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        """String representation."""
        return f"<SiteSetting(type={self.type})>"
