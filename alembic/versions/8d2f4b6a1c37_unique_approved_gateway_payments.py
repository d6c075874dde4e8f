"""Unique approved gateway payment per transaction

Revision ID: 8d2f4b6a1c37
Revises: 3a9c1e7d5b20
Create Date: 2026-10-18 14:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8d2f4b6a1c37"
down_revision: str | None = "3a9c1e7d5b20"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

APPROVED_GATEWAY = sa.text("status = 'approved' AND gateway IS NOT NULL")


def upgrade() -> None:
    """Allow one approved gateway payment per transaction ID.

    Manual checkouts and free enrollments have no gateway and are not covered.
    """
    op.create_index(
        "uq_payments_approved_gateway_transaction",
        "payments",
        ["transaction_id"],
        unique=True,
        postgresql_where=APPROVED_GATEWAY,
        sqlite_where=APPROVED_GATEWAY,
    )


def downgrade() -> None:
    """Drop the approved gateway payment index."""
    op.drop_index("uq_payments_approved_gateway_transaction", table_name="payments")
