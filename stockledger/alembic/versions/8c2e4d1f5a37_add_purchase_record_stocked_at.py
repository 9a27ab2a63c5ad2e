"""add purchase_records.stocked_at

Revision ID: 8c2e4d1f5a37
Revises: 3f1a9c2b7d10
Create Date: 2026-10-20 14:03:17.220945
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8c2e4d1f5a37"
down_revision: Union[str, Sequence[str], None] = "3f1a9c2b7d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("purchase_records", sa.Column("stocked_at", sa.DateTime()))

    # les records déjà marqués ont été comptés dans le stock
    op.execute("UPDATE purchase_records SET stocked_at = reconciled_at WHERE reconciled_at IS NOT NULL")


def downgrade() -> None:
    op.drop_column("purchase_records", "stocked_at")
