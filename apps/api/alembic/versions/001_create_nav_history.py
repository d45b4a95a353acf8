"""create nav_history table (serie temporal append-only de NAV)

Revision ID: 001_create_nav_history
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_create_nav_history"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "nav_history",
        sa.Column("id", sa.BigInteger(), sa.Identity(always=False), nullable=False),
        # DOUBLE PRECISION: NAV por participación en USD
        sa.Column("price_usd", sa.Double(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price_usd > 0", name="ck_nav_history_price_positive"),
    )
    # Orden canónico (created_at, id) para latest/history
    op.create_index("ix_nav_history_created_at_id", "nav_history", ["created_at", "id"])


def downgrade() -> None:
    op.drop_index("ix_nav_history_created_at_id", table_name="nav_history")
    op.drop_table("nav_history")
