"""
Modelo: nav_history — serie temporal append-only de NAV estimados.
"""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base

# BIGINT en Postgres; en SQLite solo INTEGER PRIMARY KEY es autoincremental
SnapshotId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


class NavSnapshot(Base):
    __tablename__ = "nav_history"

    __table_args__ = (
        sa.Index("ix_nav_history_created_at_id", "created_at", "id"),
        sa.CheckConstraint("price_usd > 0", name="ck_nav_history_price_positive"),
    )

    id: Mapped[int] = mapped_column(SnapshotId, primary_key=True, autoincrement=True)
    # DOUBLE PRECISION: precio de visualización, no valor de liquidación
    price_usd: Mapped[float] = mapped_column(sa.Double(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )
