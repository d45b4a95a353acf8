"""
Store append-only de snapshots NAV sobre SQLAlchemy async.

Cada operación toma prestada una sesión del pool compartido solo durante su
ejecución (async with), de modo que las lecturas nunca bloquean escrituras.
Orden canónico: (created_at, id), el id desempata timestamps iguales.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.nav_snapshot import NavSnapshot
from services.nav_sources import NavEstimate, is_valid_nav

logger = structlog.get_logger(__name__)

HistoryOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class Snapshot:
    id: int
    value_per_share: float
    created_at: datetime

    @classmethod
    def from_row(cls, row: NavSnapshot) -> "Snapshot":
        return cls(id=row.id, value_per_share=row.price_usd, created_at=row.created_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "price_usd": self.value_per_share,
            "created_at": self.created_at.isoformat(),
        }


class SnapshotStore:
    """
    Uso:
        store = SnapshotStore(AsyncSessionLocal, max_limit=1000)
        snap = await store.append(estimate)
        latest = await store.latest()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        max_limit: int = 1000,
        default_limit: int = 200,
    ) -> None:
        self._session_factory = session_factory
        self.max_limit = max_limit
        self.default_limit = min(default_limit, max_limit)

    def clamp_limit(self, limit: int | None) -> int:
        """Límites no positivos o ausentes usan el valor por defecto; nunca se supera max_limit."""
        if limit is None or limit <= 0:
            return self.default_limit
        return min(limit, self.max_limit)

    async def append(self, estimate: NavEstimate) -> Snapshot:
        if not is_valid_nav(estimate.value_per_share):
            raise ValueError(f"NAV inválido, no se persiste: {estimate.value_per_share!r}")

        row = NavSnapshot(
            price_usd=float(estimate.value_per_share),
            created_at=estimate.computed_at or datetime.now(timezone.utc),
        )
        async with self._session_factory() as session:
            try:
                session.add(row)
                await session.flush()
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        snapshot = Snapshot.from_row(row)
        logger.info("store.appended", id=snapshot.id, price_usd=snapshot.value_per_share)
        return snapshot

    async def latest(self) -> Snapshot | None:
        stmt = (
            select(NavSnapshot)
            .order_by(NavSnapshot.created_at.desc(), NavSnapshot.id.desc())
            .limit(1)
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        return Snapshot.from_row(row) if row is not None else None

    async def history(self, limit: int | None = None, order: HistoryOrder = "asc") -> list[Snapshot]:
        """
        Los `limit` snapshots más recientes.
        order="asc": cronológico (gráficas); order="desc": más reciente primero.
        """
        if order not in ("asc", "desc"):
            raise ValueError(f"order debe ser 'asc' o 'desc', no {order!r}")

        stmt = (
            select(NavSnapshot)
            .order_by(NavSnapshot.created_at.desc(), NavSnapshot.id.desc())
            .limit(self.clamp_limit(limit))
        )
        async with self._session_factory() as session:
            rows = list((await session.execute(stmt)).scalars())

        snapshots = [Snapshot.from_row(row) for row in rows]
        if order == "asc":
            snapshots.reverse()
        return snapshots
