"""
Router: /api/v1/nav
GET /latest   → último NAV persistido (data=null si todavía no hay datos)
GET /history  → últimos N snapshots; ascendente por defecto (gráficas)
"""

from typing import Literal

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from core.dependencies import get_snapshot_store
from core.responses import ok
from services.snapshot_store import SnapshotStore

logger = structlog.get_logger(__name__)

router = APIRouter()


def _database_error(endpoint: str, exc: SQLAlchemyError) -> HTTPException:
    logger.error("nav.read_failed", endpoint=endpoint, error=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Database error")


@router.get("/latest")
async def get_latest_nav(store: SnapshotStore = Depends(get_snapshot_store)) -> dict:
    try:
        snapshot = await store.latest()
    except SQLAlchemyError as exc:
        raise _database_error("latest", exc) from exc

    if snapshot is None:
        return ok(data=None, meta={"message": "No NAV data yet"})
    return ok(data=snapshot.to_dict())


@router.get("/history")
async def get_nav_history(
    limit: int | None = Query(default=None, description="Número de snapshots; se recorta al máximo configurado"),
    order: Literal["asc", "desc"] = Query(default="asc"),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> dict:
    effective_limit = store.clamp_limit(limit)
    try:
        snapshots = await store.history(limit=effective_limit, order=order)
    except SQLAlchemyError as exc:
        raise _database_error("history", exc) from exc

    return ok(
        data=[s.to_dict() for s in snapshots],
        meta={"limit": effective_limit, "order": order, "count": len(snapshots)},
    )
