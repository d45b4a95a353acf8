"""
Dependencias inyectables de FastAPI.
Uso: añadir como parámetro en la firma del endpoint con Depends().
"""

from core.config import settings
from core.database import AsyncSessionLocal
from services.snapshot_store import SnapshotStore


def get_snapshot_store() -> SnapshotStore:
    """
    Store de snapshots NAV respaldado por el pool compartido del proceso.
    Cada operación del store toma prestada una sesión solo durante la consulta.
    """
    return SnapshotStore(
        AsyncSessionLocal,
        max_limit=settings.HISTORY_MAX_LIMIT,
        default_limit=settings.HISTORY_DEFAULT_LIMIT,
    )
