"""
Configuración del motor SQLAlchemy async y fábrica de sesiones.
Un único pool por proceso: se crea al importar y se libera en el shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import settings


def _engine_kwargs(url: str) -> dict:
    # SQLite (tests/desarrollo local) no admite los parámetros de QueuePool
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,   # detecta conexiones muertas
        "pool_size": 5,
        "max_overflow": 10,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.APP_ENV == "development",
    **_engine_kwargs(settings.DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def dispose_engine() -> None:
    """Cierra todas las conexiones del pool (shutdown de la API o del scheduler)."""
    await engine.dispose()
