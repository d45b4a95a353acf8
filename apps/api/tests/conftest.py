"""
Fixtures compartidas.
Las variables de entorno se fijan antes de importar core.config, que instancia
Settings al importarse. El store usa SQLite en memoria (aiosqlite).
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_SYNC_URL", "sqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("NAV_SOURCE", "fixed")
os.environ.setdefault("NAV_SCHEDULER_ENABLED", "false")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from models import Base  # noqa: E402
from services.snapshot_store import SnapshotStore  # noqa: E402


@pytest.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory) -> SnapshotStore:
    return SnapshotStore(session_factory, max_limit=5, default_limit=3)
