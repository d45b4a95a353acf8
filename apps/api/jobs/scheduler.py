"""
Scheduler APScheduler del snapshot NAV.

- Primer ciclo inmediato al arrancar, después cada NAV_INTERVAL_SECONDS.
- Un único ciclo a la vez: si uno se alarga, el siguiente tick espera en cola
  detrás de él (lock + max_instances=2); los ticks sobrantes se fusionan.
- Un ciclo fallido nunca detiene el scheduler.

Se ejecuta dentro de la API (NAV_SCHEDULER_ENABLED) o como proceso aparte:
    python -m jobs.scheduler          # bucle continuo
    python -m jobs.scheduler --once   # un solo ciclo y salir
"""

import argparse
import asyncio
from datetime import datetime, timezone

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from jobs.snapshot_job import run_snapshot_cycle
from services.nav_estimator import NavEstimator
from services.snapshot_store import Snapshot, SnapshotStore

logger = structlog.get_logger(__name__)

JOB_ID = "nav_snapshot"


class NavScheduler:
    def __init__(
        self,
        estimator: NavEstimator,
        store: SnapshotStore,
        interval_seconds: int,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.estimator = estimator
        self.store = store
        self.interval_seconds = interval_seconds
        self._scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._lock = asyncio.Lock()

    async def tick(self) -> Snapshot | None:
        if self._lock.locked():
            logger.warning("scheduler.overrun", interval_seconds=self.interval_seconds)
        async with self._lock:
            return await run_snapshot_cycle(self.estimator, self.store)

    def start(self) -> None:
        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            next_run_time=datetime.now(timezone.utc),
            max_instances=2,
            coalesce=True,
            misfire_grace_time=self.interval_seconds,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("scheduler.started", interval_seconds=self.interval_seconds, source=self.estimator.source.name)

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("scheduler.stopped")


async def _run(once: bool) -> None:
    from core.config import settings
    from core.database import dispose_engine
    from core.dependencies import get_snapshot_store
    from services.nav_estimator import build_nav_source

    estimator = NavEstimator(build_nav_source(settings))
    store = get_snapshot_store()
    nav_scheduler = NavScheduler(estimator, store, settings.NAV_INTERVAL_SECONDS)

    try:
        if once:
            await nav_scheduler.tick()
            return
        nav_scheduler.start()
        await asyncio.Event().wait()
    finally:
        nav_scheduler.shutdown()
        await estimator.aclose()
        await dispose_engine()


def main(argv: list[str] | None = None) -> None:
    from core.config import settings
    from core.logging import configure_logging

    parser = argparse.ArgumentParser(description="Scheduler de snapshots NAV")
    parser.add_argument("--once", action="store_true", help="ejecutar un solo ciclo y salir")
    args = parser.parse_args(argv)

    configure_logging(settings.LOG_LEVEL)
    logger.info(
        "scheduler.boot",
        interval_seconds=settings.NAV_INTERVAL_SECONDS,
        source=settings.NAV_SOURCE,
        env=settings.APP_ENV,
    )
    try:
        asyncio.run(_run(args.once))
    except KeyboardInterrupt:
        logger.info("scheduler.interrupted")


if __name__ == "__main__":
    main()
