"""
Un ciclo estimar → persistir.
Cualquier fallo se registra y se descarta: el siguiente tick reintenta.
"""

import time

import structlog

from services.nav_estimator import NavEstimator
from services.snapshot_store import Snapshot, SnapshotStore

logger = structlog.get_logger(__name__)


async def run_snapshot_cycle(estimator: NavEstimator, store: SnapshotStore) -> Snapshot | None:
    started = time.monotonic()
    log = logger.bind(source=estimator.source.name)
    log.info("nav.cycle.start")

    try:
        estimate = await estimator.estimate()
        if estimate is None:
            log.warning("nav.cycle.skipped", reason="no_estimate")
            return None
        snapshot = await store.append(estimate)
    except Exception as exc:
        log.error("nav.cycle.failed", error=str(exc), error_type=type(exc).__name__)
        return None

    log.info(
        "nav.cycle.complete",
        snapshot_id=snapshot.id,
        price_usd=snapshot.value_per_share,
        duration_seconds=round(time.monotonic() - started, 2),
    )
    return snapshot
