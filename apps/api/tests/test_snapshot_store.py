"""
Tests del store de snapshots sobre SQLite en memoria (ver conftest.py).
Fixture `store`: max_limit=5, default_limit=3.
"""

import math
from datetime import datetime, timezone

import pytest

from services.nav_sources import NavEstimate
from services.snapshot_store import SnapshotStore


def at(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


async def fill(store: SnapshotStore, count: int) -> list:
    return [
        await store.append(NavEstimate(value_per_share=1.0 + i, computed_at=at(100 * (i + 1))))
        for i in range(count)
    ]


class TestAppend:
    async def test_assigns_increasing_ids(self, store):
        first, second = await fill(store, 2)
        assert second.id > first.id

    async def test_stamps_time_when_missing(self, store):
        snap = await store.append(NavEstimate(value_per_share=2.0))
        assert snap.created_at is not None

    async def test_round_trip_preserves_full_precision(self, store):
        await store.append(NavEstimate(value_per_share=0.00123, computed_at=at(100)))
        latest = await store.latest()
        assert latest.value_per_share == 0.00123

    @pytest.mark.parametrize("value", [0.0, -0.5, math.nan, math.inf])
    async def test_rejects_degenerate_values(self, store, value):
        with pytest.raises(ValueError):
            await store.append(NavEstimate(value_per_share=value, computed_at=at(100)))
        assert await store.latest() is None


class TestLatest:
    async def test_empty_store_returns_none(self, store):
        assert await store.latest() is None

    async def test_returns_most_recent_timestamp(self, store):
        await store.append(NavEstimate(value_per_share=1.0, computed_at=at(100)))
        s2 = await store.append(NavEstimate(value_per_share=2.0, computed_at=at(200)))

        latest = await store.latest()

        assert latest.id == s2.id
        assert latest.value_per_share == 2.0

    async def test_ordering_is_by_timestamp_not_insertion(self, store):
        newer = await store.append(NavEstimate(value_per_share=2.0, computed_at=at(200)))
        await store.append(NavEstimate(value_per_share=1.0, computed_at=at(100)))

        assert (await store.latest()).id == newer.id

    async def test_timestamp_tie_broken_by_id(self, store):
        await store.append(NavEstimate(value_per_share=1.0, computed_at=at(100)))
        second = await store.append(NavEstimate(value_per_share=2.0, computed_at=at(100)))

        assert (await store.latest()).id == second.id


class TestHistory:
    async def test_ascending_returns_most_recent_window(self, store):
        snaps = await fill(store, 4)

        history = await store.history(limit=2, order="asc")

        assert [s.id for s in history] == [snaps[2].id, snaps[3].id]

    async def test_descending_is_most_recent_first(self, store):
        snaps = await fill(store, 3)

        history = await store.history(limit=3, order="desc")

        assert [s.id for s in history] == [snaps[2].id, snaps[1].id, snaps[0].id]

    async def test_limit_is_clamped_to_max(self, store):
        await fill(store, 7)

        history = await store.history(limit=1000)

        assert len(history) == 5
        ids = [s.id for s in history]
        assert len(set(ids)) == len(ids)
        assert [s.created_at for s in history] == sorted(s.created_at for s in history)

    @pytest.mark.parametrize("limit", [None, 0, -10])
    async def test_non_positive_limit_uses_default(self, store, limit):
        await fill(store, 4)
        assert len(await store.history(limit=limit)) == 3

    async def test_invalid_order_raises(self, store):
        with pytest.raises(ValueError):
            await store.history(limit=1, order="sideways")

    def test_clamp_limit(self, store):
        assert store.clamp_limit(2) == 2
        assert store.clamp_limit(50) == 5
        assert store.clamp_limit(0) == 3
