"""
Tests for the retention sweep task.
"""

from datetime import timedelta

import pytest

from flagmetrics.core.config import settings
from flagmetrics.core.metrics import ClientMetricsStore
from flagmetrics.utils.timezone import utc_now
from flagmetrics.worker import tasks
from flagmetrics.worker.tasks import sweep_metrics


@pytest.mark.asyncio
async def test_sweep_metrics_commits_deletes(session_factory, event_factory):
    now = utc_now()
    events = [
        event_factory(app_name="old", timestamp=now - timedelta(hours=100), yes=1, variants={"A": 1}),
        event_factory(app_name="new", timestamp=now - timedelta(hours=1), yes=1),
    ]
    async with session_factory() as session:
        async with session.begin():
            store = ClientMetricsStore(session)
            await store.batch_insert_metrics(events)
            await store.batch_insert_total_metrics(events)

    deleted = await sweep_metrics(session_factory, hours_ago=48)

    assert deleted == 1
    async with session_factory() as session:
        store = ClientMetricsStore(session)
        assert [r.app_name for r in await store.get_all()] == ["new"]
        totals = await store.get_total_count_for_toggle("f1")
        assert totals[0].total == 2


@pytest.mark.asyncio
async def test_sweep_metrics_prunes_variants(session_factory, event_factory):
    old = utc_now() - timedelta(hours=100)
    async with session_factory() as session:
        async with session.begin():
            await ClientMetricsStore(session).batch_insert_metrics(
                [event_factory(timestamp=old, yes=1, variants={"A": 1})]
            )

    await sweep_metrics(session_factory, hours_ago=48, prune_variants=True)

    async with session_factory() as session:
        async with session.begin():
            store = ClientMetricsStore(session)
            await store.batch_insert_metrics([event_factory(timestamp=old, yes=1)])
            [record] = await store.get_metrics_for_feature_toggle("f1", hours_back=200)
            assert record.variants == {}


def test_clear_old_metrics_uses_explicit_zero_horizon(monkeypatch):
    """An explicit horizon of 0 is passed through, not replaced by the default."""
    horizons = []

    async def fake_sweep(hours_ago):
        horizons.append(hours_ago)
        return 3

    monkeypatch.setattr(tasks, "_run_sweep", fake_sweep)

    assert tasks.clear_old_metrics(0) == {"status": "completed", "deleted": 3}
    assert tasks.clear_old_metrics() == {"status": "completed", "deleted": 3}
    assert horizons == [0, settings.metrics.retention_hours]
