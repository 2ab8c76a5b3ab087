"""
Scheduled/periodic tasks.
"""

import asyncio

import structlog
from celery import shared_task
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from flagmetrics.core.config import settings
from flagmetrics.core.metrics.store import ClientMetricsStore

logger = structlog.get_logger()


async def sweep_metrics(
    session_factory: async_sessionmaker[AsyncSession],
    hours_ago: int,
    prune_variants: bool = False,
) -> int:
    """Delete hourly metrics older than the horizon in one transaction."""
    async with session_factory() as session:
        async with session.begin():
            store = ClientMetricsStore(session, prune_variants=prune_variants)
            return await store.clear_metrics(hours_ago)


async def _run_sweep(hours_ago: int) -> int:
    # Each task run gets its own event loop, so no pooled connections
    engine = create_async_engine(settings.database.url, poolclass=NullPool)
    try:
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return await sweep_metrics(factory, hours_ago, settings.metrics.prune_variants)
    finally:
        await engine.dispose()


@shared_task
def clear_old_metrics(hours_ago: int | None = None):
    """Retention sweep for hourly client metrics."""
    horizon = hours_ago if hours_ago is not None else settings.metrics.retention_hours
    logger.info("Running metrics retention sweep", hours_ago=horizon)
    deleted = asyncio.run(_run_sweep(horizon))
    return {"status": "completed", "deleted": deleted}
