"""
FastAPI dependencies for client metrics.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flagmetrics.api.dependencies.database import get_db
from flagmetrics.core.config import settings
from .service import ClientMetricsService
from .store import ClientMetricsStore


async def get_metrics_store(db: AsyncSession = Depends(get_db)) -> ClientMetricsStore:
    """Get metrics store bound to the request session."""
    return ClientMetricsStore(db, prune_variants=settings.metrics.prune_variants)


async def get_metrics_service(
    db: AsyncSession = Depends(get_db),
    store: ClientMetricsStore = Depends(get_metrics_store),
) -> ClientMetricsService:
    """Get ingestion service bound to the request session."""
    return ClientMetricsService(db, store, best_effort=settings.metrics.best_effort)


MetricsStore = Annotated[ClientMetricsStore, Depends(get_metrics_store)]
MetricsService = Annotated[ClientMetricsService, Depends(get_metrics_service)]
