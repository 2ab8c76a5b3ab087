"""
Metrics read API routes.

- Windowed hourly metrics for a feature (GET /metrics/features/{name})
- Single hourly record (GET /metrics/features/{name}/apps/{app}/environments/{env})
- Lifetime totals per environment (GET /metrics/features/{name}/total)
- Apps seen for a feature (GET /metrics/features/{name}/apps)
- Features seen for an app (GET /metrics/apps/{app}/features)
- Retention sweep (DELETE /metrics?hoursAgo=N)
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from flagmetrics.core.config import settings
from flagmetrics.core.errors import NotFoundError
from flagmetrics.core.metrics import MetricKey, MetricsStore
from flagmetrics.schemas.client_metrics import (
    ClearMetricsResponse,
    ClientMetricsEnvResponse,
    TotalMetricsResponse,
)

router = APIRouter()


def _hours_back(value: Optional[int]) -> int:
    return value if value is not None else settings.metrics.default_hours_back


@router.get("/features/{feature_name}")
async def get_feature_metrics(
    feature_name: str,
    store: MetricsStore,
    hours_back: Optional[int] = Query(None, alias="hoursBack", ge=1),
) -> list[ClientMetricsEnvResponse]:
    """Hourly metrics of a feature within the window, with variant counts."""
    records = await store.get_metrics_for_feature_toggle(feature_name, _hours_back(hours_back))
    return [ClientMetricsEnvResponse.model_validate(r) for r in records]


@router.get("/features/{feature_name}/apps/{app_name}/environments/{environment}")
async def get_hourly_record(
    feature_name: str,
    app_name: str,
    environment: str,
    store: MetricsStore,
    timestamp: datetime = Query(..., description="Any time within the hour"),
) -> ClientMetricsEnvResponse:
    """Single hourly record."""
    key = MetricKey(
        feature_name=feature_name,
        app_name=app_name,
        environment=environment,
        timestamp=timestamp,
    )
    try:
        record = await store.get(key)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    return ClientMetricsEnvResponse.model_validate(record)


@router.get("/features/{feature_name}/total")
async def get_feature_total(
    feature_name: str,
    store: MetricsStore,
) -> list[TotalMetricsResponse]:
    """Lifetime evaluation count of a feature, one entry per environment."""
    totals = await store.get_total_count_for_toggle(feature_name)
    return [TotalMetricsResponse.model_validate(t) for t in totals]


@router.get("/features/{feature_name}/apps")
async def get_seen_apps(
    feature_name: str,
    store: MetricsStore,
    hours_back: Optional[int] = Query(None, alias="hoursBack", ge=1),
) -> list[str]:
    return await store.get_seen_apps_for_feature_toggle(feature_name, _hours_back(hours_back))


@router.get("/apps/{app_name}/features")
async def get_seen_features(
    app_name: str,
    store: MetricsStore,
    hours_back: Optional[int] = Query(None, alias="hoursBack", ge=1),
) -> list[str]:
    return await store.get_seen_toggles_for_app(app_name, _hours_back(hours_back))


@router.delete("")
async def clear_metrics(
    store: MetricsStore,
    hours_ago: Optional[int] = Query(None, alias="hoursAgo", ge=1),
) -> ClearMetricsResponse:
    """Run the retention sweep now. Defaults to the configured horizon."""
    horizon = hours_ago if hours_ago is not None else settings.metrics.retention_hours
    deleted = await store.clear_metrics(horizon)
    return ClearMetricsResponse(deleted=deleted)
