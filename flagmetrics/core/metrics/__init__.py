"""
Client Metrics Pipeline.

SDK clients report how often each flag evaluated to yes/no (and which
variants were served) per reporting interval. This package compacts those
reports into three aggregates:

- client_metrics_env: hourly yes/no per feature, app and environment
- client_metrics_env_variants: hourly count per variant
- client_metrics_total: lifetime yes+no per feature and environment

Writing:
    from flagmetrics.core.metrics import ClientMetricsService

    service = ClientMetricsService(db)
    await service.register_events(events, batch_id=idempotency_key)

Reading:
    from flagmetrics.core.metrics import MetricsStore

    @router.get("/features/{name}")
    async def feature_metrics(name: str, store: MetricsStore):
        return await store.get_metrics_for_feature_toggle(name, hours_back=24)

Retention:
    await store.clear_metrics(hours_ago=48)
"""

from .interfaces import (
    MetricEvent,
    MetricKey,
    HourlyMetricRow,
    VariantMetricRow,
    TotalMetricRow,
    ClientMetricsEnv,
    TotalMetricsPerEnv,
    ClientMetricsStoreBase,
)

from .aggregation import (
    collapse_hourly_metrics,
    spread_variants,
    aggregate_totals,
    sort_rows,
)

from .store import ClientMetricsStore
from .service import ClientMetricsService, report_to_events

from .dependencies import (
    MetricsStore,
    MetricsService,
    get_metrics_store,
    get_metrics_service,
)

__all__ = [
    # Interfaces
    "MetricEvent",
    "MetricKey",
    "HourlyMetricRow",
    "VariantMetricRow",
    "TotalMetricRow",
    "ClientMetricsEnv",
    "TotalMetricsPerEnv",
    "ClientMetricsStoreBase",
    # Aggregation
    "collapse_hourly_metrics",
    "spread_variants",
    "aggregate_totals",
    "sort_rows",
    # Store / service
    "ClientMetricsStore",
    "ClientMetricsService",
    "report_to_events",
    # Dependencies
    "MetricsStore",
    "MetricsService",
    "get_metrics_store",
    "get_metrics_service",
]
