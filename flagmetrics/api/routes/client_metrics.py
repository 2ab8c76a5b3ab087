"""
Client metrics ingestion route.

SDKs post one report per reporting interval. The report is accepted even
when storing it fails (metrics are best-effort telemetry, see
``metrics.best_effort``). Sending an ``Idempotency-Key`` header makes
retries of the same report safe: a key that was already applied is not
counted again.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Header, status

from flagmetrics.core.metrics import MetricsService
from flagmetrics.schemas.client_metrics import ClientMetricsSchema

router = APIRouter()


@router.post("/metrics", status_code=status.HTTP_202_ACCEPTED)
async def register_client_metrics(
    data: ClientMetricsSchema,
    service: MetricsService,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key", max_length=255)] = None,
) -> dict[str, bool]:
    """Accumulate one client metrics report."""
    applied = await service.register_client_report(data, batch_id=idempotency_key)
    return {"applied": applied}
