"""
Client metrics ingestion service.

Runs the write pipeline for one client report:
    1. Claim the batch idempotency token (if the client sent one)
    2. Accumulate hourly + variant rows
    3. Accumulate lifetime totals

Metrics are telemetry. With ``best_effort`` on, a store failure is logged
and dropped so the SDK's request still succeeds. The session is rolled
back first, since a failed statement leaves the transaction unusable.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flagmetrics.schemas.client_metrics import ClientMetricsSchema
from .interfaces import ClientMetricsStoreBase, MetricEvent
from .store import ClientMetricsStore

logger = structlog.get_logger()


def report_to_events(
    report: ClientMetricsSchema,
    environment: str | None = None,
) -> list[MetricEvent]:
    """One event per toggle, stamped with the bucket start."""
    env = environment or report.environment
    return [
        MetricEvent(
            feature_name=name,
            app_name=report.app_name,
            environment=env,
            timestamp=report.bucket.start,
            yes=counts.yes,
            no=counts.no,
            variants=dict(counts.variants),
        )
        for name, counts in report.bucket.toggles.items()
    ]


class ClientMetricsService:
    """
    Ingestion entry point in front of the metrics store.

    Usage:
        service = ClientMetricsService(db)
        applied = await service.register_events(events, batch_id="sdk-42-0017")
    """

    def __init__(
        self,
        db: AsyncSession,
        store: ClientMetricsStoreBase | None = None,
        best_effort: bool = True,
    ):
        self.db = db
        self.store = store or ClientMetricsStore(db)
        self.best_effort = best_effort

    async def register_events(
        self,
        events: list[MetricEvent],
        batch_id: str | None = None,
        app_name: str | None = None,
    ) -> bool:
        """
        Accumulate a batch of events.

        Returns False when nothing was written: the batch was empty or its
        batch_id had already been applied for the app. Batch ids are scoped
        by ``app_name``, defaulting to the app of the first event.
        """
        if not events:
            return False

        if batch_id is not None:
            app_name = app_name or events[0].app_name
            if not await self.store.claim_batch(app_name, batch_id):
                logger.info("Duplicate metrics batch skipped", app_name=app_name, batch_id=batch_id)
                return False

        await self.store.batch_insert_metrics(events)
        await self.store.batch_insert_total_metrics(events)
        return True

    async def register_client_report(
        self,
        report: ClientMetricsSchema,
        environment: str | None = None,
        batch_id: str | None = None,
    ) -> bool:
        """Convert a decoded client report into events and register them."""
        events = report_to_events(report, environment)
        try:
            return await self.register_events(events, batch_id=batch_id, app_name=report.app_name)
        except SQLAlchemyError as e:
            if not self.best_effort:
                raise
            await self.db.rollback()
            logger.warning(
                "Failed to store client metrics",
                app_name=report.app_name,
                environment=environment or report.environment,
                toggles=len(events),
                error=str(e),
            )
            return False
