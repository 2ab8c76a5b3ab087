"""
Database store for client metrics.

Works on PostgreSQL (production) and SQLite (tests). All writes go
through a single multi-row INSERT ... ON CONFLICT DO UPDATE per table
that adds the incoming counts to the stored ones, so concurrent and
repeated submissions accumulate instead of overwriting.

Statements run on the caller's session; committing is the caller's job
(see ``flagmetrics.api.dependencies.database.get_db``).
"""

from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Sequence

import structlog
from sqlalchemy import Table, and_, delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from flagmetrics.core.errors import MetricsError, NotFoundError
from flagmetrics.utils.timezone import hours_before, start_of_hour, to_utc, utc_now
from .aggregation import aggregate_totals, collapse_hourly_metrics, sort_rows, spread_variants
from .interfaces import (
    ClientMetricsEnv,
    ClientMetricsStoreBase,
    MetricEvent,
    MetricKey,
    TotalMetricsPerEnv,
)
from .models import (
    ClientMetricsBatchModel,
    ClientMetricsEnvModel,
    ClientMetricsEnvVariantModel,
    ClientMetricsTotalModel,
)

logger = structlog.get_logger()

METRICS = ClientMetricsEnvModel.__table__
VARIANTS = ClientMetricsEnvVariantModel.__table__
TOTALS = ClientMetricsTotalModel.__table__
BATCHES = ClientMetricsBatchModel.__table__


def _from_row(row: Any) -> ClientMetricsEnv:
    return ClientMetricsEnv(
        feature_name=row.feature_name,
        app_name=row.app_name,
        environment=row.environment,
        timestamp=to_utc(row.timestamp),
        yes=int(row.yes),
        no=int(row.no),
    )


class ClientMetricsStore(ClientMetricsStoreBase):
    """
    SQL-backed client metrics store.

    Args:
        db: Session the statements run on
        prune_variants: Make clear_metrics also delete variant rows
            older than the horizon (lifetime totals are never swept)
        clock: Source of "now" for window and retention cutoffs

    Usage:
        store = ClientMetricsStore(db)
        await store.batch_insert_metrics(events)
        await store.batch_insert_total_metrics(events)
        records = await store.get_metrics_for_feature_toggle("new_checkout")
    """

    def __init__(
        self,
        db: AsyncSession,
        prune_variants: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.prune_variants = prune_variants
        self.clock = clock

    # ============================================================
    # POINT OPERATIONS
    # ============================================================

    def _key_clause(self, key: MetricKey):
        return and_(
            METRICS.c.feature_name == key.feature_name,
            METRICS.c.app_name == key.app_name,
            METRICS.c.environment == key.environment,
            METRICS.c.timestamp == start_of_hour(key.timestamp),
        )

    async def get(self, key: MetricKey) -> ClientMetricsEnv:
        """Get one hourly record by key."""
        query = select(METRICS).where(self._key_clause(key))
        result = await self.db.execute(query)
        row = result.first()

        if row is None:
            raise NotFoundError("Could not find metric")

        return _from_row(row)

    async def get_all(self, **filters: Any) -> list[ClientMetricsEnv]:
        """Get hourly records matching column equality filters."""
        query = select(METRICS)
        for field, value in filters.items():
            if field not in METRICS.c:
                raise MetricsError(f"Unknown metrics field: {field}")
            if field == "timestamp":
                value = start_of_hour(value)
            query = query.where(METRICS.c[field] == value)

        result = await self.db.execute(query)
        return [_from_row(row) for row in result]

    async def exists(self, key: MetricKey) -> bool:
        """Whether an hourly record exists. Lookup failures count as absent."""
        try:
            await self.get(key)
            return True
        except NotFoundError:
            return False
        except SQLAlchemyError as e:
            logger.warning(
                "Metric existence check failed",
                feature_name=key.feature_name,
                app_name=key.app_name,
                environment=key.environment,
                error=str(e),
            )
            return False

    async def delete(self, key: MetricKey) -> None:
        await self.db.execute(delete(METRICS).where(self._key_clause(key)))

    async def delete_all(self) -> None:
        await self.db.execute(delete(METRICS))

    # ============================================================
    # BATCH WRITES
    # ============================================================

    def _insert(self, table: Table):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(table)
        if dialect == "sqlite":
            return sqlite_insert(table)
        raise MetricsError(f"Upserts are not supported on {dialect}")

    async def _write_batch(
        self,
        table: Table,
        rows: Sequence[Any],
        counters: Sequence[str],
    ) -> None:
        """
        Insert rows, adding ``counters`` onto existing rows on key conflict.

        ``rows`` must already be unique per key and sorted by key.
        """
        if not rows:
            return

        stmt = self._insert(table).values([asdict(row) for row in rows])
        stmt = stmt.on_conflict_do_update(
            index_elements=[c.name for c in table.primary_key.columns],
            set_={name: table.c[name] + stmt.excluded[name] for name in counters},
        )
        await self.db.execute(stmt)

    async def batch_insert_metrics(self, events: list[MetricEvent]) -> None:
        """Compact events into hourly and variant rows and accumulate them."""
        if not events:
            return

        rows = sort_rows(collapse_hourly_metrics(events))
        await self._write_batch(METRICS, rows, counters=("yes", "no"))

        variant_rows = sort_rows(spread_variants(events))
        await self._write_batch(VARIANTS, variant_rows, counters=("count",))

        logger.debug(
            "Client metrics accumulated",
            events=len(events),
            hourly_rows=len(rows),
            variant_rows=len(variant_rows),
        )

    async def batch_insert_total_metrics(self, events: list[MetricEvent]) -> None:
        """Accumulate lifetime yes+no per feature and environment."""
        if not events:
            return

        rows = sort_rows(aggregate_totals(events))
        await self._write_batch(TOTALS, rows, counters=("total",))

    async def claim_batch(self, app_name: str, batch_id: str) -> bool:
        """
        Record a batch idempotency token for an app.

        Returns False when the token was recorded before, meaning the
        batch has already been accumulated and must not be applied again.
        """
        stmt = self._insert(BATCHES).values(
            app_name=app_name,
            batch_id=batch_id,
            applied_at=self.clock(),
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=["app_name", "batch_id"])
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    # ============================================================
    # READS
    # ============================================================

    async def get_metrics_for_feature_toggle(
        self,
        feature_name: str,
        hours_back: int = 24,
    ) -> list[ClientMetricsEnv]:
        """Hourly records of a feature within the window, with variants."""
        cutoff = hours_before(hours_back, self.clock())
        joined = METRICS.outerjoin(
            VARIANTS,
            and_(
                VARIANTS.c.feature_name == METRICS.c.feature_name,
                VARIANTS.c.app_name == METRICS.c.app_name,
                VARIANTS.c.environment == METRICS.c.environment,
                VARIANTS.c.timestamp == METRICS.c.timestamp,
            ),
        )
        query = (
            select(METRICS, VARIANTS.c.variant, VARIANTS.c["count"].label("variant_count"))
            .select_from(joined)
            .where(
                METRICS.c.feature_name == feature_name,
                METRICS.c.timestamp >= cutoff,
            )
            .order_by(METRICS.c.timestamp, METRICS.c.app_name, METRICS.c.environment)
        )
        result = await self.db.execute(query)

        records: dict[tuple, ClientMetricsEnv] = {}
        for row in result:
            record = _from_row(row)
            key = (record.feature_name, record.app_name, record.environment, record.timestamp)
            record = records.setdefault(key, record)
            if row.variant is not None:
                record.variants[row.variant] = int(row.variant_count)

        return list(records.values())

    async def get_total_count_for_toggle(self, feature_name: str) -> list[TotalMetricsPerEnv]:
        query = (
            select(TOTALS.c.environment, TOTALS.c.total)
            .where(TOTALS.c.feature_name == feature_name)
            .order_by(TOTALS.c.environment)
        )
        result = await self.db.execute(query)
        return [
            TotalMetricsPerEnv(environment=str(row.environment), total=int(row.total))
            for row in result
        ]

    async def get_seen_apps_for_feature_toggle(
        self,
        feature_name: str,
        hours_back: int = 24,
    ) -> list[str]:
        cutoff = hours_before(hours_back, self.clock())
        query = (
            select(METRICS.c.app_name)
            .where(METRICS.c.feature_name == feature_name, METRICS.c.timestamp >= cutoff)
            .distinct()
            .order_by(METRICS.c.app_name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_seen_toggles_for_app(
        self,
        app_name: str,
        hours_back: int = 24,
    ) -> list[str]:
        cutoff = hours_before(hours_back, self.clock())
        query = (
            select(METRICS.c.feature_name)
            .where(METRICS.c.app_name == app_name, METRICS.c.timestamp >= cutoff)
            .distinct()
            .order_by(METRICS.c.feature_name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ============================================================
    # RETENTION
    # ============================================================

    async def clear_metrics(self, hours_ago: int) -> int:
        """
        Delete hourly rows older than ``hours_ago`` hours.

        Rows exactly on the cutoff are kept. Totals are never touched;
        variant rows only when the store was built with prune_variants.
        Batch tokens past the horizon are dropped as well.
        """
        cutoff = hours_before(hours_ago, self.clock())
        result = await self.db.execute(delete(METRICS).where(METRICS.c.timestamp < cutoff))
        deleted = result.rowcount

        if self.prune_variants:
            await self.db.execute(delete(VARIANTS).where(VARIANTS.c.timestamp < cutoff))

        await self.db.execute(delete(BATCHES).where(BATCHES.c.applied_at < cutoff))

        logger.info("Client metrics swept", cutoff=cutoff.isoformat(), deleted=deleted)
        return deleted
