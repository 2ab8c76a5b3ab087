"""
Client Metrics Models - SQLAlchemy models for usage aggregates.

Tables:
- client_metrics_env: hourly yes/no counts per feature, app and environment
- client_metrics_env_variants: hourly variant counts (sparse)
- client_metrics_total: lifetime yes+no per feature and environment
- client_metrics_batches: idempotency tokens of applied batches

All counters are written through insert-or-accumulate upserts and only
ever grow. Composite primary keys, no surrogate ids.
"""

from datetime import datetime
from sqlalchemy import BigInteger, String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

from flagmetrics.models.base import Base


class ClientMetricsEnvModel(Base):
    """Hourly evaluation counts for one feature in one app and environment."""

    __tablename__ = "client_metrics_env"
    __table_args__ = (
        Index("idx_client_metrics_env_app_name", "app_name"),
        Index("idx_client_metrics_env_timestamp", "timestamp"),
    )

    feature_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    app_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    environment: Mapped[str] = mapped_column(String(100), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
    )
    yes: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    no: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ClientMetricsEnv {self.feature_name}/{self.app_name}/"
            f"{self.environment} @ {self.timestamp}>"
        )


class ClientMetricsEnvVariantModel(Base):
    """
    Hourly count for one variant of a feature.

    Variants are reported inconsistently across SDK versions, so they live
    in their own sparse table instead of widening client_metrics_env.
    """

    __tablename__ = "client_metrics_env_variants"
    __table_args__ = (
        Index("idx_client_metrics_env_variants_timestamp", "timestamp"),
    )

    feature_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    app_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    environment: Mapped[str] = mapped_column(String(100), primary_key=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
    )
    variant: Mapped[str] = mapped_column(String(255), primary_key=True)
    count: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ClientMetricsEnvVariant {self.feature_name}:{self.variant} @ {self.timestamp}>"


class ClientMetricsTotalModel(Base):
    """Lifetime yes+no count per feature and environment."""

    __tablename__ = "client_metrics_total"

    feature_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    environment: Mapped[str] = mapped_column(String(100), primary_key=True)
    total: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ClientMetricsTotal {self.feature_name}/{self.environment}={self.total}>"


class ClientMetricsBatchModel(Base):
    """
    Idempotency token of a batch that has already been accumulated.

    Tokens are scoped per app, so two SDKs using the same key do not
    collide.
    """

    __tablename__ = "client_metrics_batches"

    app_name: Mapped[str] = mapped_column(String(255), primary_key=True)
    batch_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ClientMetricsBatch {self.app_name}/{self.batch_id}>"
