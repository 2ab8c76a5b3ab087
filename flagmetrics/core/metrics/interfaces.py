"""
Client Metrics Interfaces - Core abstractions.

Typed rows that cross the store boundary, and the store contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping


@dataclass(frozen=True)
class MetricEvent:
    """
    One usage observation reported by an SDK client.

    Attributes:
        feature_name: Flag that was evaluated
        app_name: Reporting application
        environment: Environment the client is bound to
        timestamp: When the observation was taken (any precision)
        yes: Number of evaluations that returned true
        no: Number of evaluations that returned false
        variants: Variant name -> number of times it was served
    """
    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime
    yes: int = 0
    no: int = 0
    variants: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MetricKey:
    """Primary key of an hourly record. The timestamp is floored on lookup."""
    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime


@dataclass
class HourlyMetricRow:
    """Row of client_metrics_env."""
    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime
    yes: int = 0
    no: int = 0

    @property
    def key(self) -> tuple[str, str, str, datetime]:
        return (self.feature_name, self.app_name, self.environment, self.timestamp)


@dataclass
class VariantMetricRow:
    """Row of client_metrics_env_variants."""
    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime
    variant: str
    count: int = 0

    @property
    def key(self) -> tuple[str, str, str, datetime, str]:
        return (
            self.feature_name,
            self.app_name,
            self.environment,
            self.timestamp,
            self.variant,
        )


@dataclass
class TotalMetricRow:
    """Row of client_metrics_total."""
    feature_name: str
    environment: str
    total: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.feature_name, self.environment)


@dataclass
class ClientMetricsEnv:
    """Hourly record as returned by reads, with its variant breakdown."""
    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime
    yes: int
    no: int
    variants: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TotalMetricsPerEnv:
    environment: str
    total: int


class ClientMetricsStoreBase(ABC):
    """
    Abstract store for client metrics aggregates.

    Implementations:
    - ClientMetricsStore: SQL database (PostgreSQL, SQLite)
    """

    @abstractmethod
    async def get(self, key: MetricKey) -> ClientMetricsEnv:
        """Get one hourly record. Raises NotFoundError if absent."""
        pass

    @abstractmethod
    async def get_all(self, **filters: Any) -> list[ClientMetricsEnv]:
        """Get hourly records matching column equality filters."""
        pass

    @abstractmethod
    async def exists(self, key: MetricKey) -> bool:
        pass

    @abstractmethod
    async def delete(self, key: MetricKey) -> None:
        pass

    @abstractmethod
    async def delete_all(self) -> None:
        pass

    @abstractmethod
    async def batch_insert_metrics(self, events: list[MetricEvent]) -> None:
        """Accumulate hourly and variant counts for a batch of events."""
        pass

    @abstractmethod
    async def batch_insert_total_metrics(self, events: list[MetricEvent]) -> None:
        """Accumulate lifetime totals for a batch of events."""
        pass

    @abstractmethod
    async def claim_batch(self, app_name: str, batch_id: str) -> bool:
        """Record a batch token for an app. False if it was already recorded."""
        pass

    @abstractmethod
    async def get_metrics_for_feature_toggle(
        self,
        feature_name: str,
        hours_back: int = 24,
    ) -> list[ClientMetricsEnv]:
        pass

    @abstractmethod
    async def get_total_count_for_toggle(self, feature_name: str) -> list[TotalMetricsPerEnv]:
        pass

    @abstractmethod
    async def get_seen_apps_for_feature_toggle(
        self,
        feature_name: str,
        hours_back: int = 24,
    ) -> list[str]:
        pass

    @abstractmethod
    async def get_seen_toggles_for_app(
        self,
        app_name: str,
        hours_back: int = 24,
    ) -> list[str]:
        pass

    @abstractmethod
    async def clear_metrics(self, hours_ago: int) -> int:
        """Delete hourly records older than the horizon. Returns rows deleted."""
        pass
