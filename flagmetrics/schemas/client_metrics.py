"""
Client metrics schemas.
"""

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, NonNegativeInt, field_serializer

from flagmetrics.utils.timezone import to_iso8601


class ToggleCounts(BaseModel):
    """Evaluation counts for one toggle within a bucket."""
    yes: NonNegativeInt = 0
    no: NonNegativeInt = 0
    variants: dict[str, NonNegativeInt] = Field(default_factory=dict)


class MetricsBucket(BaseModel):
    """Reporting interval of an SDK client."""
    start: datetime
    stop: datetime
    toggles: dict[str, ToggleCounts]


class ClientMetricsSchema(BaseModel):
    """Metrics report as sent by SDK clients."""
    model_config = ConfigDict(populate_by_name=True)

    app_name: str = Field(alias="appName", min_length=1, max_length=255)
    instance_id: str | None = Field(default=None, alias="instanceId")
    environment: str = Field(default="default", min_length=1, max_length=100)
    bucket: MetricsBucket


class ClientMetricsEnvResponse(BaseModel):
    """Hourly metrics record with its variant breakdown."""
    model_config = ConfigDict(from_attributes=True)

    feature_name: str
    app_name: str
    environment: str
    timestamp: datetime
    yes: int
    no: int
    variants: dict[str, int]

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return to_iso8601(value)


class TotalMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    environment: str
    total: int


class ClearMetricsResponse(BaseModel):
    deleted: int
