"""
In-memory compaction of metric events.

Every function here builds a local key -> row mapping for the batch it is
given and throws it away afterwards. Input events are never mutated, and
output order is unspecified (the store sorts before writing).
"""

from typing import Iterable

from flagmetrics.utils.timezone import start_of_hour
from .interfaces import MetricEvent, HourlyMetricRow, VariantMetricRow, TotalMetricRow


def collapse_hourly_metrics(events: Iterable[MetricEvent]) -> list[HourlyMetricRow]:
    """
    Merge events that share (feature, app, environment, hour).

    Usage:
        rows = collapse_hourly_metrics(events)
        # at most one row per key, yes/no summed
    """
    rows: dict[tuple, HourlyMetricRow] = {}

    for event in events:
        hour = start_of_hour(event.timestamp)
        key = (event.feature_name, event.app_name, event.environment, hour)
        row = rows.get(key)
        if row is None:
            rows[key] = HourlyMetricRow(
                feature_name=event.feature_name,
                app_name=event.app_name,
                environment=event.environment,
                timestamp=hour,
                yes=event.yes,
                no=event.no,
            )
        else:
            row.yes += event.yes
            row.no += event.no

    return list(rows.values())


def spread_variants(events: Iterable[MetricEvent]) -> list[VariantMetricRow]:
    """
    Flatten per-event variant maps into one row per
    (feature, app, environment, hour, variant).

    Works on raw events, so variant counts from events that land in the
    same hour are summed here. Events without variants add nothing.
    """
    rows: dict[tuple, VariantMetricRow] = {}

    for event in events:
        if not event.variants:
            continue
        hour = start_of_hour(event.timestamp)
        for variant, count in event.variants.items():
            key = (event.feature_name, event.app_name, event.environment, hour, variant)
            row = rows.get(key)
            if row is None:
                rows[key] = VariantMetricRow(
                    feature_name=event.feature_name,
                    app_name=event.app_name,
                    environment=event.environment,
                    timestamp=hour,
                    variant=variant,
                    count=count,
                )
            else:
                row.count += count

    return list(rows.values())


def aggregate_totals(events: Iterable[MetricEvent]) -> list[TotalMetricRow]:
    """Sum yes + no per (feature, environment), ignoring app and hour."""
    rows: dict[tuple[str, str], TotalMetricRow] = {}

    for event in events:
        key = (event.feature_name, event.environment)
        row = rows.get(key)
        if row is None:
            rows[key] = TotalMetricRow(
                feature_name=event.feature_name,
                environment=event.environment,
                total=event.yes + event.no,
            )
        else:
            row.total += event.yes + event.no

    return list(rows.values())


def sort_rows(rows: list) -> list:
    """
    Order rows by their primary-key tuple.

    Concurrent batches that lock overlapping rows must take the locks in
    the same order, or two transactions can wait on each other.
    """
    return sorted(rows, key=lambda row: row.key)
