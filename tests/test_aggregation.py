"""
Tests for in-memory compaction of metric events.
"""

import random
from datetime import datetime, timedelta, timezone

from flagmetrics.core.metrics import (
    MetricEvent,
    aggregate_totals,
    collapse_hourly_metrics,
    sort_rows,
    spread_variants,
)

T = datetime(2024, 1, 15, 14, 17, 42, 123456, tzinfo=timezone.utc)
HOUR = datetime(2024, 1, 15, 14, 0, tzinfo=timezone.utc)


def test_collapse_sums_events_in_same_hour(event_factory):
    """Events within the same clock hour merge into one row."""
    events = [
        event_factory(timestamp=T, yes=3, no=1),
        event_factory(timestamp=T + timedelta(minutes=30), yes=5, no=0),
        event_factory(timestamp=HOUR, yes=1, no=1),
    ]

    rows = collapse_hourly_metrics(events)

    assert len(rows) == 1
    assert rows[0].timestamp == HOUR
    assert (rows[0].yes, rows[0].no) == (9, 2)


def test_collapse_keeps_distinct_keys_apart(event_factory):
    """Each field of the key separates rows."""
    events = [
        event_factory(timestamp=T, yes=1),
        event_factory(timestamp=T + timedelta(hours=1), yes=1),
        event_factory(feature_name="f2", timestamp=T, yes=1),
        event_factory(app_name="a2", timestamp=T, yes=1),
        event_factory(environment="dev", timestamp=T, yes=1),
    ]

    rows = collapse_hourly_metrics(events)

    assert len(rows) == 5
    assert len({row.key for row in rows}) == 5


def test_collapse_keys_do_not_collide_on_separator(event_factory):
    """Names containing underscores must not merge with other names."""
    events = [
        event_factory(feature_name="a_b", app_name="c", timestamp=T, yes=1),
        event_factory(feature_name="a", app_name="b_c", timestamp=T, yes=1),
    ]

    rows = collapse_hourly_metrics(events)

    assert len(rows) == 2


def test_collapse_does_not_mutate_input(event_factory):
    event = event_factory(timestamp=T, yes=2, no=3)

    rows = collapse_hourly_metrics([event, event])

    assert rows[0].yes == 4
    assert event.timestamp == T
    assert (event.yes, event.no) == (2, 3)


def test_collapse_normalizes_other_timezones(event_factory):
    """Timestamps in other zones land in the matching UTC hour."""
    plus_two = timezone(timedelta(hours=2))
    event = event_factory(timestamp=datetime(2024, 1, 15, 16, 45, tzinfo=plus_two), yes=1)

    rows = collapse_hourly_metrics([event])

    assert rows[0].timestamp == HOUR


def test_spread_variants_sums_across_raw_events(event_factory):
    events = [
        event_factory(timestamp=T, variants={"A": 2}),
        event_factory(timestamp=T + timedelta(minutes=5), variants={"A": 1, "B": 4}),
    ]

    rows = spread_variants(events)

    counts = {row.variant: row.count for row in rows}
    assert counts == {"A": 3, "B": 4}
    assert all(row.timestamp == HOUR for row in rows)


def test_spread_variants_skips_events_without_variants(event_factory):
    events = [
        event_factory(timestamp=T, yes=10),
        MetricEvent(
            feature_name="f1",
            app_name="a1",
            environment="prod",
            timestamp=T,
            yes=1,
            no=0,
        ),
    ]

    assert spread_variants(events) == []


def test_spread_variants_never_drops_a_variant(event_factory):
    """Every variant present in the input appears in the output."""
    rng = random.Random(7)
    events = [
        event_factory(
            feature_name=f"f{rng.randint(0, 3)}",
            timestamp=T + timedelta(hours=rng.randint(0, 2)),
            variants={f"v{rng.randint(0, 5)}": rng.randint(0, 9) for _ in range(3)},
        )
        for _ in range(40)
    ]

    rows = spread_variants(events)

    seen = {(r.feature_name, r.variant) for r in rows}
    for event in events:
        for variant in event.variants:
            assert (event.feature_name, variant) in seen
    assert sum(r.count for r in rows) == sum(sum(e.variants.values()) for e in events)


def test_aggregate_totals_ignores_app_and_hour(event_factory):
    events = [
        event_factory(app_name="a1", timestamp=T, yes=3, no=1),
        event_factory(app_name="a2", timestamp=T + timedelta(days=3), yes=5, no=0),
        event_factory(environment="dev", yes=2, no=2),
    ]

    totals = {row.key: row.total for row in aggregate_totals(events)}

    assert totals == {("f1", "prod"): 9, ("f1", "dev"): 4}


def test_results_do_not_depend_on_input_order(event_factory):
    rng = random.Random(42)
    events = [
        event_factory(
            feature_name=rng.choice(["f1", "f2"]),
            app_name=rng.choice(["a1", "a2", "a3"]),
            timestamp=T + timedelta(minutes=rng.randint(0, 180)),
            yes=rng.randint(0, 10),
            no=rng.randint(0, 10),
            variants={rng.choice(["A", "B"]): rng.randint(1, 5)},
        )
        for _ in range(50)
    ]
    shuffled = list(events)
    rng.shuffle(shuffled)

    assert sort_rows(collapse_hourly_metrics(events)) == sort_rows(collapse_hourly_metrics(shuffled))
    assert sort_rows(spread_variants(events)) == sort_rows(spread_variants(shuffled))
    assert sort_rows(aggregate_totals(events)) == sort_rows(aggregate_totals(shuffled))


def test_sort_rows_orders_by_primary_key(event_factory):
    events = [
        event_factory(feature_name="b", app_name="x", timestamp=T),
        event_factory(feature_name="a", app_name="z", timestamp=T),
        event_factory(feature_name="a", app_name="y", timestamp=T + timedelta(hours=1)),
        event_factory(feature_name="a", app_name="y", timestamp=T),
    ]

    rows = sort_rows(collapse_hourly_metrics(events))

    assert [(r.feature_name, r.app_name) for r in rows] == [
        ("a", "y"),
        ("a", "y"),
        ("a", "z"),
        ("b", "x"),
    ]
    assert rows[0].timestamp < rows[1].timestamp
