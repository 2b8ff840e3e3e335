from __future__ import annotations

import json
import logging
import threading

import pytest
import structlog
from prometheus_client import REGISTRY

from metricpoints.core.errors import StoreUnavailable
from metricpoints.observability import metrics as points_metrics
from metricpoints.observability.logging import configure_logging


def _query_count(granularity, calc_type, outcome):
    return REGISTRY.get_sample_value(
        "metric_points_queries_total",
        {"granularity": granularity, "calc_type": calc_type, "outcome": outcome},
    ) or 0.0


def test_queries_are_counted_by_outcome(aggregator, make_metric, add_point, now):
    metric = make_metric()
    before_rows = _query_count("minute", "sum", "rows")
    before_empty = _query_count("minute", "sum", "empty")

    add_point(metric, 1, now)
    aggregator.points_in_last_hour(metric, 0, 0)
    aggregator.points_in_last_hour(metric, 0, 5)

    assert _query_count("minute", "sum", "rows") == before_rows + 1
    assert _query_count("minute", "sum", "empty") == before_empty + 1


def test_store_errors_are_counted_and_reraised(db, aggregator, make_metric, monkeypatch):
    metric = make_metric()
    before = _query_count("hour", "sum", "error")

    def _unavailable(*args, **kwargs):
        raise StoreUnavailable("down", metric_id=metric.id)

    monkeypatch.setattr(aggregator.store, "query_aggregate", _unavailable)
    with pytest.raises(StoreUnavailable):
        aggregator.points_by_hour(metric, 0)
    assert _query_count("hour", "sum", "error") == before + 1


def test_latency_summary_per_granularity(aggregator, make_metric):
    points_metrics.reset_latency_samples()
    metric = make_metric()
    for _ in range(3):
        aggregator.points_for_day_in_week(metric, 1)

    summary = {row["granularity"]: row for row in points_metrics.latency_summary()}
    assert set(summary) == {"day"}
    assert summary["day"]["sample_size"] == 3
    assert summary["day"]["p95_ms"] >= summary["day"]["p50_ms"]


def test_latency_summary_while_queries_are_recorded():
    points_metrics.reset_latency_samples()
    stop = threading.Event()
    errors = []

    def record():
        while not stop.is_set():
            for granularity in ("minute", "hour", "day"):
                points_metrics.record_query(granularity, "sum", "rows", 1.5)
            points_metrics.reset_latency_samples()

    writer = threading.Thread(target=record)
    writer.start()
    try:
        for _ in range(500):
            try:
                for row in points_metrics.latency_summary():
                    assert row["sample_size"] >= 1
                    assert row["p50_ms"] == 1.5
            except RuntimeError as ex:
                errors.append(ex)
    finally:
        stop.set()
        writer.join()
        points_metrics.reset_latency_samples()

    assert errors == []


def test_percentile_interpolates():
    assert points_metrics._percentile([], 50) == 0.0
    assert points_metrics._percentile([1.0, 3.0], 50) == pytest.approx(2.0)


def test_configure_logging_emits_json(caplog):
    caplog.set_level(logging.INFO)
    configure_logging("INFO")
    try:
        structlog.get_logger("points.test").info("points.test", metric_id=1)
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "points.test"
        assert payload["metric_id"] == 1
        assert payload["level"] == "info"
    finally:
        structlog.reset_defaults()
