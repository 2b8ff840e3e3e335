# metricpoints/services/series.py
from __future__ import annotations

import calendar
from decimal import Decimal
from typing import Any, Dict, Optional

from metricpoints.schemas.metric import MetricConfig, MetricView
from metricpoints.services.points import PointsAggregator, no_window, week_window
from metricpoints.utils.buckets import Granularity, shift_back

Series = Dict[str, Decimal]

LABEL_FORMATS = {
    Granularity.MINUTE: "%H:%M",
    Granularity.HOUR: "%H:00",
    Granularity.DAY: "%Y-%m-%d",
}


def _series(
    aggregator: PointsAggregator,
    metric: Any,
    granularity: Granularity,
    count: int,
    *,
    day_window: bool = False,
) -> Series:
    """
    `count` consecutive buckets ending with the current one, oldest first.

    Labels are local wall-clock times. When two buckets share one (the
    repeated hour of a DST fall-back) both get their UTC offset appended,
    e.g. "01:00 -0400" and "01:00 -0500".
    """
    config = MetricConfig.from_metric(metric)
    now = aggregator.now()
    label_format = LABEL_FORMATS[granularity]
    results = []
    for offset in range(count - 1, -1, -1):
        anchor = shift_back(now, granularity, offset, aggregator.tz)
        result = aggregator.points_for_bucket(
            config,
            granularity,
            anchor,
            window_policy=week_window if day_window else no_window,
            now=now,
        )
        results.append(result)

    labels = [r.bucket.local_start.strftime(label_format) for r in results]
    repeated = {label for label in labels if labels.count(label) > 1}
    points: Series = {}
    for label, result in zip(labels, results):
        if label in repeated:
            label = result.bucket.local_start.strftime(f"{label_format} %z")
        points[label] = result.value
    return points


def list_points_last_hour(aggregator: PointsAggregator, metric: Any) -> Series:
    return _series(aggregator, metric, Granularity.MINUTE, 60)


def list_points_today(aggregator: PointsAggregator, metric: Any, hours: int = 12) -> Series:
    return _series(aggregator, metric, Granularity.HOUR, hours)


def list_points_for_week(aggregator: PointsAggregator, metric: Any) -> Series:
    return _series(aggregator, metric, Granularity.DAY, 7, day_window=True)


def list_points_for_month(aggregator: PointsAggregator, metric: Any) -> Series:
    """One day bucket per day in the current month's length, ending today."""
    today = aggregator.now().astimezone(aggregator.tz)
    days = calendar.monthrange(today.year, today.month)[1]
    return _series(aggregator, metric, Granularity.DAY, days, day_window=True)


def list_points(aggregator: PointsAggregator, metric: Any, view: Optional[MetricView] = None) -> Series:
    config = MetricConfig.from_metric(metric)
    view = config.default_view if view is None else MetricView(view)
    if view is MetricView.LAST_HOUR:
        return list_points_last_hour(aggregator, config)
    if view is MetricView.WEEK:
        return list_points_for_week(aggregator, config)
    if view is MetricView.MONTH:
        return list_points_for_month(aggregator, config)
    return list_points_today(aggregator, config)


__all__ = [
    "Series",
    "list_points",
    "list_points_for_month",
    "list_points_for_week",
    "list_points_last_hour",
    "list_points_today",
]
