from __future__ import annotations

import functools
import time
from typing import Any, Callable, TypeVar

import structlog

from metricpoints.observability.metrics import record_query

F = TypeVar("F", bound=Callable[..., Any])

logger = structlog.get_logger("points")


def log_points_query(func: F) -> F:
    """
    Wrap a bucket aggregation so every call emits a structured log line and
    feeds the query counters. The wrapped callable must take
    (self, config, bucket, ...) and return a PointsResult.
    """

    @functools.wraps(func)
    def wrapper(self, config, bucket, *args: Any, **kwargs: Any):
        start = time.perf_counter()
        granularity = bucket.granularity.value
        calc_type = config.calc_type.name.lower()
        try:
            result = func(self, config, bucket, *args, **kwargs)
        except Exception:
            duration = (time.perf_counter() - start) * 1000
            record_query(granularity, calc_type, "error", duration)
            logger.exception(
                "points.query.error",
                metric_id=config.id,
                granularity=granularity,
                bucket=bucket.key,
                duration_ms=round(duration, 2),
            )
            raise
        duration = (time.perf_counter() - start) * 1000
        outcome = "rows" if result.rows_found else "empty"
        record_query(granularity, calc_type, outcome, duration)
        logger.info(
            "points.query.completed",
            metric_id=config.id,
            granularity=granularity,
            bucket=bucket.key,
            calc_type=calc_type,
            rows_found=result.rows_found,
            fell_back=result.fell_back,
            value=str(result.value),
            duration_ms=round(duration, 2),
        )
        return result

    return wrapper  # type: ignore[return-value]
