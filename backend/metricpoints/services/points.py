# metricpoints/services/points.py
"""
Point aggregation for a metric over a single time bucket.

The three public windows (a minute of the last hour, an hour, a day of the
week) share one algorithm and only differ by bucket granularity and an
optional outer window on created_at.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from decimal import Decimal
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from metricpoints.config import Settings, get_settings
from metricpoints.core.clock import Clock, utc_now
from metricpoints.core.errors import InvalidConfiguration
from metricpoints.db.session import read_session
from metricpoints.observability.instrument import log_points_query
from metricpoints.schemas.metric import MetricConfig
from metricpoints.services.sample_store import SampleStore, SqlSampleStore, Window
from metricpoints.utils.buckets import Bucket, Granularity, bucket_for, resolve_timezone, shift_back
from metricpoints.utils.numeric import round_half_away

WindowPolicy = Callable[[datetime, Bucket], Optional[Window]]


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as ex:
        raise InvalidConfiguration(f"Points settings are invalid: {ex}") from ex


def no_window(now: datetime, bucket: Bucket) -> Optional[Window]:
    return None


def week_window(now: datetime, bucket: Bucket) -> Optional[Window]:
    """[bucket day - 1 week, now + 1 day]; never narrower than a past day bucket."""
    return bucket.start - timedelta(weeks=1), now + timedelta(days=1)


@dataclass(frozen=True)
class PointsResult:
    value: Decimal
    rows_found: bool
    fell_back: bool
    bucket: Bucket


def zero_falls_back_to_default(aggregate: Decimal, default_value: Decimal) -> bool:
    """
    A bucket whose aggregate is exactly 0 reports the metric's default_value
    instead, unless that default is itself 0. Rows netting to zero and an
    empty bucket are treated alike.
    """
    return aggregate == 0 and default_value != 0


class PointsAggregator:
    def __init__(
        self,
        store: SampleStore,
        *,
        clock: Clock = utc_now,
        tz: str | tzinfo | None = None,
        zero_fallback: Optional[bool] = None,
        timeout_ms: Optional[int] = None,
    ) -> None:
        settings = _load_settings()
        self.store = store
        self.clock = clock
        self.tz = resolve_timezone(tz if tz is not None else settings.POINTS_TIMEZONE)
        self.zero_fallback = settings.ZERO_FALLS_BACK_TO_DEFAULT if zero_fallback is None else zero_fallback
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.QUERY_TIMEOUT_MS

    def now(self) -> datetime:
        return self.clock()

    def points_for_bucket(
        self,
        metric: Any,
        granularity: Granularity,
        anchor: datetime,
        *,
        window_policy: WindowPolicy = no_window,
        now: Optional[datetime] = None,
    ) -> PointsResult:
        config = MetricConfig.from_metric(metric)
        bucket = bucket_for(anchor, granularity, self.tz)
        window = window_policy(now or self.now(), bucket)
        return self._aggregate(config, bucket, window)

    @log_points_query
    def _aggregate(self, config: MetricConfig, bucket: Bucket, window: Optional[Window]) -> PointsResult:
        result = self.store.query_aggregate(
            config.id,
            bucket,
            config.calc_type,
            window=window,
            timeout_ms=self.timeout_ms,
        )
        aggregate = result.value if result.rows_found and result.value is not None else Decimal(0)

        if self.zero_fallback:
            fell_back = zero_falls_back_to_default(aggregate, config.default_value)
        else:
            fell_back = not result.rows_found and config.default_value != 0

        value = config.default_value if fell_back else aggregate
        return PointsResult(
            value=round_half_away(value, config.places),
            rows_found=result.rows_found,
            fell_back=fell_back,
            bucket=bucket,
        )

    def points_in_last_hour(self, metric: Any, hours_ago: int = 0, minutes_ago: int = 0) -> Decimal:
        now = self.now()
        anchor = now - timedelta(hours=hours_ago, minutes=minutes_ago)
        return self.points_for_bucket(metric, Granularity.MINUTE, anchor, now=now).value

    def points_by_hour(self, metric: Any, hours_ago: int = 0) -> Decimal:
        now = self.now()
        anchor = now - timedelta(hours=hours_ago)
        return self.points_for_bucket(metric, Granularity.HOUR, anchor, now=now).value

    def points_for_day_in_week(self, metric: Any, days_ago: int = 0) -> Decimal:
        now = self.now()
        anchor = shift_back(now, Granularity.DAY, days_ago, self.tz)
        return self.points_for_bucket(
            metric, Granularity.DAY, anchor, window_policy=week_window, now=now
        ).value


def aggregator_for(db: Session, **kwargs: Any) -> PointsAggregator:
    """PointsAggregator over the SQL sample store bound to `db`."""
    return PointsAggregator(SqlSampleStore(db), **kwargs)


@contextmanager
def open_aggregator(**kwargs: Any) -> Iterator[PointsAggregator]:
    """PointsAggregator over its own read-only session, closed on exit."""
    with read_session() as db:
        yield aggregator_for(db, **kwargs)


def get_points_last_hour(db: Session, metric: Any, hour: int, minute: int, *, clock: Clock = utc_now) -> Decimal:
    return aggregator_for(db, clock=clock).points_in_last_hour(metric, hour, minute)


def get_points_by_hour(db: Session, metric: Any, hour: int, *, clock: Clock = utc_now) -> Decimal:
    return aggregator_for(db, clock=clock).points_by_hour(metric, hour)


def get_points_for_day_in_week(db: Session, metric: Any, day: int, *, clock: Clock = utc_now) -> Decimal:
    return aggregator_for(db, clock=clock).points_for_day_in_week(metric, day)


__all__ = [
    "PointsAggregator",
    "PointsResult",
    "WindowPolicy",
    "aggregator_for",
    "get_points_by_hour",
    "get_points_for_day_in_week",
    "get_points_last_hour",
    "no_window",
    "open_aggregator",
    "week_window",
    "zero_falls_back_to_default",
]
