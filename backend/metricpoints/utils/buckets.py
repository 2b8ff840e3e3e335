"""Calendar truncation of timestamps into minute, hour and day buckets.

Truncation happens in one fixed timezone (``POINTS_TIMEZONE``) and the
resulting bucket is described as a half-open UTC range so the store can
filter with plain comparisons on ``created_at``.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum

import pytz

from metricpoints.core.errors import InvalidConfiguration


class Granularity(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @property
    def step(self) -> timedelta:
        return _STEPS[self]

    @property
    def key_format(self) -> str:
        return _KEY_FORMATS[self]


_STEPS = {
    Granularity.MINUTE: timedelta(minutes=1),
    Granularity.HOUR: timedelta(hours=1),
    Granularity.DAY: timedelta(days=1),
}

_KEY_FORMATS = {
    Granularity.MINUTE: "%Y%m%d%H%M",
    Granularity.HOUR: "%Y%m%d%H",
    Granularity.DAY: "%Y%m%d",
}


@dataclass(frozen=True)
class Bucket:
    granularity: Granularity
    key: str
    local_start: datetime
    start: datetime  # UTC, inclusive
    end: datetime  # UTC, exclusive

    def contains(self, moment: datetime) -> bool:
        return self.start <= to_utc(moment) < self.end


def resolve_timezone(name: str | tzinfo) -> tzinfo:
    if isinstance(name, tzinfo):
        return name
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as ex:
        raise InvalidConfiguration(f"Unknown timezone {name!r}") from ex


def to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        raise ValueError("naive datetimes are ambiguous here; pass an aware datetime")
    return moment.astimezone(pytz.utc)


def _localize(zone: tzinfo, naive: datetime) -> datetime:
    if hasattr(zone, "localize"):
        return zone.localize(naive)
    return naive.replace(tzinfo=zone)


def shift_back(moment: datetime, granularity: Granularity, count: int, tz: str | tzinfo = "UTC") -> datetime:
    """
    `moment` moved `count` buckets into the past. Days are calendar days in `tz`,
    so "3 days ago" keeps the wall-clock time across DST changes.
    """
    if granularity is not Granularity.DAY:
        return moment - granularity.step * count
    zone = resolve_timezone(tz)
    local = to_utc(moment).astimezone(zone)
    return _localize(zone, local.replace(tzinfo=None) - timedelta(days=count))


def bucket_for(moment: datetime, granularity: Granularity, tz: str | tzinfo = "UTC") -> Bucket:
    """
    Bucket of `granularity` that holds `moment`, truncated on the wall clock of `tz`.

    Minute and hour buckets keep the UTC offset in force at `moment`, so the
    repeated hour of a DST fall-back yields two distinct buckets. Day buckets
    run from local midnight to the next local midnight (23h or 25h on
    transition days).
    """
    zone = resolve_timezone(tz)
    local = to_utc(moment).astimezone(zone)

    if granularity is Granularity.DAY:
        naive_start = local.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
        local_start = _localize(zone, naive_start)
        end = _localize(zone, naive_start + granularity.step).astimezone(pytz.utc)
    else:
        if granularity is Granularity.HOUR:
            local_start = local.replace(minute=0, second=0, microsecond=0)
        else:
            local_start = local.replace(second=0, microsecond=0)
        end = local_start.astimezone(pytz.utc) + granularity.step

    return Bucket(
        granularity=granularity,
        key=local_start.strftime(granularity.key_format),
        local_start=local_start,
        start=local_start.astimezone(pytz.utc),
        end=end,
    )


__all__ = ["Granularity", "Bucket", "bucket_for", "resolve_timezone", "shift_back", "to_utc"]
