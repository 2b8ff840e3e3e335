# metricpoints/services/sample_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from metricpoints.core.errors import StoreUnavailable
from metricpoints.models import MetricPoint
from metricpoints.schemas.metric import CalcType
from metricpoints.utils.buckets import Bucket, to_utc
from metricpoints.utils.numeric import coerce_decimal

# (lower, upper) bounds on created_at, both inclusive, UTC-aware.
Window = Tuple[datetime, datetime]


@dataclass(frozen=True)
class AggregateResult:
    value: Optional[Decimal]
    rows_found: bool


class SampleStore(Protocol):
    def query_aggregate(
        self,
        metric_id: int,
        bucket: Bucket,
        calc_type: CalcType,
        *,
        window: Optional[Window] = None,
        timeout_ms: Optional[int] = None,
    ) -> AggregateResult:
        ...


def _store_ts(moment: datetime) -> datetime:
    """created_at is persisted as naive UTC."""
    return to_utc(moment).replace(tzinfo=None)


class SqlSampleStore:
    """SampleStore over the metric_points table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _dialect(self) -> str:
        return self.db.bind.dialect.name if self.db.bind is not None else ""

    def _aggregate_expr(self, calc_type: CalcType):
        weighted = MetricPoint.value * MetricPoint.counter
        if calc_type is CalcType.AVG:
            agg = sa.func.avg(weighted)
        else:
            agg = sa.func.sum(weighted)
        if self._dialect() == "postgresql":
            # numeric comes back exact; no column scale so AVG keeps its digits
            return sa.type_coerce(agg, sa.Numeric(asdecimal=True))
        # SQLite has no decimal type; Numeric would quantize AVG to the column scale
        return sa.type_coerce(agg, sa.Float)

    def _apply_timeout(self, timeout_ms: Optional[int]) -> None:
        if not timeout_ms:
            return
        if self._dialect() == "postgresql":
            # SET LOCAL lasts until the end of the current transaction
            self.db.execute(sa.text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

    def query_aggregate(
        self,
        metric_id: int,
        bucket: Bucket,
        calc_type: CalcType,
        *,
        window: Optional[Window] = None,
        timeout_ms: Optional[int] = None,
    ) -> AggregateResult:
        conds = [
            MetricPoint.metric_id == metric_id,
            MetricPoint.created_at >= _store_ts(bucket.start),
            MetricPoint.created_at < _store_ts(bucket.end),
        ]
        if window is not None:
            lower, upper = window
            conds.append(MetricPoint.created_at.between(_store_ts(lower), _store_ts(upper)))

        stmt = (
            sa.select(
                self._aggregate_expr(calc_type).label("value"),
                sa.func.count(MetricPoint.id).label("rows"),
            )
            .where(sa.and_(*conds))
        )

        try:
            self._apply_timeout(timeout_ms)
            row = self.db.execute(stmt).one()
        except SQLAlchemyError as ex:
            raise StoreUnavailable(
                f"Aggregate query for metric {metric_id} ({bucket.granularity.value} {bucket.key}) failed: {ex}",
                metric_id=metric_id,
            ) from ex

        rows = int(row.rows or 0)
        if rows == 0:
            return AggregateResult(value=None, rows_found=False)
        return AggregateResult(value=coerce_decimal(row.value), rows_found=True)


__all__ = ["AggregateResult", "SampleStore", "SqlSampleStore", "Window"]
