# metricpoints/schemas/metric.py
from __future__ import annotations

from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from metricpoints.core.errors import InvalidConfiguration


class CalcType(IntEnum):
    SUM = 0
    AVG = 1

    @classmethod
    def coerce(cls, raw: Any) -> "CalcType":
        """
        Map a stored calc_type onto the enum. Missing or unrecognised values
        resolve to SUM for every window.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            name = raw.strip().upper()
            if name in cls.__members__:
                return cls[name]
            raw = name
        try:
            return cls(int(raw))
        except (TypeError, ValueError):
            return cls.SUM


class MetricView(IntEnum):
    LAST_HOUR = 0
    TODAY = 1
    WEEK = 2
    MONTH = 3


class MetricConfig(BaseModel):
    """Aggregation settings of a metric as they are at query time."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    name: Optional[str] = None
    calc_type: CalcType = CalcType.SUM
    default_value: Decimal = Decimal(0)
    places: int = Field(2, ge=0, strict=True)
    default_view: MetricView = MetricView.TODAY

    @field_validator("calc_type", mode="before")
    @classmethod
    def _coerce_calc_type(cls, v):
        return CalcType.coerce(v)

    @field_validator("default_value", mode="before")
    @classmethod
    def _default_value_or_zero(cls, v):
        if v is None:
            return Decimal(0)
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator("places", mode="before")
    @classmethod
    def _places_or_default(cls, v):
        return 2 if v is None else v

    @field_validator("default_view", mode="before")
    @classmethod
    def _view_or_today(cls, v):
        try:
            return MetricView(int(v))
        except (TypeError, ValueError):
            return MetricView.TODAY

    @classmethod
    def from_metric(cls, metric: Any) -> "MetricConfig":
        """
        Build a config from an ORM Metric (or any object / dict with the same
        fields). Raises InvalidConfiguration when the values can't be used.
        """
        if isinstance(metric, cls):
            return metric
        try:
            if isinstance(metric, dict):
                return cls.model_validate(metric)
            return cls.model_validate(metric, from_attributes=True)
        except ValidationError as ex:
            metric_id = metric.get("id") if isinstance(metric, dict) else getattr(metric, "id", None)
            raise InvalidConfiguration(f"Metric {metric_id!r} has an invalid configuration: {ex}") from ex


__all__ = ["CalcType", "MetricView", "MetricConfig"]
