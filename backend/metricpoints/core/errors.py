from __future__ import annotations


class PointsError(Exception):
    """Base class for errors raised while computing metric points."""


class InvalidConfiguration(PointsError, ValueError):
    """A metric (or the aggregator) is configured with values we cannot compute with."""


class StoreUnavailable(PointsError):
    """The sample store could not answer an aggregate query."""

    def __init__(self, message: str, *, metric_id: int | None = None) -> None:
        super().__init__(message)
        self.metric_id = metric_id


__all__ = ["PointsError", "InvalidConfiguration", "StoreUnavailable"]
