"""Time-bucketed point aggregation for metric series."""

__version__ = "0.3.0"
