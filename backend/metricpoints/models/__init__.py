from .metric import Metric
from .metric_point import MetricPoint


__all__ = ["Metric", "MetricPoint"]
