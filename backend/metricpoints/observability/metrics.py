from __future__ import annotations

from collections import defaultdict, deque
from typing import Deque, Dict, List

from prometheus_client import Counter, Histogram

POINTS_QUERIES = Counter(
    "metric_points_queries_total",
    "Points aggregate queries",
    ["granularity", "calc_type", "outcome"],
)
POINTS_QUERY_LATENCY = Histogram(
    "metric_points_query_duration_seconds",
    "Points aggregate query latency",
    ["granularity"],
)

_LATENCY_SAMPLES: Dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=200))


def record_query(granularity: str, calc_type: str, outcome: str, duration_ms: float) -> None:
    _LATENCY_SAMPLES[granularity].append(duration_ms)
    POINTS_QUERIES.labels(granularity=granularity, calc_type=calc_type, outcome=outcome).inc()
    POINTS_QUERY_LATENCY.labels(granularity=granularity).observe(duration_ms / 1000)


def latency_summary() -> List[dict]:
    """p50/p95 of the most recent query durations, per granularity."""
    payload: List[dict] = []
    # snapshot: record_query may add granularities or append while we read
    for granularity, samples in list(_LATENCY_SAMPLES.items()):
        ordered = sorted(list(samples))
        if not ordered:
            continue
        payload.append({
            "granularity": granularity,
            "p50_ms": round(_percentile(ordered, 50), 2),
            "p95_ms": round(_percentile(ordered, 95), 2),
            "sample_size": len(ordered),
        })
    return payload


def reset_latency_samples() -> None:
    _LATENCY_SAMPLES.clear()


def _percentile(ordered: List[float], pct: int) -> float:
    if not ordered:
        return 0.0
    k = (len(ordered) - 1) * (pct / 100)
    f = int(k)
    c = min(f + 1, len(ordered) - 1)
    if f == c:
        return ordered[f]
    d0 = ordered[f] * (c - k)
    d1 = ordered[c] * (k - f)
    return d0 + d1
