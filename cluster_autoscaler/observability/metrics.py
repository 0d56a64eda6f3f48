"""Prometheus-style metrics registry for the autoscaler. Thread-safe, in-memory."""

import threading
from typing import Any


def _label_key(name: str, labels: dict[str, str]) -> str:
    return name + "".join(f":{k}={v}" for k, v in sorted(labels.items()))


class MetricsRegistry:
    """
    In-memory registry of counters and latency histograms. Counters may carry
    cluster / role / category labels. Exposes increment, observe_latency, export_metrics.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        self._counters_by_labels: dict[str, dict[str, float]] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        cluster: str | None = None,
        role: str | None = None,
        category: str | None = None,
    ) -> None:
        """Increment a counter. Any of cluster, role or category makes it a labelled series."""
        labels = {
            k: v
            for k, v in (("cluster", cluster), ("role", role), ("category", category))
            if v is not None
        }
        with self._lock:
            if labels:
                series = self._counters_by_labels.setdefault(name, {})
                key = _label_key(name, labels)
                series[key] = series.get(key, 0) + value
            else:
                self._counters[name] = self._counters.get(name, 0) + value

    def observe_latency(self, name: str, latency_ms: float, *, cluster: str | None = None) -> None:
        """Record a latency observation (histogram-style)."""
        with self._lock:
            bucket = name if cluster is None else f"{name}:cluster={cluster}"
            self._histograms.setdefault(bucket, []).append(latency_ms)

    def export_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "counters_by_labels": {k: dict(v) for k, v in self._counters_by_labels.items()},
                "histograms": {
                    k: {"count": len(v), "sum": sum(v), "values": list(v)}
                    for k, v in self._histograms.items()
                },
            }

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        with self._lock:
            self._counters.clear()
            self._counters_by_labels.clear()
            self._histograms.clear()
