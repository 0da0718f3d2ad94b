"""
Metrics collection for the property registry.

A small thread-safe collector for:
- Counters: registry operations by outcome, HTTP requests
- Gauges: identity, asset and attestation counts; active requests
- Histograms: operation and request latency in milliseconds

Exported as JSON or in Prometheus text format under the
property_registry_ prefix.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

METRIC_PREFIX = "property_registry_"

# Registry operations are in-memory and usually finish well under a millisecond
DEFAULT_BUCKETS_MS = [0.1, 0.5, 1, 2.5, 5, 10, 25, 50, 100, 250, 1000]


@dataclass
class HistogramBucket:
    le: float  # Less than or equal to
    count: int = 0


@dataclass
class Histogram:
    """Cumulative-bucket histogram of observed values."""

    name: str
    buckets: list[HistogramBucket] = field(default_factory=list)
    sum: float = 0.0
    count: int = 0

    def __post_init__(self):
        if not self.buckets:
            self.buckets = [HistogramBucket(le=b) for b in DEFAULT_BUCKETS_MS]
            self.buckets.append(HistogramBucket(le=float("inf")))

    def observe(self, value: float) -> None:
        self.sum += value
        self.count += 1
        for bucket in self.buckets:
            if value <= bucket.le:
                bucket.count += 1


class MetricsCollector:
    """
    Thread-safe metrics collector.

    Collects counters, gauges, and histograms with optional labels.
    """

    def __init__(self, prefix: str = METRIC_PREFIX):
        self.prefix = prefix
        self._lock = threading.RLock()
        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._gauges: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
        self._histograms: dict[str, dict[str, Histogram]] = defaultdict(dict)
        self._start_time = time.time()

    def _labels_key(self, labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))

    # Counter operations

    def increment(self, name: str, value: int = 1, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._counters[name][self._labels_key(labels)] += value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_key(labels), 0)

    # Gauge operations

    def set_gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        with self._lock:
            self._gauges[name][self._labels_key(labels)] = value

    def increment_gauge(
        self, name: str, value: float = 1.0, labels: dict[str, str] | None = None
    ) -> None:
        with self._lock:
            self._gauges[name][self._labels_key(labels)] += value

    def decrement_gauge(
        self, name: str, value: float = 1.0, labels: dict[str, str] | None = None
    ) -> None:
        with self._lock:
            self._gauges[name][self._labels_key(labels)] -= value

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._gauges.get(name, {}).get(self._labels_key(labels), 0.0)

    # Histogram operations

    def timing(self, name: str, value_ms: float, labels: dict[str, str] | None = None) -> None:
        """Record a timing observation in milliseconds."""
        with self._lock:
            key = self._labels_key(labels)
            if key not in self._histograms[name]:
                self._histograms[name][key] = Histogram(name=name)
            self._histograms[name][key].observe(value_ms)

    def get_histogram_count(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            hist = self._histograms.get(name, {}).get(self._labels_key(labels))
            return hist.count if hist else 0

    @contextmanager
    def timer(self, name: str, labels: dict[str, str] | None = None):
        """Context manager for timing code blocks."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.timing(name, (time.perf_counter() - start) * 1000, labels)

    # Export methods

    def get_all(self) -> dict[str, Any]:
        """All metrics as a JSON-safe dictionary."""
        with self._lock:
            result = {
                "uptime_seconds": time.time() - self._start_time,
                "counters": {},
                "gauges": {},
                "histograms": {},
            }

            for name, values in self._counters.items():
                if len(values) == 1 and "" in values:
                    result["counters"][name] = values[""]
                else:
                    result["counters"][name] = dict(values)

            for name, values in self._gauges.items():
                if len(values) == 1 and "" in values:
                    result["gauges"][name] = values[""]
                else:
                    result["gauges"][name] = dict(values)

            for name, histograms in self._histograms.items():
                result["histograms"][name] = {}
                for key, hist in histograms.items():
                    result["histograms"][name][key or "_total"] = {
                        "count": hist.count,
                        "sum": hist.sum,
                        "avg": hist.sum / hist.count if hist.count > 0 else 0,
                        "buckets": {str(b.le): b.count for b in hist.buckets},
                    }

            return result

    def _sample_lines(self, metric_name: str, values: dict[str, float]) -> list[str]:
        return [
            f"{metric_name}{{{key}}} {value}" if key else f"{metric_name} {value}"
            for key, value in values.items()
        ]

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        with self._lock:
            uptime_name = f"{self.prefix}uptime_seconds"
            lines.append(f"# HELP {uptime_name} Time since application start")
            lines.append(f"# TYPE {uptime_name} gauge")
            lines.append(f"{uptime_name} {time.time() - self._start_time:.2f}")
            lines.append("")

            for name, values in self._counters.items():
                metric_name = f"{self.prefix}{name}"
                lines.append(f"# TYPE {metric_name} counter")
                lines.extend(self._sample_lines(metric_name, values))
                lines.append("")

            for name, values in self._gauges.items():
                metric_name = f"{self.prefix}{name}"
                lines.append(f"# TYPE {metric_name} gauge")
                lines.extend(self._sample_lines(metric_name, values))
                lines.append("")

            for name, histograms in self._histograms.items():
                metric_name = f"{self.prefix}{name}"
                lines.append(f"# TYPE {metric_name} histogram")
                for key, hist in histograms.items():
                    label_prefix = f"{key}," if key else ""
                    for bucket in hist.buckets:
                        le_val = "+Inf" if bucket.le == float("inf") else bucket.le
                        lines.append(
                            f'{metric_name}_bucket{{{label_prefix}le="{le_val}"}} {bucket.count}'
                        )
                    labels = f"{{{key}}}" if key else ""
                    lines.append(f"{metric_name}_sum{labels} {hist.sum:.2f}")
                    lines.append(f"{metric_name}_count{labels} {hist.count}")
                lines.append("")

        return "\n".join(lines)

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._start_time = time.time()


# Global metrics instance
metrics = MetricsCollector()
