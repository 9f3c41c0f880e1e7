"""Simple in-process metrics collection for propsync.

This module provides lightweight counters and histograms for tracking
ingestion health without external dependencies. Metrics are stored in
memory and exported via the ``/metrics`` endpoint.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Mapping

LabelKey = tuple[tuple[str, str | None], ...]


def _labels_to_key(labels: Mapping[str, str | None] | None) -> LabelKey:
    if labels is None:
        return ()
    return tuple(sorted(labels.items()))


# ---------------------------------------------------------------------------
# Metric storage
# ---------------------------------------------------------------------------


@dataclass
class Counter:
    """A monotonically increasing counter."""

    name: str
    help_text: str = ""
    _values: dict[LabelKey, float] = field(
        default_factory=lambda: defaultdict(float)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def inc(
        self, value: float = 1.0, labels: Mapping[str, str | None] | None = None
    ) -> None:
        """Increment the counter by the given value."""
        key = _labels_to_key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, labels: Mapping[str, str | None] | None = None) -> float:
        """Get the current counter value."""
        key = _labels_to_key(labels)
        with self._lock:
            return self._values.get(key, 0.0)


@dataclass
class Histogram:
    """Records a distribution of values as count and sum per label set."""

    name: str
    help_text: str = ""
    _observations: dict[LabelKey, list[float]] = field(
        default_factory=lambda: defaultdict(list)
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def observe(
        self, value: float, labels: Mapping[str, str | None] | None = None
    ) -> None:
        key = _labels_to_key(labels)
        with self._lock:
            self._observations[key].append(value)

    def get_stats(
        self, labels: Mapping[str, str | None] | None = None
    ) -> dict[str, float]:
        key = _labels_to_key(labels)
        with self._lock:
            values = list(self._observations.get(key, []))
        if not values:
            return {"count": 0, "sum": 0.0, "avg": 0.0}
        return {
            "count": len(values),
            "sum": sum(values),
            "avg": sum(values) / len(values),
        }


class MetricRegistry:
    """Registry for all metrics of the process."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name, help_text=help_text)
            return self._counters[name]

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name=name, help_text=help_text)
            return self._histograms[name]

    def all_counters(self) -> dict[str, Counter]:
        with self._lock:
            return dict(self._counters)

    def all_histograms(self) -> dict[str, Histogram]:
        with self._lock:
            return dict(self._histograms)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()


_registry = MetricRegistry()


def get_registry() -> MetricRegistry:
    return _registry


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


def increment_counter(
    name: str,
    value: float = 1.0,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Increment a counter by name, creating it if it doesn't exist."""
    _registry.counter(name, help_text).inc(value, labels)


def observe_histogram(
    name: str,
    value: float,
    labels: Mapping[str, str | None] | None = None,
    help_text: str = "",
) -> None:
    """Record an observation in a histogram, creating it if needed."""
    _registry.histogram(name, help_text).observe(value, labels)


class Timer:
    """Context manager for timing operations and recording to a histogram."""

    def __init__(
        self,
        histogram_name: str,
        labels: Mapping[str, str | None] | None = None,
        help_text: str = "",
    ) -> None:
        self.histogram_name = histogram_name
        self.labels = labels
        self.help_text = help_text
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        duration = time.perf_counter() - self._start
        observe_histogram(self.histogram_name, duration, self.labels, self.help_text)


# ---------------------------------------------------------------------------
# Predefined metrics
# ---------------------------------------------------------------------------

SYNC_RUNS = "sync_runs_total"
SYNC_RUN_DURATION = "sync_run_duration_seconds"
SYNC_PROPERTIES_SYNCED = "sync_properties_synced_total"
PROVIDER_API_CALLS = "provider_api_calls_total"
PROVIDER_REQUEST_DURATION = "provider_request_duration_seconds"
MEDIA_REHOSTS = "media_rehost_total"
RATE_LIMIT_CHECKS = "rate_limit_checks_total"


def record_sync_run(
    sync_type: str, status: str, duration: float, properties_synced: int
) -> None:
    """Record a finished sync run."""
    increment_counter(
        SYNC_RUNS,
        labels={"sync_type": sync_type, "status": status},
        help_text="Total sync runs",
    )
    observe_histogram(
        SYNC_RUN_DURATION,
        duration,
        labels={"sync_type": sync_type},
        help_text="Sync run duration in seconds",
    )
    if properties_synced:
        increment_counter(
            SYNC_PROPERTIES_SYNCED,
            value=float(properties_synced),
            labels={"sync_type": sync_type},
            help_text="Total records upserted by sync runs",
        )


def record_provider_call(operation: str, outcome: str) -> None:
    increment_counter(
        PROVIDER_API_CALLS,
        labels={"operation": operation, "outcome": outcome},
        help_text="Outbound calls made to the listing provider",
    )


def record_media_rehost(kind: str, status: str) -> None:
    """Record one rehost copy attempt.

    Args:
        kind: 'photos' or 'floor_plans'
        status: 'ok', 'cached' or 'error'
    """
    increment_counter(
        MEDIA_REHOSTS,
        labels={"kind": kind, "status": status},
        help_text="Media rehost attempts",
    )


def record_rate_limit_check(function: str, allowed: bool) -> None:
    increment_counter(
        RATE_LIMIT_CHECKS,
        labels={"function": function, "allowed": "true" if allowed else "false"},
        help_text="Rate limiter decisions",
    )


# ---------------------------------------------------------------------------
# Export utilities
# ---------------------------------------------------------------------------


def get_metrics_summary() -> dict[str, object]:
    """Return a summary of all metrics for logging or API response."""
    counters: dict[str, dict[str, float]] = {}
    histograms: dict[str, dict[str, dict[str, float]]] = {}

    for name, counter in _registry.all_counters().items():
        values = {}
        for key, value in dict(counter._values).items():
            label_str = ",".join(f"{k}={v}" for k, v in key) if key else "default"
            values[label_str] = value
        counters[name] = values

    for name, histogram in _registry.all_histograms().items():
        stats = {}
        for key in list(histogram._observations):
            label_str = ",".join(f"{k}={v}" for k, v in key) if key else "default"
            stats[label_str] = histogram.get_stats(dict(key) if key else None)
        histograms[name] = stats

    return {"counters": counters, "histograms": histograms}


def format_prometheus() -> str:
    """Format metrics in Prometheus text exposition format."""
    lines: list[str] = []

    for name, counter in _registry.all_counters().items():
        if counter.help_text:
            lines.append(f"# HELP {name} {counter.help_text}")
        lines.append(f"# TYPE {name} counter")
        for key, value in dict(counter._values).items():
            if key:
                label_str = ",".join(f'{k}="{v}"' for k, v in key)
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

    for name, histogram in _registry.all_histograms().items():
        if histogram.help_text:
            lines.append(f"# HELP {name} {histogram.help_text}")
        lines.append(f"# TYPE {name} histogram")
        for key in list(histogram._observations):
            stats = histogram.get_stats(dict(key) if key else None)
            if key:
                label_str = ",".join(f'{k}="{v}"' for k, v in key)
                lines.append(f"{name}_count{{{label_str}}} {stats['count']}")
                lines.append(f"{name}_sum{{{label_str}}} {stats['sum']}")
            else:
                lines.append(f"{name}_count {stats['count']}")
                lines.append(f"{name}_sum {stats['sum']}")

    return "\n".join(lines)
