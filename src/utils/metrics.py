"""
Warden - Performance Metrics
============================

Lightweight counters and timers for engine operations.

DESIGN:
    Tracks timing metrics without significant overhead and doubles as the
    structured failure channel: every failure the moderation pipeline
    swallows (detector crash, store error, platform rejection) increments a
    `moderation.failures.<area>` counter here, so operability does not
    depend on reading log files.
    Uses a rolling window per metric to prevent unbounded memory growth.
"""

import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional

from src.core.config import NY_TZ
from src.core.logger import logger


# =============================================================================
# Constants
# =============================================================================

DEFAULT_WINDOW_SIZE = 100
"""Number of samples to keep per metric."""

SLOW_THRESHOLD_MS = 1000
"""Operations taking longer than this (ms) are logged as slow."""

FAILURE_PREFIX = "moderation.failures."


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class MetricSample:
    """Single metric sample."""
    value: float  # Duration in milliseconds
    timestamp: datetime = field(default_factory=lambda: datetime.now(NY_TZ))


@dataclass
class MetricStats:
    """Aggregated statistics for a metric."""
    name: str
    count: int
    avg_ms: float
    max_ms: float
    p95_ms: float
    slow_count: int


# =============================================================================
# Metrics Collector
# =============================================================================

class MetricsCollector:
    """
    Collects counters and timing samples.

    Attributes:
        metrics: Dictionary of metric name to sample deque.
        window_size: Maximum samples per metric.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE) -> None:
        self.metrics: Dict[str, deque] = {}
        self.window_size = window_size
        self._counters: Dict[str, int] = {}
        self._last_failures: Dict[str, str] = {}

    def record(self, name: str, duration_ms: float) -> None:
        """
        Record a timing sample.

        Args:
            name: Metric name (e.g., "moderation.analyze").
            duration_ms: Duration in milliseconds.
        """
        if name not in self.metrics:
            self.metrics[name] = deque(maxlen=self.window_size)
        self.metrics[name].append(MetricSample(value=duration_ms))

        if duration_ms > SLOW_THRESHOLD_MS:
            logger.warning("Slow Operation Detected", [
                ("Metric", name),
                ("Duration", f"{duration_ms:.0f}ms"),
                ("Threshold", f"{SLOW_THRESHOLD_MS}ms"),
            ])

    def increment(self, name: str, amount: int = 1) -> None:
        """Increment a counter."""
        self._counters[name] = self._counters.get(name, 0) + amount

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def record_failure(self, area: str, error: BaseException) -> None:
        """
        Count a swallowed failure and remember its last message.

        Args:
            area: Failure area, e.g. "detector.phishing" or "platform.kick".
            error: The exception that was swallowed.
        """
        name = f"{FAILURE_PREFIX}{area}"
        self.increment(name)
        self._last_failures[name] = f"{type(error).__name__}: {str(error)[:100]}"

    def get_failures(self) -> Dict[str, int]:
        """Get every failure counter keyed by area."""
        return {
            name[len(FAILURE_PREFIX):]: count
            for name, count in self._counters.items()
            if name.startswith(FAILURE_PREFIX)
        }

    def get_stats(self, name: str) -> Optional[MetricStats]:
        """Calculate statistics for a metric, or None without samples."""
        samples = self.metrics.get(name)
        if not samples:
            return None

        values: List[float] = sorted(s.value for s in samples)
        count = len(values)
        p95_idx = min(int(count * 0.95), count - 1)

        return MetricStats(
            name=name,
            count=count,
            avg_ms=sum(values) / count,
            max_ms=values[-1],
            p95_ms=values[p95_idx],
            slow_count=sum(1 for v in values if v > SLOW_THRESHOLD_MS),
        )

    def get_summary(self) -> Dict[str, Any]:
        """Get counters, failures and timing stats as one dict."""
        return {
            "counters": dict(self._counters),
            "failures": self.get_failures(),
            "last_failures": dict(self._last_failures),
            "metrics": {
                name: {
                    "count": stats.count,
                    "avg_ms": round(stats.avg_ms, 2),
                    "p95_ms": round(stats.p95_ms, 2),
                    "max_ms": round(stats.max_ms, 2),
                }
                for name in self.metrics
                if (stats := self.get_stats(name)) is not None
            },
        }

    def clear(self) -> None:
        """Clear all metrics and counters."""
        self.metrics.clear()
        self._counters.clear()
        self._last_failures.clear()

    @contextmanager
    def timer(self, name: str) -> Generator[None, None, None]:
        """
        Context manager for timing operations.

        Example:
            with metrics.timer("moderation.analyze"):
                result = orchestrator.analyze_message(...)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)


# =============================================================================
# Global Instance
# =============================================================================

metrics = MetricsCollector()
"""Global metrics collector instance."""


def increment_counter(name: str, amount: int = 1) -> None:
    """Increment a counter in the global collector."""
    metrics.increment(name, amount)


def record_failure(area: str, error: BaseException) -> None:
    """Count a swallowed failure in the global collector."""
    metrics.record_failure(area, error)


def get_metrics_summary() -> Dict[str, Any]:
    """Get summary from the global collector."""
    return metrics.get_summary()


__all__ = [
    "MetricsCollector",
    "MetricSample",
    "MetricStats",
    "metrics",
    "increment_counter",
    "record_failure",
    "get_metrics_summary",
    "SLOW_THRESHOLD_MS",
]
