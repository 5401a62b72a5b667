"""
Warden - Utils Package
======================

Utility modules shared by the moderation services.

DESIGN:
    Utils are helper functions and classes that can be used anywhere in
    the codebase. They do not depend on bot state.

Available Utilities:
    AsyncUtils: Safe background tasks and logged gathers
    Cache: TTL cache for computed read views
    KeyedLock: Per-key asyncio locks
    Metrics: Counters, timers and the swallowed-failure channel
"""

from .async_utils import (
    TaskGroupTracker,
    create_safe_task,
    gather_with_logging,
    safe_async_operation,
)
from .cache import TTLCache
from .keyed_lock import KeyedLock
from .metrics import (
    MetricsCollector,
    MetricSample,
    MetricStats,
    get_metrics_summary,
    increment_counter,
    metrics,
    record_failure,
)


__all__ = [
    # Async
    "TaskGroupTracker",
    "create_safe_task",
    "gather_with_logging",
    "safe_async_operation",
    # Cache
    "TTLCache",
    # Locks
    "KeyedLock",
    # Metrics
    "MetricsCollector",
    "MetricSample",
    "MetricStats",
    "get_metrics_summary",
    "increment_counter",
    "metrics",
    "record_failure",
]
