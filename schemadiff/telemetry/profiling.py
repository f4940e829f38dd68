"""Timing of hot diff operations.

``@profile_operation(name)`` wraps a function with ``perf_counter_ns``
timing; durations go to a thread-safe :class:`ProfileCollector` and are
logged at DEBUG level.  Schema pairs may be diffed on worker threads, so
the collector guards its buffers with a lock.

Usage::

    @profile_operation("diff.reconcile")
    def reconcile(...):
        ...

    ProfileCollector.get_instance().get_stats("diff.reconcile")
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class ProfileCollector:
    """Keeps the most recent durations (ms) per operation name."""

    _instance: ProfileCollector | None = None
    _instance_lock = threading.Lock()

    def __init__(self, max_results: int = 200) -> None:
        self._max_results = max_results
        self._durations: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> ProfileCollector:
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = ProfileCollector()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared collector (tests)."""
        with cls._instance_lock:
            cls._instance = None

    def record(self, operation: str, duration_ms: float) -> None:
        with self._lock:
            bucket = self._durations.get(operation)
            if bucket is None:
                bucket = self._durations[operation] = deque(maxlen=self._max_results)
            bucket.append(duration_ms)

    def operations(self) -> list[str]:
        with self._lock:
            return sorted(self._durations)

    def get_stats(self, operation: str) -> dict[str, Any] | None:
        """Return ``count``, ``mean_ms``, ``p50_ms``, ``p95_ms`` and ``max_ms``, or ``None``."""
        with self._lock:
            bucket = self._durations.get(operation)
            if not bucket:
                return None
            durations = sorted(bucket)

        count = len(durations)
        return {
            "operation": operation,
            "count": count,
            "mean_ms": round(sum(durations) / count, 3),
            "p50_ms": round(durations[(count - 1) // 2], 3),
            "p95_ms": round(durations[min(count - 1, int(0.95 * count))], 3),
            "max_ms": round(durations[-1], 3),
        }


def profile_operation(name: str) -> Callable[[F], F]:
    """Record the wall-clock duration of every call under *name*."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start_ns = time.perf_counter_ns()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                ProfileCollector.get_instance().record(name, duration_ms)
                logger.debug("PROFILE %s: %.3f ms", name, duration_ms)

        return wrapper  # type: ignore[return-value]

    return decorator
