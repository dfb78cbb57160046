"""Performance monitoring for compliance operations.

Tracks the duration of analyses, analytics runs and suggestion requests so
slow operations show up in logs and pipeline statistics.
"""

import functools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class PerformanceMetrics:
    """Timing of one tracked operation."""

    operation_name: str
    start_time: float = field(default_factory=time.perf_counter)
    end_time: Optional[float] = None
    duration: Optional[float] = None
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def finish(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark the operation as finished."""
        self.end_time = time.perf_counter()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.error = error


class PerformanceMonitor:
    """
    Monitor and track performance metrics for compliance operations.

    Operations that take longer than ``max_processing_time`` seconds are
    logged as warnings. Safe to share between threads.
    """

    def __init__(self, max_processing_time: float = 60):
        """
        Initialize the performance monitor.

        Args:
            max_processing_time: Maximum expected processing time in seconds.
        """
        self.max_processing_time = max_processing_time
        self.metrics: Dict[str, List[PerformanceMetrics]] = {}
        self._operation_stack: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    def start_operation(self, operation_name: str, **metadata) -> PerformanceMetrics:
        """
        Start tracking an operation.

        Args:
            operation_name: Name of the operation.
            **metadata: Additional metadata to track.

        Returns:
            PerformanceMetrics object for this operation.
        """
        metric = PerformanceMetrics(operation_name=operation_name, metadata=metadata)
        with self._lock:
            self._operation_stack.append(metric)
        return metric

    def end_operation(
        self,
        metric: Optional[PerformanceMetrics] = None,
        success: bool = True,
        error: Optional[str] = None
    ) -> None:
        """
        End tracking an operation.

        Args:
            metric: The metric to end. If None, ends the most recent operation.
            success: Whether the operation succeeded.
            error: Optional error message.
        """
        with self._lock:
            if metric is None and self._operation_stack:
                metric = self._operation_stack.pop()
            elif metric and metric in self._operation_stack:
                self._operation_stack.remove(metric)

            if metric is None:
                return
            metric.finish(success=success, error=error)
            self.metrics.setdefault(metric.operation_name, []).append(metric)

        if metric.duration and metric.duration > self.max_processing_time:
            logger.warning(
                f"Operation '{metric.operation_name}' exceeded max time: "
                f"{metric.duration:.2f}s > {self.max_processing_time}s"
            )

    @contextmanager
    def track(self, operation_name: str, **metadata) -> Iterator[PerformanceMetrics]:
        """Track the enclosed block as one operation."""
        metric = self.start_operation(operation_name, **metadata)
        try:
            yield metric
        except Exception as e:
            self.end_operation(metric, success=False, error=str(e))
            raise
        self.end_operation(metric)

    def get_operation_stats(self, operation_name: str) -> Dict[str, Any]:
        """
        Get statistics for a specific operation.

        Args:
            operation_name: Name of the operation.

        Returns:
            Dictionary with statistics (avg, min, max, count).
        """
        with self._lock:
            recorded = list(self.metrics.get(operation_name, []))

        durations = [m.duration for m in recorded if m.duration is not None]
        if not durations:
            return {}

        return {
            "count": len(durations),
            "average": sum(durations) / len(durations),
            "min": min(durations),
            "max": max(durations),
            "total": sum(durations),
            "success_rate": sum(1 for m in recorded if m.success) / len(recorded),
        }

    def get_all_stats(self) -> Dict[str, Dict[str, Any]]:
        """Get statistics for all tracked operations."""
        with self._lock:
            names = list(self.metrics.keys())
        return {name: self.get_operation_stats(name) for name in names}

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self.metrics.clear()
            self._operation_stack.clear()


def timed_operation(operation_name: str):
    """
    Decorator to log the duration of a function call.

    Args:
        operation_name: Name of the operation to track.

    Example:
        @timed_operation("compute_risk_analytics")
        def compute(analyses):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                duration = time.perf_counter() - start_time
                logger.debug(f"{operation_name} completed in {duration:.3f}s")
                return result
            except Exception as e:
                duration = time.perf_counter() - start_time
                logger.error(f"{operation_name} failed after {duration:.3f}s: {e}")
                raise
        return wrapper
    return decorator
