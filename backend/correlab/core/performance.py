"""
Timing of analysis operations.

Durations are kept in a bounded in-process window per operation and
exposed through the /api/metrics endpoint.
"""
import time
import inspect
import logging
import threading
from collections import defaultdict, deque
from functools import wraps
from typing import Any, Deque, Dict, Optional

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_METRIC = 1000

_metrics_lock = threading.Lock()
_metrics: Dict[str, Deque[Dict[str, Any]]] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES_PER_METRIC))


class PerformanceMonitor:
    """Record and summarize operation durations."""

    @staticmethod
    def record_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None):
        """
        Record one duration sample.

        Args:
            name: Operation name (e.g. 'compute_stats')
            value: Duration in seconds
            metadata: Optional extra fields (status, error, row counts)
        """
        with _metrics_lock:
            _metrics[name].append({
                'value': value,
                'timestamp': time.time(),
                'metadata': metadata or {}
            })

    @staticmethod
    def _summarize(samples) -> Optional[Dict[str, float]]:
        if not samples:
            return None
        values = sorted(s['value'] for s in samples)
        return {
            'count': len(values),
            'min': values[0],
            'max': values[-1],
            'mean': sum(values) / len(values),
            'p50': values[len(values) // 2],
            'p95': values[int(len(values) * 0.95)],
            'errors': sum(1 for s in samples if s['metadata'].get('status') == 'error'),
        }

    @staticmethod
    def get_stats(metric_name: str) -> Optional[Dict[str, float]]:
        """Summary statistics for one operation, or None if never recorded."""
        with _metrics_lock:
            samples = list(_metrics.get(metric_name, ()))
        return PerformanceMonitor._summarize(samples)

    @staticmethod
    def get_all_metrics() -> Dict[str, Dict[str, float]]:
        """Summary statistics for every recorded operation."""
        with _metrics_lock:
            snapshot = {name: list(samples) for name, samples in _metrics.items()}
        return {name: PerformanceMonitor._summarize(samples) for name, samples in snapshot.items()}

    @staticmethod
    def clear_metrics():
        """Clear all metrics (useful for testing)."""
        with _metrics_lock:
            _metrics.clear()


def _record(metric_name: str, started: float, error: Optional[Exception] = None) -> None:
    duration = time.perf_counter() - started
    if error is None:
        PerformanceMonitor.record_metric(metric_name, duration, {'status': 'success'})
        logger.debug(f"{metric_name} completed in {duration:.3f}s",
                     extra={'metric': metric_name, 'duration': duration})
    else:
        PerformanceMonitor.record_metric(metric_name, duration, {'status': 'error', 'error': str(error)})
        logger.warning(f"{metric_name} failed after {duration:.3f}s: {error}",
                       extra={'metric': metric_name, 'duration': duration})


def track_performance(metric_name: str):
    """
    Decorator recording how long a function (sync or async) takes.

    Usage:
        @track_performance("compute_stats")
        def compute_stats(...):
            ...
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record(metric_name, started, e)
                    raise
                _record(metric_name, started)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _record(metric_name, started, e)
                raise
            _record(metric_name, started)
            return result
        return sync_wrapper

    return decorator
