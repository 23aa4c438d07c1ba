"""
Tests for performance monitoring.
"""
import asyncio
import pytest
from correlab.core.performance import PerformanceMonitor, track_performance


@pytest.mark.unit
def test_performance_monitor_record():
    PerformanceMonitor.record_metric("test_metric", 1.5, {"test": "data"})
    PerformanceMonitor.record_metric("test_metric", 2.0)
    PerformanceMonitor.record_metric("test_metric", 0.5)

    stats = PerformanceMonitor.get_stats("test_metric")

    assert stats is not None
    assert stats["count"] == 3
    assert stats["min"] == 0.5
    assert stats["max"] == 2.0
    assert stats["mean"] == pytest.approx(1.333, rel=0.01)
    assert stats["errors"] == 0


@pytest.mark.unit
def test_performance_decorator_sync():
    @track_performance("double")
    def double(x: int) -> int:
        return x * 2

    assert double(5) == 10

    stats = PerformanceMonitor.get_stats("double")
    assert stats["count"] == 1
    assert stats["mean"] >= 0


@pytest.mark.unit
def test_performance_decorator_records_failures():
    @track_performance("explode")
    def explode():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        explode()

    stats = PerformanceMonitor.get_stats("explode")
    assert stats["count"] == 1
    assert stats["errors"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_performance_decorator_async():
    @track_performance("async_double")
    async def async_double(x: int) -> int:
        await asyncio.sleep(0.01)
        return x * 2

    assert await async_double(5) == 10

    stats = PerformanceMonitor.get_stats("async_double")
    assert stats["count"] == 1
    assert stats["mean"] > 0


@pytest.mark.unit
def test_performance_monitor_clear():
    PerformanceMonitor.record_metric("test", 1.0)
    assert PerformanceMonitor.get_stats("test") is not None

    PerformanceMonitor.clear_metrics()
    assert PerformanceMonitor.get_stats("test") is None
    assert PerformanceMonitor.get_all_metrics() == {}
