"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter
from correlab.core.performance import PerformanceMonitor

router = APIRouter()


@router.get("/metrics")
async def get_metrics():
    """
    Timing statistics for every tracked operation.

    Covers parsing, profiling, correlation analysis, chart recommendation,
    dataset queries and request durations.
    """
    return {'performance': PerformanceMonitor.get_all_metrics()}
