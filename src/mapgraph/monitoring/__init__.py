"""
Monitoring Module

Prometheus metrics for graph builds and raster tile queries.
"""

from .metrics import MetricsCollector, MetricValue

__all__ = [
    "MetricsCollector",
    "MetricValue"
]
