"""
Metrics Collection

Prometheus-backed counters and histograms for graph builds and raster
queries. Every collector owns a private registry so several collectors
(one per server app or per test) never clash on metric names.
"""

import json
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import structlog
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@dataclass
class MetricValue:
    """Represents a single recorded metric value with metadata."""
    name: str
    value: Union[int, float]
    timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)


# name -> (type, description, label names)
METRIC_DEFINITIONS = {
    'graph_elements_total': (
        'counter', 'Map elements consumed by the graph builder', ['element']
    ),
    'graph_ways_total': (
        'counter', 'Ways closed by the graph builder', ['status']
    ),
    'graph_build_failures_total': (
        'counter', 'Graph builds aborted by a fatal error', ['error']
    ),
    'graph_build_duration_seconds': (
        'histogram', 'Wall clock duration of complete graph builds', []
    ),
    'raster_queries_total': (
        'counter', 'Raster tile selections served', ['status']
    ),
    'raster_query_depth': (
        'histogram', 'Quadtree depth chosen for raster queries', []
    ),
}

_DEPTH_BUCKETS = (0, 1, 2, 3, 4, 5, 6, 7, float('inf'))


class MetricsCollector:
    """
    Metrics collector for the graph builder and the tile selector.

    Values go to Prometheus metrics on a private registry and to a small ring
    buffer used for the JSON export.
    """

    def __init__(self, enabled: bool = True, buffer_size: int = 1000):
        self.enabled = enabled
        self.logger = structlog.get_logger(collector_type="MetricsCollector")

        self.metrics_buffer = deque(maxlen=buffer_size)
        self.lock = threading.RLock()

        self.registry = CollectorRegistry()
        self.counters: Dict[str, Counter] = {}
        self.histograms: Dict[str, Histogram] = {}
        for name, (metric_type, description, labels) in METRIC_DEFINITIONS.items():
            self._create_metric(metric_type, name, description, labels)

    def _create_metric(
        self,
        metric_type: str,
        name: str,
        description: str,
        labels: List[str]
    ) -> None:
        if metric_type == 'counter':
            self.counters[name] = Counter(
                name, description, labels, registry=self.registry
            )
        elif metric_type == 'histogram':
            buckets = _DEPTH_BUCKETS if name == 'raster_query_depth' else Histogram.DEFAULT_BUCKETS
            self.histograms[name] = Histogram(
                name, description, labels, buckets=buckets, registry=self.registry
            )
        else:
            raise ValueError(f"Unsupported metric type: {metric_type}")

    def increment_counter(
        self,
        name: str,
        value: Union[int, float] = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name, one of ``METRIC_DEFINITIONS``
            value: Value to increment by
            labels: Metric labels
        """
        if not self.enabled:
            return
        labels = labels or {}
        counter = self.counters[name]
        with self.lock:
            self._buffer(name, value, labels)
            if labels:
                counter.labels(**labels).inc(value)
            else:
                counter.inc(value)

    def record_histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record an observation on a histogram metric."""
        if not self.enabled:
            return
        labels = labels or {}
        histogram = self.histograms[name]
        with self.lock:
            self._buffer(name, value, labels)
            if labels:
                histogram.labels(**labels).observe(value)
            else:
                histogram.observe(value)

    def record_timing(self, name: str, start_time: float) -> float:
        """Record the seconds elapsed since ``start_time`` and return them."""
        duration = time.time() - start_time
        self.record_histogram(name, duration)
        return duration

    def _buffer(self, name: str, value: Union[int, float], labels: Dict[str, str]) -> None:
        self.metrics_buffer.append(MetricValue(
            name=name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=dict(labels)
        ))

    def get_counter_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current value of a counter, 0.0 when it has never been incremented."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def get_histogram_count(self, name: str) -> float:
        value = self.registry.get_sample_value(f"{name}_count", {})
        return value if value is not None else 0.0

    def export_metrics(self, format: str = "json") -> str:
        """
        Export metrics.

        Args:
            format: ``prometheus`` for the text exposition format, ``json`` for
                the recent values held in the ring buffer

        Returns:
            Serialized metrics
        """
        format = format.lower()
        if format == "prometheus":
            return generate_latest(self.registry).decode('utf-8')
        if format == "json":
            with self.lock:
                recent = [
                    {
                        'name': m.name,
                        'value': m.value,
                        'timestamp': m.timestamp.isoformat(),
                        'labels': m.labels
                    }
                    for m in self.metrics_buffer
                ]
            return json.dumps({
                'export_timestamp': datetime.now(timezone.utc).isoformat(),
                'metrics_count': len(recent),
                'metrics': recent
            }, indent=2)
        raise ValueError(f"Unsupported export format: {format}")
