"""
Unit Tests for Metrics Collection
"""

import json
import time
import unittest

from mapgraph.monitoring.metrics import MetricsCollector


class TestMetricsCollector(unittest.TestCase):
    """Test suite for the Prometheus backed collector."""

    def setUp(self):
        self.metrics = MetricsCollector()

    def test_increment_counter(self):
        """Test labelled counters accumulate."""
        self.metrics.increment_counter('raster_queries_total', labels={'status': 'success'})
        self.metrics.increment_counter('raster_queries_total', 2, labels={'status': 'success'})

        self.assertEqual(self.metrics.get_counter_value('raster_queries_total', {'status': 'success'}), 3)
        self.assertEqual(self.metrics.get_counter_value('raster_queries_total', {'status': 'rejected'}), 0)

    def test_record_histogram(self):
        """Test histogram observations are counted."""
        self.metrics.record_histogram('raster_query_depth', 3)
        self.metrics.record_histogram('raster_query_depth', 7)

        self.assertEqual(self.metrics.get_histogram_count('raster_query_depth'), 2)

    def test_record_timing(self):
        """Test elapsed time is observed on the histogram and returned."""
        start_time = time.time() - 2.0
        duration = self.metrics.record_timing('graph_build_duration_seconds', start_time)

        self.assertGreaterEqual(duration, 2.0)
        self.assertEqual(self.metrics.get_histogram_count('graph_build_duration_seconds'), 1)

    def test_record_timing_disabled(self):
        """Test a disabled collector still reports the elapsed time."""
        metrics = MetricsCollector(enabled=False)
        duration = metrics.record_timing('graph_build_duration_seconds', time.time() - 1.0)

        self.assertGreaterEqual(duration, 1.0)
        self.assertEqual(metrics.get_histogram_count('graph_build_duration_seconds'), 0)

    def test_collectors_are_independent(self):
        """Test two collectors keep separate registries."""
        other = MetricsCollector()
        self.metrics.increment_counter('graph_ways_total', labels={'status': 'valid'})

        self.assertEqual(other.get_counter_value('graph_ways_total', {'status': 'valid'}), 0)

    def test_disabled_collector(self):
        """Test a disabled collector records nothing."""
        metrics = MetricsCollector(enabled=False)
        metrics.increment_counter('graph_ways_total', labels={'status': 'valid'})

        self.assertEqual(metrics.get_counter_value('graph_ways_total', {'status': 'valid'}), 0)
        self.assertEqual(len(metrics.metrics_buffer), 0)

    def test_unknown_metric(self):
        """Test an undefined metric name raises KeyError."""
        with self.assertRaises(KeyError):
            self.metrics.increment_counter('tiles_rendered_total')

    def test_export_prometheus(self):
        """Test the Prometheus text format lists the metrics."""
        self.metrics.increment_counter('graph_elements_total', labels={'element': 'node'})
        exported = self.metrics.export_metrics("prometheus")

        self.assertIn('graph_elements_total{element="node"} 1.0', exported)

    def test_export_json(self):
        """Test the JSON export lists buffered values."""
        self.metrics.increment_counter('graph_elements_total', labels={'element': 'way'})
        exported = json.loads(self.metrics.export_metrics("json"))

        self.assertEqual(exported['metrics_count'], 1)
        self.assertEqual(exported['metrics'][0]['name'], 'graph_elements_total')
        self.assertEqual(exported['metrics'][0]['labels'], {'element': 'way'})

    def test_export_unsupported_format(self):
        """Test an unknown export format raises ValueError."""
        with self.assertRaises(ValueError):
            self.metrics.export_metrics("xml")


if __name__ == '__main__':
    unittest.main()
