"""
OSM Graph Loader

Runs the complete graph build for one OSM document: open the source, stream
its element events through a ``GraphBuilder`` and report statistics.

Build errors are fatal. They are logged and counted here, then re-raised so
that callers never see a partially built graph.
"""

import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Union

import structlog

from ..exceptions import GraphBuildError
from ..monitoring.metrics import MetricsCollector
from ..utils.config import Config
from .builder import GraphBuilder
from .events import iter_osm_events
from .models import Graph


class OSMGraphLoader:
    """
    Loads road graphs from OSM XML documents.

    Keeps statistics about the most recent load in ``stats``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        """
        Initialize the loader.

        Args:
            config: Configuration object, defaults to ``Config()``
            metrics_collector: Optional metrics collector for monitoring
        """
        self.config = config or Config()
        self.metrics = metrics_collector or MetricsCollector(
            enabled=self.config.monitoring.metrics_enabled
        )
        self.logger = structlog.get_logger(
            loader_type=self.__class__.__name__,
            config_env=self.config.environment
        )
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            'elements_processed': 0,
            'nodes': 0,
            'ways_kept': 0,
            'ways_retracted': 0,
            'vertices': 0,
            'start_time': None,
            'end_time': None,
            'errors': []
        }

    def load(self, source: Union[str, Path, BinaryIO]) -> Graph:
        """
        Build a road graph from an OSM document.

        Args:
            source: Path to an OSM XML file (optionally gzip compressed) or an
                open binary stream

        Returns:
            The fully built graph

        Raises:
            GraphBuildError: If the document is malformed, holds non-numeric
                ids or coordinates, or references undefined nodes
            FileNotFoundError: If the source path does not exist
            ValueError: If the source format is not supported
        """
        self.stats = self._empty_stats()
        self.stats['start_time'] = time.time()
        source_name = getattr(source, 'name', source)

        builder = GraphBuilder(config=self.config.graph, metrics=self.metrics)
        self.logger.info("Starting graph build", source=str(source_name))

        try:
            graph = builder.feed(iter_osm_events(source))
        except GraphBuildError as e:
            self._finish(builder)
            self.stats['errors'].append(str(e))
            self.metrics.increment_counter(
                'graph_build_failures_total',
                labels={'error': e.__class__.__name__}
            )
            self.logger.error(
                "Graph build failed",
                source=str(source_name),
                error=str(e),
                element=e.element,
                elements_processed=self.stats['elements_processed']
            )
            raise

        self._finish(builder)
        duration = self.metrics.record_timing('graph_build_duration_seconds', self.stats['start_time'])
        self.logger.info(
            "Graph build completed",
            source=str(source_name),
            nodes=self.stats['nodes'],
            ways=self.stats['ways_kept'],
            ways_retracted=self.stats['ways_retracted'],
            vertices=self.stats['vertices'],
            duration_seconds=round(duration, 3)
        )
        return graph

    def _finish(self, builder: GraphBuilder) -> None:
        self.stats['end_time'] = time.time()
        self.stats['elements_processed'] = builder.stats['elements']
        self.stats['ways_kept'] = builder.stats['ways_kept']
        self.stats['ways_retracted'] = builder.stats['ways_retracted']
        self.stats['nodes'] = len(builder.graph.nodes)
        self.stats['vertices'] = len(builder.graph.vertices)


def load_graph(source: Union[str, Path, BinaryIO], config: Optional[Config] = None) -> Graph:
    """Convenience wrapper building a graph with a throwaway loader."""
    return OSMGraphLoader(config).load(source)
