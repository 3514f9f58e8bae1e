#!/usr/bin/env python3
"""
Build the road graph for an OSM extract and export its ways and vertices.

Usage: build-graph.py berkeley.osm out/roads.parquet
"""

import argparse
import sys

import structlog

from mapgraph.exceptions import GraphBuildError
from mapgraph.graph_building.export import export_graph
from mapgraph.graph_building.osm_loader import OSMGraphLoader
from mapgraph.utils.config import Config
from mapgraph.utils.logging_config import configure_logging


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("source", help="OSM XML file (.osm, .xml or gzip compressed)")
    parser.add_argument("destination", help="Output file; suffix selects parquet, geojson or csv")
    parser.add_argument(
        "--protect-endpoints",
        action="store_true",
        help="Never demote endpoints of valid ways when another way is discarded"
    )
    args = parser.parse_args()

    config = Config.from_env()
    if args.protect_endpoints:
        config.graph.protect_endpoints = True
    configure_logging(config)
    logger = structlog.get_logger(script="build-graph")

    try:
        graph = OSMGraphLoader(config).load(args.source)
    except GraphBuildError:
        return 1

    output_dir = export_graph(graph, args.destination)
    logger.info("Graph exported", output_dir=str(output_dir), **graph.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
