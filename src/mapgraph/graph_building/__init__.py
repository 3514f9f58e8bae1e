"""
Graph Building Module

Builds a routable road graph from OpenStreetMap element streams: every node,
the ways whose highway classification is traversable, and the nodes that act
as routing vertices (intersections and way endpoints).
"""

from .builder import ALLOWED_HIGHWAY_TYPES, GraphBuilder, build_graph
from .events import ElementEnd, ElementStart, iter_osm_events
from .export import export_graph, vertices_to_geodataframe, ways_to_geodataframe
from .models import Graph, Node, Way
from .osm_loader import OSMGraphLoader, load_graph

__all__ = [
    "ALLOWED_HIGHWAY_TYPES",
    "GraphBuilder",
    "build_graph",
    "ElementStart",
    "ElementEnd",
    "iter_osm_events",
    "export_graph",
    "ways_to_geodataframe",
    "vertices_to_geodataframe",
    "Graph",
    "Node",
    "Way",
    "OSMGraphLoader",
    "load_graph"
]
