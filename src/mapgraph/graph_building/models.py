"""
Road graph data model.

The graph owns every node and way by id. Node-to-way links are plain id sets
so a node never keeps a way alive.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass(eq=False)
class Node:
    """A map node. Equality is identity; nodes are unique per id within a graph."""
    id: int
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)
    ways: Set[int] = field(default_factory=set)
    is_vertex: bool = False
    # Valid ways this node starts or ends, only tracked when endpoints are protected
    endpoint_of: Set[int] = field(default_factory=set)

    @property
    def name(self) -> Optional[str]:
        return self.tags.get('name')

    @property
    def degree(self) -> int:
        return len(self.ways)


@dataclass(eq=False)
class Way:
    id: int
    nodes: List[Node] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    valid: bool = False
    vertices: List[Node] = field(default_factory=list)

    @property
    def highway(self) -> Optional[str]:
        return self.tags.get('highway')

    @property
    def name(self) -> Optional[str]:
        return self.tags.get('name')

    @property
    def maxspeed(self) -> Optional[str]:
        return self.tags.get('maxspeed')


@dataclass
class Graph:
    """
    Routing graph aggregate.

    ``nodes`` holds every node seen, ``ways`` only the ways that passed the
    highway filter and ``vertices`` the nodes usable as routing vertices.
    Treat the graph as read-only once a build has finished.
    """
    nodes: Dict[int, Node] = field(default_factory=dict)
    ways: Dict[int, Way] = field(default_factory=dict)
    vertices: Dict[int, Node] = field(default_factory=dict)

    def add_node(self, node: Node) -> None:
        self.nodes[node.id] = node

    def add_way(self, way: Way) -> None:
        self.ways[way.id] = way

    def remove_way(self, way_id: int) -> None:
        self.ways.pop(way_id, None)

    def promote(self, node: Node) -> None:
        node.is_vertex = True
        self.vertices[node.id] = node

    def demote(self, node: Node) -> None:
        node.is_vertex = False
        self.vertices.pop(node.id, None)

    def summary(self) -> Dict[str, int]:
        return {
            'nodes': len(self.nodes),
            'ways': len(self.ways),
            'vertices': len(self.vertices)
        }
