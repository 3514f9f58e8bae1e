"""
Streaming Graph Builder

Finite-state machine that turns an ordered stream of OSM element events into
a routable road graph. Nodes must be defined before the ways that reference
them, which is the order OSM documents are written in.

Vertex rule: a node is a vertex when two or more valid ways reference it, or
when it is the first or last node of a valid way. Validity of a way is only
known once the way closes, so the first node is promoted eagerly and the
promotion is rolled back if the way is retracted.
"""

from typing import Iterable, Optional

import structlog

from ..exceptions import DanglingReferenceError, ParseError
from ..monitoring.metrics import MetricsCollector
from ..utils.config import GraphConfig
from .events import ElementEnd, ElementEvent, ElementStart
from .models import Graph, Node, Way


ALLOWED_HIGHWAY_TYPES = frozenset({
    "motorway", "trunk", "primary", "secondary", "tertiary", "unclassified",
    "residential", "living_street", "motorway_link", "trunk_link", "primary_link",
    "secondary_link", "tertiary_link"
})

# Way tags kept on the graph; everything else is dropped
WAY_TAG_KEYS = frozenset({"highway", "maxspeed", "name"})

STATE_NONE = "none"
STATE_NODE = "node"
STATE_WAY = "way"


class GraphBuilder:
    """
    Populates a ``Graph`` from element events.

    One builder serves exactly one document. Feed it events in document order
    with ``handle`` or ``feed``; any ``GraphBuildError`` leaves the graph
    unusable.
    """

    def __init__(
        self,
        graph: Optional[Graph] = None,
        config: Optional[GraphConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.graph = graph if graph is not None else Graph()
        self.config = config or GraphConfig()
        self.metrics = metrics
        self.logger = structlog.get_logger(
            component="GraphBuilder",
            protect_endpoints=self.config.protect_endpoints
        )

        self.active_state = STATE_NONE
        self.current_node: Optional[Node] = None
        self.current_way: Optional[Way] = None
        self.current_way_validity = False

        self.stats = {
            'elements': 0,
            'ways_kept': 0,
            'ways_retracted': 0
        }

    def feed(self, events: Iterable[ElementEvent]) -> Graph:
        """Consume a complete event stream and return the populated graph."""
        for event in events:
            self.handle(event)
        return self.graph

    def handle(self, event: ElementEvent) -> None:
        if isinstance(event, ElementStart):
            self.start_element(event.name, event.attrs)
        elif isinstance(event, ElementEnd):
            self.end_element(event.name)
        else:
            raise TypeError(f"Unsupported element event: {event!r}")

    def start_element(self, name: str, attrs: dict) -> None:
        if name in ("node", "way", "nd", "tag"):
            self.stats['elements'] += 1
            if self.metrics:
                self.metrics.increment_counter('graph_elements_total', labels={'element': name})
            interval = self.config.progress_interval
            if interval > 0 and self.stats['elements'] % interval == 0:
                self.logger.debug(
                    "Graph build progress",
                    elements=self.stats['elements'],
                    **self.graph.summary()
                )

        if name == "node":
            self._start_node(attrs)
        elif name == "way":
            self._start_way(attrs)
        elif name == "nd" and self.active_state == STATE_WAY:
            self._add_way_node(attrs)
        elif name == "tag" and self.active_state == STATE_WAY:
            self._add_way_tag(attrs)
        elif name == "tag" and self.active_state == STATE_NODE:
            self._add_node_tag(attrs)
        # Other elements are ignored, including unknown children of a way

    def end_element(self, name: str) -> None:
        if name == "way" and self.current_way is not None:
            if self.current_way_validity:
                self._close_valid_way(self.current_way)
            else:
                self._retract_way(self.current_way)
            self.current_way = None
            self.active_state = STATE_NONE
        elif name == "node" and self.active_state == STATE_NODE:
            self.active_state = STATE_NONE

    def _start_node(self, attrs: dict) -> None:
        node = Node(
            id=_parse_int("node", "id", attrs),
            lat=_parse_float("node", "lat", attrs),
            lon=_parse_float("node", "lon", attrs)
        )
        self.graph.add_node(node)
        self.current_node = node
        self.active_state = STATE_NODE

    def _start_way(self, attrs: dict) -> None:
        way = Way(id=_parse_int("way", "id", attrs))
        self.graph.add_way(way)
        self.current_way = way
        self.current_way_validity = False
        self.active_state = STATE_WAY

    def _add_way_node(self, attrs: dict) -> None:
        way = self.current_way
        node_id = _parse_int("nd", "ref", attrs)
        node = self.graph.nodes.get(node_id)
        if node is None:
            raise DanglingReferenceError(way.id, node_id)

        self.current_node = node
        node.ways.add(way.id)
        if len(node.ways) >= 2 or not way.nodes:
            self.graph.promote(node)
            way.vertices.append(node)
        way.nodes.append(node)

    def _add_node_tag(self, attrs: dict) -> None:
        value = attrs.get("v")
        if attrs.get("k") != "name" or value is None:
            return
        self.current_node.tags["name"] = value

    def _add_way_tag(self, attrs: dict) -> None:
        key = attrs.get("k")
        value = attrs.get("v")
        if key not in WAY_TAG_KEYS or value is None:
            return
        self.current_way.tags[key] = value
        if key == "highway":
            # The last highway tag decides
            self.current_way_validity = value in ALLOWED_HIGHWAY_TYPES

    def _close_valid_way(self, way: Way) -> None:
        way.valid = True
        self.stats['ways_kept'] += 1
        if self.metrics:
            self.metrics.increment_counter('graph_ways_total', labels={'status': 'valid'})
        if not way.nodes:
            return

        last = way.nodes[-1]
        self.graph.promote(last)
        if last not in way.vertices:
            way.vertices.append(last)

        if self.config.protect_endpoints:
            way.nodes[0].endpoint_of.add(way.id)
            last.endpoint_of.add(way.id)

    def _retract_way(self, way: Way) -> None:
        self.graph.remove_way(way.id)
        self.stats['ways_retracted'] += 1
        if self.metrics:
            self.metrics.increment_counter('graph_ways_total', labels={'status': 'retracted'})

        demoted = 0
        for node in way.nodes:
            node.ways.discard(way.id)
            if len(node.ways) >= 2:
                continue
            if self.config.protect_endpoints and node.endpoint_of:
                continue
            if node.is_vertex:
                demoted += 1
            self.graph.demote(node)

        self.logger.debug(
            "Retracted way",
            way_id=way.id,
            highway=way.highway,
            nodes=len(way.nodes),
            demoted=demoted
        )


def build_graph(
    events: Iterable[ElementEvent],
    config: Optional[GraphConfig] = None,
    metrics: Optional[MetricsCollector] = None
) -> Graph:
    """Build a graph from a complete, ordered event stream."""
    return GraphBuilder(config=config, metrics=metrics).feed(events)


def _parse_int(element: str, attribute: str, attrs: dict) -> int:
    value = attrs.get(attribute)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(element, attribute, value) from None


def _parse_float(element: str, attribute: str, attrs: dict) -> float:
    value = attrs.get(attribute)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ParseError(element, attribute, value) from None
