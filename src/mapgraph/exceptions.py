"""
Exception hierarchy for the map graph package.

Graph build errors are fatal for the whole document: once one is raised the
partially populated graph must be discarded.
"""

from typing import Optional


class MapGraphError(Exception):
    """Base class for all package errors."""


class ConfigError(MapGraphError):
    """Raised when an environment setting cannot be interpreted."""


class GraphBuildError(MapGraphError):
    """Base class for errors that abort a graph build."""

    def __init__(self, message: str, element: Optional[str] = None):
        super().__init__(message)
        self.element = element


class ParseError(GraphBuildError):
    """A numeric attribute of a node, way or nd element is missing or malformed."""

    def __init__(self, element: str, attribute: str, value: Optional[str]):
        super().__init__(
            f"Invalid '{attribute}' attribute on <{element}>: {value!r}",
            element=element
        )
        self.attribute = attribute
        self.value = value


class DanglingReferenceError(GraphBuildError):
    """An nd element references a node that has not been defined yet."""

    def __init__(self, way_id: int, node_id: int):
        super().__init__(
            f"Way {way_id} references unknown node {node_id}",
            element="nd"
        )
        self.way_id = way_id
        self.node_id = node_id


class RasterQueryError(MapGraphError):
    """Raised when raster query parameters are missing or not numeric."""


class MalformedDocumentError(GraphBuildError):
    """The map document itself is not well-formed markup."""
