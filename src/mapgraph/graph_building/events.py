"""
OSM Element Events

Defines the element event contract consumed by the graph builder and an
adapter that produces it from OSM XML documents using the standard library's
incremental parser. Only the events are exposed, never the parsed tree, so
memory stays bounded on large extracts.
"""

import gzip
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Union

from ..exceptions import MalformedDocumentError


@dataclass(frozen=True)
class ElementStart:
    name: str
    attrs: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ElementEnd:
    name: str


ElementEvent = Union[ElementStart, ElementEnd]

SUPPORTED_SUFFIXES = ('.osm', '.xml')


def iter_osm_events(source: Union[str, Path, BinaryIO]) -> Iterator[ElementEvent]:
    """
    Stream element events from an OSM XML document in document order.

    Args:
        source: Path to a ``.osm``/``.xml`` file, optionally gzip compressed
            (``.osm.gz``), or an open binary file object

    Yields:
        ``ElementStart`` and ``ElementEnd`` events

    Raises:
        FileNotFoundError: If the path does not exist
        ValueError: If the file suffix is not supported
        MalformedDocumentError: If the document is not well-formed XML
    """
    if hasattr(source, 'read'):
        yield from _iter_stream(source)
        return

    file_path = Path(source)
    if not file_path.exists():
        raise FileNotFoundError(f"OSM file not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix == '.gz':
        if Path(file_path.stem).suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported compressed file format: {file_path}")
        with gzip.open(file_path, 'rb') as stream:
            yield from _iter_stream(stream)
    elif suffix in SUPPORTED_SUFFIXES:
        with open(file_path, 'rb') as stream:
            yield from _iter_stream(stream)
    else:
        raise ValueError(f"Unsupported OSM file format: {file_path.suffix}")


def _iter_stream(stream: BinaryIO) -> Iterator[ElementEvent]:
    context = ET.iterparse(stream, events=('start', 'end'))
    root = None
    try:
        for event, elem in context:
            if event == 'start':
                if root is None:
                    root = elem
                yield ElementStart(elem.tag, dict(elem.attrib))
            else:
                yield ElementEnd(elem.tag)
                # Top level elements are complete once they end
                if elem.tag in ('node', 'way', 'relation'):
                    elem.clear()
                    if root is not None:
                        root.clear()
    except ET.ParseError as e:
        raise MalformedDocumentError(f"Malformed OSM document: {e}") from e
