"""
Graph Export

Converts a built road graph into GeoDataFrames for the downstream routing
and analysis tooling, and writes them to disk.
"""

from pathlib import Path
from typing import Union

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString, Point

from .models import Graph


WAY_COLUMNS = ['osm_id', 'highway', 'name', 'maxspeed', 'node_count', 'vertex_count']
VERTEX_COLUMNS = ['osm_id', 'name', 'degree']


def ways_to_geodataframe(graph: Graph) -> gpd.GeoDataFrame:
    """
    One LineString row per valid way.

    Ways with fewer than two nodes cannot form a line and are skipped.
    """
    records = []
    geometries = []

    for way in graph.ways.values():
        if len(way.nodes) < 2:
            continue
        records.append({
            'osm_id': way.id,
            'highway': way.highway,
            'name': way.name or '',
            'maxspeed': way.maxspeed or '',
            'node_count': len(way.nodes),
            'vertex_count': len(way.vertices)
        })
        geometries.append(LineString([(node.lon, node.lat) for node in way.nodes]))

    if not records:
        return gpd.GeoDataFrame(columns=WAY_COLUMNS + ['geometry'], geometry='geometry', crs='EPSG:4326')

    return gpd.GeoDataFrame(pd.DataFrame(records), geometry=geometries, crs='EPSG:4326')


def vertices_to_geodataframe(graph: Graph) -> gpd.GeoDataFrame:
    """One Point row per routing vertex."""
    records = [
        {
            'osm_id': node.id,
            'name': node.name or '',
            'degree': node.degree
        }
        for node in graph.vertices.values()
    ]
    if not records:
        return gpd.GeoDataFrame(columns=VERTEX_COLUMNS + ['geometry'], geometry='geometry', crs='EPSG:4326')

    geometries = [Point(node.lon, node.lat) for node in graph.vertices.values()]
    return gpd.GeoDataFrame(pd.DataFrame(records), geometry=geometries, crs='EPSG:4326')


def export_graph(graph: Graph, destination: Union[str, Path]) -> Path:
    """
    Write ways and vertices next to each other.

    ``roads.geojson`` becomes ``roads_ways.geojson`` and
    ``roads_vertices.geojson``. The format follows the suffix: ``.parquet``,
    ``.geojson``/``.json`` or ``.csv`` (geometry as WKT).

    Returns:
        The directory the files were written to
    """
    destination = Path(destination)
    suffix = destination.suffix.lower()
    if suffix not in ('.parquet', '.geojson', '.json', '.csv'):
        raise ValueError(f"Unsupported export format: {destination.suffix}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    frames = {
        'ways': ways_to_geodataframe(graph),
        'vertices': vertices_to_geodataframe(graph)
    }
    for kind, gdf in frames.items():
        file_path = destination.with_name(f"{destination.stem}_{kind}{suffix}")
        if suffix == '.parquet':
            gdf.to_parquet(file_path)
        elif suffix == '.csv':
            frame = pd.DataFrame(gdf.drop(columns='geometry'))
            frame['geometry'] = gdf.geometry.to_wkt()
            frame.to_csv(file_path, index=False)
        else:
            gdf.to_file(file_path, driver='GeoJSON')

    return destination.parent
