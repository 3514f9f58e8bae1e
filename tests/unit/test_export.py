"""
Unit Tests for Graph Export
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import geopandas as gpd
import pandas as pd
from shapely.geometry import LineString, Point

from mapgraph.graph_building.builder import build_graph
from mapgraph.graph_building.events import ElementEnd, ElementStart
from mapgraph.graph_building.export import (
    export_graph,
    vertices_to_geodataframe,
    ways_to_geodataframe
)
from mapgraph.graph_building.models import Graph


def sample_graph():
    events = [ElementStart("osm", {})]
    coordinates = {1: (37.870, -122.260), 2: (37.871, -122.259), 3: (37.872, -122.258)}
    for node_id, (lat, lon) in coordinates.items():
        events.append(ElementStart("node", {"id": str(node_id), "lat": str(lat), "lon": str(lon)}))
        if node_id == 1:
            events.append(ElementStart("tag", {"k": "name", "v": "Oxford and Hearst"}))
            events.append(ElementEnd("tag"))
        events.append(ElementEnd("node"))
    events.append(ElementStart("way", {"id": "10"}))
    for ref in (1, 2, 3):
        events.append(ElementStart("nd", {"ref": str(ref)}))
        events.append(ElementEnd("nd"))
    for key, value in (("highway", "secondary"), ("name", "Oxford Street")):
        events.append(ElementStart("tag", {"k": key, "v": value}))
        events.append(ElementEnd("tag"))
    events.append(ElementEnd("way"))
    events.append(ElementEnd("osm"))
    return build_graph(events)


class TestGraphExport(unittest.TestCase):
    """Test suite for GeoDataFrame conversion and file export."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.temp_path = Path(self.temp_dir)
        self.graph = sample_graph()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_ways_geodataframe(self):
        """Test valid ways become LineStrings in WGS84."""
        gdf = ways_to_geodataframe(self.graph)

        self.assertIsInstance(gdf, gpd.GeoDataFrame)
        self.assertEqual(len(gdf), 1)
        self.assertEqual(gdf.crs.to_epsg(), 4326)
        row = gdf.iloc[0]
        self.assertEqual(row['osm_id'], 10)
        self.assertEqual(row['highway'], 'secondary')
        self.assertEqual(row['name'], 'Oxford Street')
        self.assertEqual(row['maxspeed'], '')
        self.assertEqual(row['vertex_count'], 2)
        self.assertIsInstance(row.geometry, LineString)
        self.assertEqual(list(row.geometry.coords)[0], (-122.260, 37.870))

    def test_vertices_geodataframe(self):
        """Test vertices become Points with their degree."""
        gdf = vertices_to_geodataframe(self.graph)

        self.assertEqual(len(gdf), 2)
        self.assertEqual(set(gdf['osm_id']), {1, 3})
        for geom in gdf.geometry:
            self.assertIsInstance(geom, Point)
        named = gdf[gdf['osm_id'] == 1].iloc[0]
        self.assertEqual(named['name'], 'Oxford and Hearst')
        self.assertEqual(named['degree'], 1)

    def test_empty_graph(self):
        """Test an empty graph gives empty frames with the expected columns."""
        ways = ways_to_geodataframe(Graph())
        vertices = vertices_to_geodataframe(Graph())

        self.assertEqual(len(ways), 0)
        self.assertEqual(len(vertices), 0)
        self.assertIn('osm_id', ways.columns)
        self.assertIn('degree', vertices.columns)

    def test_export_csv(self):
        """Test CSV export writes ways and vertices with WKT geometry."""
        output_dir = export_graph(self.graph, self.temp_path / "out" / "berkeley.csv")

        ways = pd.read_csv(output_dir / "berkeley_ways.csv")
        vertices = pd.read_csv(output_dir / "berkeley_vertices.csv")
        self.assertEqual(list(ways['osm_id']), [10])
        self.assertTrue(ways['geometry'][0].startswith('LINESTRING'))
        self.assertEqual(len(vertices), 2)

    def test_export_unsupported_format(self):
        """Test an unknown suffix raises ValueError."""
        with self.assertRaises(ValueError):
            export_graph(self.graph, self.temp_path / "berkeley.shp")


if __name__ == '__main__':
    unittest.main()
