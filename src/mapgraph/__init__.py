"""
Map Graph

Derives two artifacts from raw OpenStreetMap data: a routable road graph
built by streaming the map's element events, and for any viewport query the
grid of pre-rendered quadtree tiles that covers it at the coarsest sufficient
resolution.
"""

__version__ = "1.0.0"

# Core modules
from . import graph_building
from . import tile_selection
from . import monitoring
from . import utils

__all__ = [
    "graph_building",
    "tile_selection",
    "monitoring",
    "utils"
]
