"""
Tile Selection Module

Picks the grid of pre-rendered quadtree tiles that covers a viewport query at
the coarsest sufficient resolution.
"""

from .rasterer import (
    Rasterer,
    RasterQuery,
    RasterResult,
    TileBounds,
    TileSpec,
    tile_filename
)

__all__ = [
    "Rasterer",
    "RasterQuery",
    "RasterResult",
    "TileBounds",
    "TileSpec",
    "tile_filename"
]
