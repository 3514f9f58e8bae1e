"""
Raster Tile Selector

Selects the pre-rendered tiles a front end needs to raster a viewport. Tiles
form a quadtree over a fixed root bounding box: depth ``d`` splits the root
into a ``2^d x 2^d`` grid and tile ``(d, x, y)`` is stored as
``d{d}_x{x}_y{y}.png``.

The selector picks the coarsest depth whose longitudinal resolution
(longitude degrees per pixel, LonDPP) is at least as fine as the viewport's,
then returns every tile at that depth intersecting the query box.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from shapely.geometry import box

from ..exceptions import RasterQueryError
from ..monitoring.metrics import MetricsCollector
from ..utils.config import RasterConfig


QUERY_KEYS = ('ullon', 'ullat', 'lrlon', 'lrlat', 'w')


def tile_filename(depth: int, x: int, y: int) -> str:
    """Filename of a tile image, the contract shared with the rendering front end."""
    return f"d{depth}_x{x}_y{y}.png"


@dataclass(frozen=True)
class TileBounds:
    """Geographic extent of a tile, upper-left and lower-right corners."""
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float


@dataclass(frozen=True)
class TileSpec:
    """Specification for a single tile."""
    depth: int
    x: int
    y: int

    @property
    def filename(self) -> str:
        return tile_filename(self.depth, self.x, self.y)


@dataclass
class RasterQuery:
    """A viewport query: bounding box in degrees and viewport size in pixels."""
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float
    w: float
    h: Optional[float] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "RasterQuery":
        """
        Build a query from request parameters.

        Raises:
            RasterQueryError: If a required key is missing or not numeric
        """
        missing = [key for key in QUERY_KEYS if key not in params]
        if missing:
            raise RasterQueryError(f"Missing raster query parameters: {', '.join(missing)}")

        values = {}
        for key in QUERY_KEYS + ('h',):
            if params.get(key) is None:
                continue
            try:
                values[key] = float(params[key])
            except (TypeError, ValueError):
                raise RasterQueryError(
                    f"Raster query parameter '{key}' is not numeric: {params[key]!r}"
                ) from None
        return cls(**values)

    @property
    def lon_dpp(self) -> float:
        return (self.lrlon - self.ullon) / self.w


@dataclass
class RasterResult:
    render_grid: List[List[str]] = field(default_factory=list)
    raster_ul_lon: float = 0.0
    raster_ul_lat: float = 0.0
    raster_lr_lon: float = 0.0
    raster_lr_lat: float = 0.0
    depth: int = 0
    query_success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'render_grid': [list(row) for row in self.render_grid],
            'raster_ul_lon': self.raster_ul_lon,
            'raster_ul_lat': self.raster_ul_lat,
            'raster_lr_lon': self.raster_lr_lon,
            'raster_lr_lat': self.raster_lr_lat,
            'depth': self.depth,
            'query_success': self.query_success
        }


class Rasterer:
    """
    Quadtree tile selector over a fixed root bounding box.

    Stateless apart from the per-depth LonDPP table computed at construction,
    so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        config: Optional[RasterConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or RasterConfig()
        self.metrics = metrics
        self.logger = structlog.get_logger(component="Rasterer")

        self.root = TileBounds(
            self.config.root_ullon,
            self.config.root_ullat,
            self.config.root_lrlon,
            self.config.root_lrlat
        )
        self.root_box = box(
            self.root.ullon, self.root.lrlat, self.root.lrlon, self.root.ullat
        )

        # LonDPP of a tile at each depth; every level halves the previous one
        lon_dpp = (self.root.lrlon - self.root.ullon) / self.config.tile_size
        self.lon_dpps: Tuple[float, ...] = tuple(
            lon_dpp / (2 ** depth) for depth in range(self.config.max_depth + 1)
        )

    @property
    def max_depth(self) -> int:
        return self.config.max_depth

    def get_map_raster(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Select the tile grid for raw query parameters.

        Args:
            params: Mapping with ``ullon``, ``ullat``, ``lrlon``, ``lrlat`` and
                ``w``; ``h`` may be present and is ignored

        Returns:
            Mapping with ``render_grid``, ``raster_ul_lon``, ``raster_ul_lat``,
            ``raster_lr_lon``, ``raster_lr_lat``, ``depth`` and
            ``query_success``

        Raises:
            RasterQueryError: If a required parameter is missing or not numeric
        """
        return self.rasterize(RasterQuery.from_params(params)).to_dict()

    def rasterize(self, query: RasterQuery) -> RasterResult:
        rejection = self._reject_reason(query)
        if rejection:
            self.logger.warning(
                "Rejected raster query",
                reason=rejection,
                ullon=query.ullon,
                ullat=query.ullat,
                lrlon=query.lrlon,
                lrlat=query.lrlat,
                w=query.w
            )
            if self.metrics:
                self.metrics.increment_counter('raster_queries_total', labels={'status': 'rejected'})
            return RasterResult(
                raster_ul_lon=query.ullon,
                raster_ul_lat=query.ullat,
                raster_lr_lon=query.lrlon,
                raster_lr_lat=query.lrlat
            )

        depth = self.select_depth(query.lon_dpp)
        upper_left = self.locate_upper_left(query.ullon, query.ullat, depth)
        lower_right = self.locate_lower_right(query.lrlon, query.lrlat, depth)

        ul_x, ul_y = self.grid_index(upper_left, depth)
        lr_x, lr_y = self.grid_index(lower_right, depth)
        raster_ul = self.tile_bounds(TileSpec(depth, ul_x, ul_y))
        raster_lr = self.tile_bounds(TileSpec(depth, lr_x, lr_y))
        render_grid = [
            [tile_filename(depth, x, y) for x in range(ul_x, lr_x + 1)]
            for y in range(ul_y, lr_y + 1)
        ]

        self.logger.debug(
            "Raster query served",
            depth=depth,
            columns=lr_x - ul_x + 1,
            rows=lr_y - ul_y + 1
        )
        if self.metrics:
            self.metrics.increment_counter('raster_queries_total', labels={'status': 'success'})
            self.metrics.record_histogram('raster_query_depth', depth)

        return RasterResult(
            render_grid=render_grid,
            raster_ul_lon=raster_ul.ullon,
            raster_ul_lat=raster_ul.ullat,
            raster_lr_lon=raster_lr.lrlon,
            raster_lr_lat=raster_lr.lrlat,
            depth=depth,
            query_success=True
        )

    def select_depth(self, lon_dpp: float) -> int:
        """Coarsest depth whose tiles are at least as fine as ``lon_dpp``, else the finest."""
        for depth, tile_dpp in enumerate(self.lon_dpps):
            if tile_dpp <= lon_dpp:
                return depth
        return self.max_depth

    def locate_upper_left(self, lon: float, lat: float, depth: int) -> TileBounds:
        """
        Tile at ``depth`` holding an upper-left query corner.

        A corner exactly on a midline goes right and down, the side the query
        box extends to.
        """
        ullon, ullat, lrlon, lrlat = self._root_corners()
        for _ in range(depth):
            mid_lon = (ullon + lrlon) / 2
            mid_lat = (ullat + lrlat) / 2
            if lon < mid_lon:
                lrlon = mid_lon
            else:
                ullon = mid_lon
            if lat > mid_lat:
                lrlat = mid_lat
            else:
                ullat = mid_lat
        return TileBounds(ullon, ullat, lrlon, lrlat)

    def locate_lower_right(self, lon: float, lat: float, depth: int) -> TileBounds:
        """
        Tile at ``depth`` holding a lower-right query corner.

        A corner exactly on a midline goes left and up, so the grid never
        grows past the query box on a shared tile edge.
        """
        ullon, ullat, lrlon, lrlat = self._root_corners()
        for _ in range(depth):
            mid_lon = (ullon + lrlon) / 2
            mid_lat = (ullat + lrlat) / 2
            if lon <= mid_lon:
                lrlon = mid_lon
            else:
                ullon = mid_lon
            if lat >= mid_lat:
                lrlat = mid_lat
            else:
                ullat = mid_lat
        return TileBounds(ullon, ullat, lrlon, lrlat)

    def grid_index(self, tile: TileBounds, depth: int) -> Tuple[int, int]:
        """Column and row of a tile from its upper-left corner."""
        n = 2 ** depth
        x = round((tile.ullon - self.root.ullon) / (self.root.lrlon - self.root.ullon) * n)
        y = round((tile.ullat - self.root.ullat) / (self.root.lrlat - self.root.ullat) * n)
        return int(x), int(y)

    def tile_bounds(self, spec: TileSpec) -> TileBounds:
        """Geographic extent of a tile."""
        n = 2 ** spec.depth
        width = (self.root.lrlon - self.root.ullon) / n
        height = (self.root.ullat - self.root.lrlat) / n
        return TileBounds(
            ullon=self.root.ullon + spec.x * width,
            ullat=self.root.ullat - spec.y * height,
            lrlon=self.root.ullon + (spec.x + 1) * width,
            lrlat=self.root.ullat - (spec.y + 1) * height
        )

    def _root_corners(self) -> Tuple[float, float, float, float]:
        return self.root.ullon, self.root.ullat, self.root.lrlon, self.root.lrlat

    def _reject_reason(self, query: RasterQuery) -> Optional[str]:
        coordinates = (query.ullon, query.ullat, query.lrlon, query.lrlat, query.w)
        if not all(math.isfinite(value) for value in coordinates):
            return "non_finite_parameter"
        if query.w <= 0:
            return "non_positive_width"
        if query.lrlon <= query.ullon or query.lrlat >= query.ullat:
            return "degenerate_box"
        query_box = box(query.ullon, query.lrlat, query.lrlon, query.ullat)
        if not query_box.intersects(self.root_box) or query_box.touches(self.root_box):
            return "outside_root"
        return None
