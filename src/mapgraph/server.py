"""
Map Graph Server

A FastAPI front end exposing the raster tile selector and, when an OSM file
is configured, statistics about the road graph built from it. Tile images
themselves are served elsewhere.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from . import __version__
from .exceptions import RasterQueryError
from .graph_building.models import Graph
from .graph_building.osm_loader import OSMGraphLoader
from .monitoring.metrics import MetricsCollector
from .tile_selection.rasterer import Rasterer
from .utils.config import Config

logger = structlog.get_logger()


def create_app(config: Optional[Config] = None, graph: Optional[Graph] = None) -> FastAPI:
    """
    Create the HTTP application.

    Args:
        config: Configuration object, defaults to ``Config()``
        graph: Prebuilt graph; when omitted and ``config.server.osm_file`` is
            set the graph is built at startup

    Returns:
        Configured FastAPI application
    """
    config = config or Config()
    metrics = MetricsCollector(enabled=config.monitoring.metrics_enabled)
    rasterer = Rasterer(config.raster, metrics=metrics)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the road graph if one was configured."""
        logger.info("Starting Map Graph Server", port=config.server.port)
        osm_file = config.server.osm_file
        if app.state.graph is None and osm_file is not None:
            loader = OSMGraphLoader(config, metrics_collector=metrics)
            app.state.graph = loader.load(osm_file)
        logger.info("Map Graph Server initialized", graph_loaded=app.state.graph is not None)
        yield
        logger.info("Shutting down Map Graph Server")

    app = FastAPI(
        title="Map Graph Server",
        description="Raster tile selection and road graph statistics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.metrics = metrics
    app.state.rasterer = rasterer
    app.state.graph = graph

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": "mapgraph-server",
            "version": __version__,
            "graph_loaded": app.state.graph is not None
        }

    @app.get("/raster")
    async def raster(request: Request):
        """Tile grid covering the query box ``ullon, ullat, lrlon, lrlat`` for width ``w``."""
        try:
            return rasterer.get_map_raster(dict(request.query_params))
        except RasterQueryError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.get("/graph/stats")
    async def graph_stats():
        if app.state.graph is None:
            raise HTTPException(status_code=404, detail="No road graph loaded")
        return app.state.graph.summary()

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics_endpoint():
        return metrics.export_metrics("prometheus")

    return app
