#!/usr/bin/env python3
"""
Map Graph Server

Runs the raster tile selection API under uvicorn. Settings come from the
environment, see ``mapgraph.utils.config``; set ``OSM_FILE`` to also build
the road graph at startup.
"""

import uvicorn

from mapgraph.server import create_app
from mapgraph.utils.config import Config
from mapgraph.utils.logging_config import configure_logging


config = Config.from_env()
configure_logging(config)
app = create_app(config)


if __name__ == "__main__":
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
        access_log=True
    )
