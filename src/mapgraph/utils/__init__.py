"""
Shared utilities: configuration and logging setup.
"""

from .config import (
    Config,
    GraphConfig,
    RasterConfig,
    ServerConfig,
    MonitoringConfig
)
from .logging_config import configure_logging

__all__ = [
    "Config",
    "GraphConfig",
    "RasterConfig",
    "ServerConfig",
    "MonitoringConfig",
    "configure_logging"
]
