"""
Configuration Management

Environment-driven settings for the graph builder, the raster tile selector,
the HTTP front end and monitoring. Every setting has a default so that the
components work without any environment at all.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from ..exceptions import ConfigError


ENV_PREFIX = "MAPGRAPH_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class GraphConfig:
    """Settings for the streaming graph builder."""
    # Never demote a node that terminates a valid way when another way is retracted
    protect_endpoints: bool = False
    # Number of elements between debug progress logs
    progress_interval: int = 100000


@dataclass
class RasterConfig:
    """Root bounding box and quadtree shape used by the tile selector."""
    root_ullon: float = -122.2998046875
    root_ullat: float = 37.892195547244356
    root_lrlon: float = -122.2119140625
    root_lrlat: float = 37.82280243352756
    tile_size: int = 256
    max_depth: int = 7

    def __post_init__(self):
        if not (self.root_ullon < self.root_lrlon and self.root_lrlat < self.root_ullat):
            raise ConfigError(
                "Root bounding box must have ullon < lrlon and lrlat < ullat"
            )
        if self.tile_size <= 0:
            raise ConfigError(f"Tile size must be positive, got {self.tile_size}")
        if self.max_depth < 0:
            raise ConfigError(f"Max depth must not be negative, got {self.max_depth}")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    osm_file: Optional[Path] = None


@dataclass
class MonitoringConfig:
    metrics_enabled: bool = True


@dataclass
class Config:
    """Top level configuration object passed to every component."""
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"
    graph: GraphConfig = field(default_factory=GraphConfig)
    raster: RasterConfig = field(default_factory=RasterConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from, defaults to ``os.environ``

        Returns:
            Populated configuration

        Raises:
            ConfigError: If a variable holds a value of the wrong type
        """
        env = os.environ if environ is None else environ
        defaults = RasterConfig()

        log_format = env.get(f"{ENV_PREFIX}LOG_FORMAT", "json").lower()
        if log_format not in ("json", "console"):
            raise ConfigError(f"Unsupported log format: {log_format}")

        osm_file = env.get("OSM_FILE")

        return cls(
            environment=env.get(f"{ENV_PREFIX}ENV", "development"),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
            log_format=log_format,
            graph=GraphConfig(
                protect_endpoints=_get_bool(env, f"{ENV_PREFIX}PROTECT_ENDPOINTS", False),
                progress_interval=_get_int(env, f"{ENV_PREFIX}PROGRESS_INTERVAL", 100000),
            ),
            raster=RasterConfig(
                root_ullon=_get_float(env, f"{ENV_PREFIX}ROOT_ULLON", defaults.root_ullon),
                root_ullat=_get_float(env, f"{ENV_PREFIX}ROOT_ULLAT", defaults.root_ullat),
                root_lrlon=_get_float(env, f"{ENV_PREFIX}ROOT_LRLON", defaults.root_lrlon),
                root_lrlat=_get_float(env, f"{ENV_PREFIX}ROOT_LRLAT", defaults.root_lrlat),
                tile_size=_get_int(env, f"{ENV_PREFIX}TILE_SIZE", defaults.tile_size),
                max_depth=_get_int(env, f"{ENV_PREFIX}MAX_DEPTH", defaults.max_depth),
            ),
            server=ServerConfig(
                host=env.get("HOST", "0.0.0.0"),
                port=_get_int(env, "PORT", 8000),
                osm_file=Path(osm_file) if osm_file else None,
            ),
            monitoring=MonitoringConfig(
                metrics_enabled=_get_bool(env, f"{ENV_PREFIX}METRICS_ENABLED", True),
            ),
        )


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ConfigError(f"{name} must be finite, got {raw!r}")
    return value
