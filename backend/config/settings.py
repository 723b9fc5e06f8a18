"""
Central configuration for backend settings.
"""
import os
from typing import Any, Dict, Optional


# Vector tile encoding
TILE_EXTENT: int = int(os.getenv("TILE_EXTENT", "4096"))
TILE_BUFFER: int = int(os.getenv("TILE_BUFFER", "256"))
TILE_CACHE_MAX_AGE: int = int(os.getenv("TILE_CACHE_MAX_AGE", "60"))

# Distances above this are reported as this value (tiles and exported dataset)
MAX_REPORTED_DISTANCE_M: float = float(os.getenv("MAX_REPORTED_DISTANCE_M", "500"))

# Nearest-crossing resolution
RESOLVER_WORKERS: Optional[int] = int(os.getenv("RESOLVER_WORKERS")) if os.getenv("RESOLVER_WORKERS") else None
RESOLVER_SHARD_SIZE: int = int(os.getenv("RESOLVER_SHARD_SIZE", "5000"))

RUN_ANALYSIS_ON_STARTUP: bool = os.getenv("RUN_ANALYSIS_ON_STARTUP", "false").strip().lower() in ("1", "true", "yes", "on")

# Extracted OSM features (GeoParquet or any format geopandas can read)
FEATURE_POINTS_PATH: str = os.getenv("FEATURE_POINTS_PATH", "")
FEATURE_LINES_PATH: str = os.getenv("FEATURE_LINES_PATH", "")


_ENV_FLOATS = {
    "MIN_LON": "min_lon",
    "MIN_LAT": "min_lat",
    "MAX_LON": "max_lon",
    "MAX_LAT": "max_lat",
    "BBOX_BUFFER_M": "buffer_meters",
    "STEP_METERS": "step_meters",
}


def env_analysis_overrides() -> Dict[str, Any]:
    """
    Analysis parameters present in the environment, read at call time.

    Returns:
        dict: AnalysisParameters keyword arguments for every variable that is set
    """
    values: Dict[str, Any] = {}
    for env_name, field_name in _ENV_FLOATS.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            values[field_name] = float(raw)
        except ValueError as e:
            raise ValueError(f"{env_name} must be a number (got {raw!r})") from e

    road_classes = os.getenv("ROAD_CLASSES")
    if road_classes and road_classes.strip():
        values["road_classes"] = tuple(c.strip() for c in road_classes.split(",") if c.strip())
    return values
