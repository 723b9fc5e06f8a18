"""
GeoFile Feature Store
Reads an osm2pgsql-style export (one points file, one lines file) with geopandas.

Expected columns: `osm_id`, the tag columns used for filtering (`highway`,
`footway`, `crossing`) and optionally `name` or a `tags` mapping column.
GeoParquet is read with `read_parquet`; any other format goes through
`read_file`. Data in another CRS is reprojected to EPSG:3857.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import geopandas as gpd
import pandas as pd

from .base import (
    Envelope,
    FeatureStore,
    RawFeature,
    is_crossing_line,
    is_crossing_point,
    is_road,
)

logger = logging.getLogger(__name__)

PARQUET_SUFFIXES = {".parquet", ".geoparquet"}
TARGET_EPSG = 3857


class GeoFileFeatureStore(FeatureStore):
    """File-backed feature source with a per-process frame cache"""

    name = "geofile"

    def __init__(self, points_path: str, lines_path: str):
        self.points_path = Path(points_path)
        self.lines_path = Path(lines_path)
        self._frames: Dict[str, gpd.GeoDataFrame] = {}
        self._lock = threading.Lock()

    def _load(self, path: Path) -> gpd.GeoDataFrame:
        key = str(path.resolve())
        with self._lock:
            if key in self._frames:
                return self._frames[key]

            if not path.exists():
                raise FileNotFoundError(f"Feature file not found: {path}")

            if path.suffix.lower() in PARQUET_SUFFIXES:
                gdf = gpd.read_parquet(path)
            else:
                gdf = gpd.read_file(path)

            if gdf.crs is not None and gdf.crs.to_epsg() != TARGET_EPSG:
                logger.info(f"🧭 Reprojecting {path.name} from {gdf.crs} to EPSG:{TARGET_EPSG}")
                gdf = gdf.to_crs(TARGET_EPSG)

            logger.info(f"📦 Loaded {len(gdf)} features from {path}")
            self._frames[key] = gdf
            return gdf

    def _features_in_envelope(self, gdf: gpd.GeoDataFrame, envelope: Envelope) -> List[RawFeature]:
        minx, miny, maxx, maxy = envelope
        bounds = gdf.geometry.bounds
        overlaps = ~(
            (bounds["maxx"] < minx) | (bounds["minx"] > maxx)
            | (bounds["maxy"] < miny) | (bounds["miny"] > maxy)
        )
        # Rows without usable geometry are passed on so the stages can skip them
        missing = gdf.geometry.isna() | gdf.geometry.is_empty
        subset = gdf[overlaps.fillna(False) | missing]
        return [self._row_to_feature(idx, row, gdf.geometry.name) for idx, row in subset.iterrows()]

    @staticmethod
    def _row_to_feature(idx, row: pd.Series, geometry_column: str) -> RawFeature:
        tags: Dict[str, str] = {}
        extra = row.get("tags")
        if isinstance(extra, dict):
            tags.update({str(k): str(v) for k, v in extra.items() if v is not None})
        for column, value in row.items():
            if column in (geometry_column, "tags", "osm_id"):
                continue
            if value is None or (not isinstance(value, (list, dict)) and pd.isna(value)):
                continue
            tags[str(column)] = str(value)

        osm_id = row.get("osm_id", idx)
        geometry = row[geometry_column]
        if geometry is not None and not hasattr(geometry, "geom_type"):
            geometry = None
        return RawFeature(id=osm_id, geometry=geometry, tags=tags)

    def crossing_points(self, envelope: Envelope) -> List[RawFeature]:
        features = self._features_in_envelope(self._load(self.points_path), envelope)
        return [f for f in features if is_crossing_point(f)]

    def crossing_lines(self, envelope: Envelope) -> List[RawFeature]:
        features = self._features_in_envelope(self._load(self.lines_path), envelope)
        return [f for f in features if is_crossing_line(f)]

    def roads(self, envelope: Envelope, road_classes: Sequence[str]) -> List[RawFeature]:
        features = self._features_in_envelope(self._load(self.lines_path), envelope)
        return [f for f in features if is_road(f, road_classes)]

    def describe(self):
        return {
            "name": self.name,
            "points_path": str(self.points_path),
            "lines_path": str(self.lines_path),
        }


def feature_store_from_settings() -> Optional[GeoFileFeatureStore]:
    """
    Build the configured file-backed store

    FEATURE_POINTS_PATH / FEATURE_LINES_PATH win; otherwise points.parquet and
    lines.parquet under the data features directory are used when both exist.

    Returns:
        GeoFileFeatureStore or None when no feature files are available
    """
    from config import settings
    from config.paths import feature_store_root

    if settings.FEATURE_POINTS_PATH and settings.FEATURE_LINES_PATH:
        return GeoFileFeatureStore(settings.FEATURE_POINTS_PATH, settings.FEATURE_LINES_PATH)

    root = feature_store_root()
    points, lines = root / "points.parquet", root / "lines.parquet"
    if points.exists() and lines.exists():
        logger.info(f"📦 Using feature files under {root}")
        return GeoFileFeatureStore(str(points), str(lines))
    return None
