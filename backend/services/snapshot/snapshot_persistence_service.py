"""
Snapshot Persistence Service
Writes published snapshots as GeoParquet and reloads the current one.

Layout under the snapshots root:
  <version>/crossings.parquet
  <version>/street_segments.parquet
  <version>/unmarked_crossings.parquet
  <version>/manifest.json
  current.json  (pointer to the published version)

A version directory is written under a temporary name and renamed into place
once complete; the pointer file is replaced atomically afterwards.
"""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import geopandas as gpd
import pandas as pd
from shapely import wkt

from config import settings
from pipelines.sketchiness.models import (
    AnalysisParameters,
    AnalysisSnapshot,
    Crossing,
    CrossingSourceKind,
    Region,
    RoadClass,
    StreetSegment,
    UnmarkedCrossing,
    WORKING_CRS,
    clamp_distance,
)

logger = logging.getLogger(__name__)

POINTER_FILE = "current.json"
MANIFEST_FILE = "manifest.json"
CROSSINGS_FILE = "crossings.parquet"
SEGMENTS_FILE = "street_segments.parquet"
UNMARKED_FILE = "unmarked_crossings.parquet"

CROSSING_COLUMNS = ["id", "source_kind", "crossing_type", "marked", "geometry"]
SEGMENT_COLUMNS = [
    "segment_id",
    "way_id",
    "name",
    "road_class",
    "length_m",
    "distance_to_nearest_crossing_m",
    "dist_to_crossing_meters",
    "nearest_crossing_marked",
    "geometry",
]
UNMARKED_COLUMNS = ["id", "source_kind", "crossing_type", "marked", "dist_to_marked_crossing_m", "geometry"]


def _optional(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


class SnapshotPersistenceService:
    """
    Persist analysis snapshots in the published dataset layout
    """

    def __init__(self, root: Optional[str] = None, max_reported_distance: Optional[float] = None) -> None:
        if root:
            self._root = Path(root)
        else:
            from config.paths import snapshots_root

            self._root = snapshots_root()
        self._root.mkdir(parents=True, exist_ok=True)
        self.max_reported_distance = (
            float(max_reported_distance)
            if max_reported_distance is not None
            else settings.MAX_REPORTED_DISTANCE_M
        )

    @property
    def root(self) -> Path:
        return self._root

    def _atomic_write(self, path: Path, data: Dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix="snapshot_", suffix=".json", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, str(path))
        finally:
            try:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
            except OSError:
                pass

    # ----- write -----

    def save(self, snapshot: AnalysisSnapshot) -> Path:
        """
        Write the snapshot and point current.json at it

        Returns:
            Path: Directory of the written version
        """
        target = self._root / snapshot.version
        if target.exists():
            logger.info(f"💾 Snapshot {snapshot.version[:12]} already on disk, updating pointer only")
        else:
            staging = self._root / f".{snapshot.version}.tmp-{uuid.uuid4().hex[:8]}"
            staging.mkdir(parents=True)
            try:
                self._write_frames(snapshot, staging)
                self._atomic_write(staging / MANIFEST_FILE, self._manifest(snapshot))
                os.replace(staging, target)
            finally:
                if staging.exists():
                    shutil.rmtree(staging, ignore_errors=True)
            logger.info(f"💾 Wrote snapshot {snapshot.version[:12]} to {target}")

        self._atomic_write(
            self._root / POINTER_FILE,
            {"version": snapshot.version, "created_at": snapshot.created_at},
        )
        return target

    def _manifest(self, snapshot: AnalysisSnapshot) -> Dict[str, Any]:
        return {
            "version": snapshot.version,
            "created_at": snapshot.created_at,
            "crs": WORKING_CRS,
            "parameters": snapshot.parameters.to_dict(),
            "region": {
                "bbox": list(snapshot.region.bbox),
                "buffer_meters": snapshot.region.buffer_meters,
                "crs": snapshot.region.crs,
                "wkt": snapshot.region.geometry.wkt,
            },
            "max_reported_distance_m": self.max_reported_distance,
            "counts": {
                "crossings": len(snapshot.crossings),
                "street_segments": len(snapshot.segments),
                "unmarked_crossings": len(snapshot.unmarked_crossings),
            },
        }

    def _write_frames(self, snapshot: AnalysisSnapshot, directory: Path) -> None:
        crossings = [
            {
                "id": c.id,
                "source_kind": c.source_kind.value,
                "crossing_type": c.crossing_type,
                "marked": c.marked,
                "geometry": c.geometry,
            }
            for c in snapshot.crossings
        ]
        segments = [
            {
                "segment_id": s.id,
                "way_id": s.parent_way_id,
                "name": s.name,
                "road_class": s.road_class.value,
                "length_m": s.length,
                "distance_to_nearest_crossing_m": s.distance_to_nearest_crossing,
                "dist_to_crossing_meters": clamp_distance(
                    s.distance_to_nearest_crossing, self.max_reported_distance
                ),
                "nearest_crossing_marked": s.nearest_crossing_marked,
                "geometry": s.geometry,
            }
            for s in snapshot.segments
        ]
        unmarked = [
            {
                "id": u.crossing.id,
                "source_kind": u.crossing.source_kind.value,
                "crossing_type": u.crossing.crossing_type,
                "marked": u.crossing.marked,
                "dist_to_marked_crossing_m": u.distance_to_nearest_marked,
                "geometry": u.crossing.geometry,
            }
            for u in snapshot.unmarked_crossings
        ]
        self._frame(crossings, CROSSING_COLUMNS).to_parquet(directory / CROSSINGS_FILE, index=False)
        self._frame(segments, SEGMENT_COLUMNS).to_parquet(directory / SEGMENTS_FILE, index=False)
        self._frame(unmarked, UNMARKED_COLUMNS).to_parquet(directory / UNMARKED_FILE, index=False)

    @staticmethod
    def _frame(records: List[Dict[str, Any]], columns: List[str]) -> gpd.GeoDataFrame:
        df = pd.DataFrame.from_records(records, columns=columns)
        return gpd.GeoDataFrame(df, geometry="geometry", crs=WORKING_CRS)

    # ----- read -----

    def current_version(self) -> Optional[str]:
        pointer = self._root / POINTER_FILE
        if not pointer.exists():
            return None
        try:
            with pointer.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ Unreadable snapshot pointer {pointer}: {e}")
            return None
        version = data.get("version") if isinstance(data, dict) else None
        return str(version) if version else None

    def load_current(self) -> Optional[AnalysisSnapshot]:
        """Rebuild the published snapshot, or None when nothing has been published"""
        version = self.current_version()
        if not version:
            return None
        return self.load(version)

    def load(self, version: str) -> AnalysisSnapshot:
        directory = self._root / version
        with (directory / MANIFEST_FILE).open("r", encoding="utf-8") as f:
            manifest = json.load(f)

        params = manifest["parameters"]
        parameters = AnalysisParameters(
            min_lon=params["min_lon"],
            min_lat=params["min_lat"],
            max_lon=params["max_lon"],
            max_lat=params["max_lat"],
            buffer_meters=params["buffer_meters"],
            step_meters=params["step_meters"],
            road_classes=tuple(params["road_classes"]),
        )
        region_info = manifest["region"]
        region = Region(
            geometry=wkt.loads(region_info["wkt"]),
            bbox=tuple(region_info["bbox"]),
            buffer_meters=region_info["buffer_meters"],
            crs=region_info.get("crs", WORKING_CRS),
        )

        crossings_df = gpd.read_parquet(directory / CROSSINGS_FILE)
        crossings = [
            Crossing(
                id=int(row["id"]),
                source_kind=CrossingSourceKind(row["source_kind"]),
                geometry=row["geometry"],
                crossing_type=str(row["crossing_type"]),
                marked=bool(row["marked"]),
            )
            for _, row in crossings_df.iterrows()
        ]

        segments_df = gpd.read_parquet(directory / SEGMENTS_FILE)
        segments = []
        for _, row in segments_df.iterrows():
            distance = _optional(row["distance_to_nearest_crossing_m"])
            marked = _optional(row["nearest_crossing_marked"])
            segments.append(
                StreetSegment(
                    id=str(row["segment_id"]),
                    parent_way_id=int(row["way_id"]),
                    name=_optional(row["name"]),
                    road_class=RoadClass(row["road_class"]),
                    geometry=row["geometry"],
                    length=float(row["length_m"]),
                    distance_to_nearest_crossing=float(distance) if distance is not None else None,
                    nearest_crossing_marked=bool(marked) if marked is not None else None,
                )
            )

        unmarked_df = gpd.read_parquet(directory / UNMARKED_FILE)
        unmarked = []
        for _, row in unmarked_df.iterrows():
            distance = _optional(row["dist_to_marked_crossing_m"])
            unmarked.append(
                UnmarkedCrossing(
                    crossing=Crossing(
                        id=int(row["id"]),
                        source_kind=CrossingSourceKind(row["source_kind"]),
                        geometry=row["geometry"],
                        crossing_type=str(row["crossing_type"]),
                        marked=bool(row["marked"]),
                    ),
                    distance_to_nearest_marked=float(distance) if distance is not None else None,
                )
            )

        logger.info(f"📂 Loaded snapshot {version[:12]} ({len(segments)} segments) from {directory}")
        return AnalysisSnapshot(
            version=manifest["version"],
            created_at=manifest["created_at"],
            parameters=parameters,
            region=region,
            crossings=tuple(crossings),
            segments=tuple(segments),
            unmarked_crossings=tuple(unmarked),
        )
