"""
Tile Service
Renders the published street segments as Mapbox Vector Tiles.

Reads only from the snapshot held by the SnapshotStore, so tiles never see a
half-written analysis. Layer name is "streets"; geometries are clipped to the
tile plus a pixel buffer and quantized to the tile extent.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import mapbox_vector_tile
import shapely
from shapely.geometry import LineString, MultiLineString, box

from ..models import AnalysisSnapshot, StreetSegment, clamp_distance
from .tile_math import buffered_bounds, parse_tile_coordinate, tile_bounds

logger = logging.getLogger(__name__)

LAYER_NAME = "streets"
MEDIA_TYPE = "application/vnd.mapbox-vector-tile"


@dataclass(frozen=True)
class RenderedTile:
    data: bytes
    version: str
    feature_count: int


class TileService:
    """
    On-demand MVT encoder over the current analysis snapshot
    """

    def __init__(
        self,
        snapshot_store=None,
        extent: Optional[int] = None,
        buffer: Optional[int] = None,
        max_reported_distance: Optional[float] = None,
    ):
        from config import settings

        if snapshot_store is None:
            from services.snapshot import get_snapshot_store

            snapshot_store = get_snapshot_store()
        self.snapshot_store = snapshot_store
        self.extent = int(extent if extent is not None else settings.TILE_EXTENT)
        self.buffer = int(buffer if buffer is not None else settings.TILE_BUFFER)
        self.max_reported_distance = float(
            max_reported_distance if max_reported_distance is not None else settings.MAX_REPORTED_DISTANCE_M
        )

    def get_tile(self, z: Any, x: Any, y: Any) -> bytes:
        """
        Encode one tile

        Args:
            z, x, y: Tile address (ints or integer strings)

        Returns:
            bytes: Encoded tile, valid but featureless when nothing intersects

        Raises:
            InvalidTileCoordinate: Bad address
            SnapshotUnavailable: No analysis has been published
        """
        return self.render(z, x, y).data

    def render(self, z: Any, x: Any, y: Any) -> RenderedTile:
        z, x, y = parse_tile_coordinate(z, x, y)
        snapshot = self.snapshot_store.current()

        bounds = tile_bounds(z, x, y)
        clip_bounds = buffered_bounds(bounds, self.extent, self.buffer)
        features = self._features(snapshot, bounds, clip_bounds)

        data = mapbox_vector_tile.encode(
            [{"name": LAYER_NAME, "features": features}],
            default_options={"quantize_bounds": bounds, "extents": self.extent},
        )
        logger.debug(f"🗺️ Tile {z}/{x}/{y}: {len(features)} features, {len(data)} bytes")
        return RenderedTile(data=data, version=snapshot.version, feature_count=len(features))

    def _features(self, snapshot: AnalysisSnapshot, bounds, clip_bounds) -> List[Dict[str, Any]]:
        if not snapshot.segments:
            return []
        hits = snapshot.segment_index.query(box(*bounds), predicate="intersects")
        features = []
        for i in sorted(int(i) for i in hits):
            segment = snapshot.segments[i]
            geometry = shapely.clip_by_rect(segment.geometry, *clip_bounds)
            if geometry.is_empty or not isinstance(geometry, (LineString, MultiLineString)):
                continue
            features.append({"geometry": geometry, "properties": self.feature_properties(segment)})
        return features

    def feature_properties(self, segment: StreetSegment) -> Dict[str, Any]:
        """Tile attributes of a segment; unset values are left out"""
        properties: Dict[str, Any] = {
            "osm_id": int(segment.parent_way_id),
            "segment_id": segment.id,
            "highway": segment.road_class.value,
        }
        if segment.name:
            properties["name"] = segment.name
        distance = clamp_distance(segment.distance_to_nearest_crossing, self.max_reported_distance)
        if distance is not None:
            properties["dist_to_crossing_meters"] = float(distance)
        if segment.nearest_crossing_marked is not None:
            properties["nearest_crossing_marked"] = bool(segment.nearest_crossing_marked)
        return properties
