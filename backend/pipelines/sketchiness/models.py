"""
Sketchiness Data Model
Immutable entities shared by every stage of the crossing-distance analysis.

All geometries are expressed in the projected working CRS (EPSG:3857), whose
units are treated as meters for distance and segmentation purposes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from shapely.geometry import LineString, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

WORKING_CRS = "EPSG:3857"
GEOGRAPHIC_CRS = "EPSG:4326"

DEFAULT_STEP_METERS = 20.0


def clamp_distance(distance: Optional[float], maximum: float) -> Optional[float]:
    """Clamp a reported distance to the color-scale maximum; unset stays unset"""
    if distance is None:
        return None
    return min(float(distance), float(maximum))


class CrossingSourceKind(str, Enum):
    """Shape of the upstream feature a crossing was derived from."""

    POINT = "point"
    LINE = "line"


class RoadClass(str, Enum):
    """Road classes that can be segmented (OSM `highway=*` values)."""

    RESIDENTIAL = "residential"
    TERTIARY = "tertiary"
    SECONDARY = "secondary"
    PRIMARY = "primary"
    TRUNK = "trunk"


DEFAULT_ROAD_CLASSES: Tuple[RoadClass, ...] = (
    RoadClass.RESIDENTIAL,
    RoadClass.TERTIARY,
    RoadClass.SECONDARY,
    RoadClass.PRIMARY,
    RoadClass.TRUNK,
)


@dataclass(frozen=True)
class AnalysisParameters:
    """
    Run parameters for one analysis.

    The defaults describe the whole world with no buffer, which keeps the
    behaviour of an un-configured run unchanged.
    """

    min_lon: float = -180.0
    min_lat: float = -90.0
    max_lon: float = 180.0
    max_lat: float = 90.0
    buffer_meters: float = 0.0
    step_meters: float = DEFAULT_STEP_METERS
    road_classes: Tuple[RoadClass, ...] = DEFAULT_ROAD_CLASSES

    def __post_init__(self) -> None:
        classes = tuple(RoadClass(str(c).strip().lower()) if not isinstance(c, RoadClass) else c
                        for c in self.road_classes)
        if not classes:
            raise ValueError("road_classes must name at least one road class")
        object.__setattr__(self, "road_classes", classes)
        if not self.step_meters > 0:
            raise ValueError(f"step_meters must be > 0 (got {self.step_meters})")

    @classmethod
    def from_env(cls, **overrides: Any) -> "AnalysisParameters":
        """Build parameters from environment overrides, then explicit keyword overrides."""
        from config.settings import env_analysis_overrides

        values: Dict[str, Any] = env_analysis_overrides()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_lon": self.min_lon,
            "min_lat": self.min_lat,
            "max_lon": self.max_lon,
            "max_lat": self.max_lat,
            "buffer_meters": self.buffer_meters,
            "step_meters": self.step_meters,
            "road_classes": [c.value for c in self.road_classes],
        }


@dataclass(frozen=True)
class Region:
    """Buffered analysis area in the working CRS."""

    geometry: Polygon
    bbox: Tuple[float, float, float, float]  # min_lon, min_lat, max_lon, max_lat
    buffer_meters: float = 0.0
    crs: str = WORKING_CRS

    @property
    def envelope(self) -> Tuple[float, float, float, float]:
        return tuple(self.geometry.bounds)


@dataclass(frozen=True)
class Crossing:
    """A place pedestrians may cross a road."""

    id: int
    source_kind: CrossingSourceKind
    geometry: BaseGeometry
    crossing_type: str
    marked: bool

    @property
    def sort_key(self) -> Tuple[int, str]:
        # Tie-break order for equidistant nearest-neighbour matches
        return (self.id, self.source_kind.value)


@dataclass(frozen=True)
class StreetSegment:
    """A fixed-length slice of a clipped road way."""

    id: str
    parent_way_id: int
    name: Optional[str]
    road_class: RoadClass
    geometry: LineString
    length: float
    distance_to_nearest_crossing: Optional[float] = None
    nearest_crossing_marked: Optional[bool] = None

    @property
    def is_annotated(self) -> bool:
        return self.distance_to_nearest_crossing is not None


@dataclass(frozen=True)
class UnmarkedCrossing:
    """Report row: an unmarked crossing and how far the nearest marked one is."""

    crossing: Crossing
    distance_to_nearest_marked: Optional[float] = None


@dataclass(frozen=True)
class AnalysisSnapshot:
    """
    One complete, immutable output of the analysis pipeline.

    The segment spatial index is built once here so that tile requests only
    ever read from it.
    """

    version: str
    created_at: str
    parameters: AnalysisParameters
    region: Region
    crossings: Tuple[Crossing, ...]
    segments: Tuple[StreetSegment, ...]
    unmarked_crossings: Tuple[UnmarkedCrossing, ...] = ()
    segment_index: STRtree = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "crossings", tuple(self.crossings))
        object.__setattr__(self, "segments", tuple(self.segments))
        object.__setattr__(self, "unmarked_crossings", tuple(self.unmarked_crossings))
        object.__setattr__(self, "segment_index", STRtree([s.geometry for s in self.segments]))

    def summary(self) -> Dict[str, Any]:
        annotated = sum(1 for s in self.segments if s.is_annotated)
        return {
            "version": self.version,
            "created_at": self.created_at,
            "parameters": self.parameters.to_dict(),
            "region_envelope": list(self.region.envelope),
            "crossing_count": len(self.crossings),
            "marked_crossing_count": sum(1 for c in self.crossings if c.marked),
            "segment_count": len(self.segments),
            "annotated_segment_count": annotated,
            "unmarked_crossing_count": len(self.unmarked_crossings),
        }
