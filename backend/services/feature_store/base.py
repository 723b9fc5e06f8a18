"""
Base Feature Store Interface
Upstream map-data collaborators must implement this interface.

A feature store hands out already-extracted OSM features (projected to
EPSG:3857) that intersect a bounding envelope. Envelope filtering is coarse:
a feature is returned when its bounding box touches the envelope.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from shapely.geometry.base import BaseGeometry

Envelope = Tuple[float, float, float, float]  # minx, miny, maxx, maxy


@dataclass(frozen=True)
class RawFeature:
    """Feature as delivered by the store; geometry may be missing or malformed."""

    id: Any
    geometry: Optional[BaseGeometry]
    tags: Dict[str, str] = field(default_factory=dict)

    def tag(self, key: str) -> Optional[str]:
        value = self.tags.get(key)
        if value is None:
            return None
        return str(value)


def is_crossing_point(feature: RawFeature) -> bool:
    return feature.tag("highway") == "crossing"


def is_crossing_line(feature: RawFeature) -> bool:
    return feature.tag("highway") == "footway" and feature.tag("footway") == "crossing"


def is_road(feature: RawFeature, road_classes: Iterable[str]) -> bool:
    return feature.tag("highway") in set(road_classes)


def envelope_intersects(geometry: Optional[BaseGeometry], envelope: Envelope) -> bool:
    """Bounding-box overlap test. Malformed geometries are let through so callers can skip them."""
    if geometry is None:
        return True
    try:
        if geometry.is_empty:
            return True
        minx, miny, maxx, maxy = geometry.bounds
    except Exception:
        return True
    e_minx, e_miny, e_maxx, e_maxy = envelope
    return not (maxx < e_minx or minx > e_maxx or maxy < e_miny or miny > e_maxy)


class FeatureStore(ABC):
    """Base class for all feature sources (in-memory, GeoParquet, ...)"""

    name: str = ""

    @abstractmethod
    def crossing_points(self, envelope: Envelope) -> List[RawFeature]:
        """Point features tagged `highway=crossing` intersecting the envelope"""
        pass

    @abstractmethod
    def crossing_lines(self, envelope: Envelope) -> List[RawFeature]:
        """Line features tagged `highway=footway` + `footway=crossing` intersecting the envelope"""
        pass

    @abstractmethod
    def roads(self, envelope: Envelope, road_classes: Sequence[str]) -> List[RawFeature]:
        """Line features whose `highway` tag is one of road_classes, intersecting the envelope"""
        pass

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name or self.__class__.__name__}
