"""
In-Memory Feature Store
List-backed feature source, used for embedding and tests
"""
from typing import Iterable, List, Sequence

from .base import (
    Envelope,
    FeatureStore,
    RawFeature,
    envelope_intersects,
    is_crossing_line,
    is_crossing_point,
    is_road,
)


class InMemoryFeatureStore(FeatureStore):
    """
    Holds point and line features the way osm2pgsql splits them into
    planet_osm_point / planet_osm_line.
    """

    name = "memory"

    def __init__(self, points: Iterable[RawFeature] = (), lines: Iterable[RawFeature] = ()):
        self._points: List[RawFeature] = list(points)
        self._lines: List[RawFeature] = list(lines)

    def add_point(self, feature: RawFeature) -> None:
        self._points.append(feature)

    def add_line(self, feature: RawFeature) -> None:
        self._lines.append(feature)

    def crossing_points(self, envelope: Envelope) -> List[RawFeature]:
        return [
            f for f in self._points
            if is_crossing_point(f) and envelope_intersects(f.geometry, envelope)
        ]

    def crossing_lines(self, envelope: Envelope) -> List[RawFeature]:
        return [
            f for f in self._lines
            if is_crossing_line(f) and envelope_intersects(f.geometry, envelope)
        ]

    def roads(self, envelope: Envelope, road_classes: Sequence[str]) -> List[RawFeature]:
        return [
            f for f in self._lines
            if is_road(f, road_classes) and envelope_intersects(f.geometry, envelope)
        ]

    def describe(self):
        return {"name": self.name, "points": len(self._points), "lines": len(self._lines)}
