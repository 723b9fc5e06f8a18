"""
Sketchiness Module
Distance from every street segment to its nearest pedestrian crossing
"""
from .errors import InvalidRegion, InvalidTileCoordinate, SketchinessError, SnapshotUnavailable
from .models import (
    AnalysisParameters,
    AnalysisSnapshot,
    Crossing,
    CrossingSourceKind,
    Region,
    RoadClass,
    StreetSegment,
    UnmarkedCrossing,
)

__all__ = [
    "AnalysisParameters",
    "AnalysisSnapshot",
    "Crossing",
    "CrossingSourceKind",
    "InvalidRegion",
    "InvalidTileCoordinate",
    "Region",
    "RoadClass",
    "SketchinessError",
    "SnapshotUnavailable",
    "StreetSegment",
    "UnmarkedCrossing",
]
