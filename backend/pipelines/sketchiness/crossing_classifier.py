"""
Crossing Classifier
Normalizes point and line crossing features into Crossing entities.

OSM encodes crossings as `highway=crossing` nodes and/or
`highway=footway` + `footway=crossing` ways. `crossing=*` values vary widely
(unmarked, marked, zebra, traffic_signals, uncontrolled, ...). Crossings are
not snapped to road geometry.
"""
import logging
from typing import List, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from services.feature_store.base import FeatureStore, RawFeature
from .models import Crossing, CrossingSourceKind, Region

logger = logging.getLogger(__name__)

UNKNOWN_CROSSING_TYPE = "unknown"

POINT_GEOMETRY_TYPES = ("Point", "MultiPoint")
LINE_GEOMETRY_TYPES = ("LineString", "MultiLineString")


def normalize_crossing_type(tag: Optional[str]) -> str:
    """Raw `crossing=*` value, or "unknown" when missing or blank"""
    if tag is None:
        return UNKNOWN_CROSSING_TYPE
    value = str(tag).strip()
    return value if value else UNKNOWN_CROSSING_TYPE


def is_marked(crossing_type: str) -> bool:
    """True when the type mentions "zebra" or "marked" (but "unmarked" alone is not marked)"""
    value = crossing_type.lower()
    if "zebra" in value:
        return True
    return "marked" in value.replace("unmarked", "")


def is_eligible(crossing_type: str) -> bool:
    """
    Candidate for nearest-crossing distances.

    This is a textual test on the raw tag, not the `marked` flag: a crossing
    tagged "traffic_signals" or "unknown" is eligible while marked=False.
    """
    return "unmarked" not in crossing_type.lower()


class CrossingClassifier:
    """
    Builds the full Crossing set for a region (no eligibility filtering)
    """

    def classify(self, region: Region, store: FeatureStore) -> List[Crossing]:
        """
        Extract and classify crossings intersecting the region envelope

        Args:
            region: Analysis region
            store: Upstream feature source

        Returns:
            list: Crossings sorted by (id, source kind)
        """
        envelope = region.envelope
        crossings: List[Crossing] = []
        skipped = 0

        sources: Tuple[Tuple[CrossingSourceKind, List[RawFeature], Tuple[str, ...]], ...] = (
            (CrossingSourceKind.POINT, store.crossing_points(envelope), POINT_GEOMETRY_TYPES),
            (CrossingSourceKind.LINE, store.crossing_lines(envelope), LINE_GEOMETRY_TYPES),
        )
        for kind, features, allowed_types in sources:
            for feature in features:
                crossing = self.classify_feature(feature, kind, allowed_types)
                if crossing is None:
                    skipped += 1
                    continue
                crossings.append(crossing)

        crossings.sort(key=lambda c: c.sort_key)
        marked = sum(1 for c in crossings if c.marked)
        logger.info(
            f"🚸 Classified {len(crossings)} crossings ({marked} marked, "
            f"{len(crossings) - marked} not marked), skipped {skipped} malformed"
        )
        return crossings

    def classify_feature(
        self,
        feature: RawFeature,
        kind: CrossingSourceKind,
        allowed_types: Tuple[str, ...],
    ) -> Optional[Crossing]:
        geometry = _usable_geometry(feature.geometry, allowed_types)
        if geometry is None:
            logger.debug(f"Skipping crossing {feature.id}: unusable geometry")
            return None
        try:
            crossing_id = int(feature.id)
        except (TypeError, ValueError):
            logger.debug(f"Skipping crossing with non-integer id {feature.id!r}")
            return None

        crossing_type = normalize_crossing_type(feature.tag("crossing"))
        return Crossing(
            id=crossing_id,
            source_kind=kind,
            geometry=geometry,
            crossing_type=crossing_type,
            marked=is_marked(crossing_type),
        )


def _usable_geometry(geometry, allowed_types: Tuple[str, ...]) -> Optional[BaseGeometry]:
    if geometry is None or not isinstance(geometry, BaseGeometry):
        return None
    try:
        if geometry.is_empty or geometry.geom_type not in allowed_types or not geometry.is_valid:
            return None
    except Exception:
        return None
    return geometry
