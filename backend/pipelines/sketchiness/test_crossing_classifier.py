from __future__ import annotations

from shapely.geometry import LineString, Point, Polygon

from pipelines.sketchiness.crossing_classifier import (
    CrossingClassifier,
    is_eligible,
    is_marked,
    normalize_crossing_type,
)
from pipelines.sketchiness.models import CrossingSourceKind
from pipelines.sketchiness.region_builder import RegionBuilder
from services.feature_store import InMemoryFeatureStore, RawFeature


def _region():
    return RegionBuilder().build(-0.01, -0.01, 0.01, 0.01)


def test_marked_literals() -> None:
    assert is_marked("zebra")
    assert is_marked("marked")
    assert is_marked("Marked")
    assert is_marked("zebra;traffic_signals")
    assert not is_marked("unmarked")
    assert not is_marked("UNMARKED")
    assert not is_marked("traffic_signals")
    assert not is_marked("uncontrolled")
    assert not is_marked("unknown")


def test_eligibility_is_textual_not_the_marked_flag() -> None:
    # traffic_signals and unknown are not marked, yet still count as eligible
    assert is_eligible("traffic_signals") and not is_marked("traffic_signals")
    assert is_eligible("unknown") and not is_marked("unknown")
    assert not is_eligible("unmarked")
    assert not is_eligible("Unmarked")


def test_missing_or_blank_tag_becomes_unknown() -> None:
    assert normalize_crossing_type(None) == "unknown"
    assert normalize_crossing_type("") == "unknown"
    assert normalize_crossing_type("   ") == "unknown"
    assert normalize_crossing_type("zebra") == "zebra"


def test_classify_points_and_lines_sorted_by_id() -> None:
    store = InMemoryFeatureStore(
        points=[
            RawFeature(id=7, geometry=Point(5, 5), tags={"highway": "crossing", "crossing": "unmarked"}),
            RawFeature(id=3, geometry=Point(1, 1), tags={"highway": "crossing"}),
            RawFeature(id=9, geometry=Point(2, 2), tags={"highway": "traffic_signals"}),
        ],
        lines=[
            RawFeature(
                id=3,
                geometry=LineString([(0, 10), (0, 20)]),
                tags={"highway": "footway", "footway": "crossing", "crossing": "marked"},
            ),
            RawFeature(id=4, geometry=LineString([(0, 0), (5, 0)]), tags={"highway": "footway"}),
        ],
    )

    crossings = CrossingClassifier().classify(_region(), store)

    assert [(c.id, c.source_kind) for c in crossings] == [
        (3, CrossingSourceKind.LINE),
        (3, CrossingSourceKind.POINT),
        (7, CrossingSourceKind.POINT),
    ]
    by_key = {(c.id, c.source_kind): c for c in crossings}
    assert by_key[(3, CrossingSourceKind.POINT)].crossing_type == "unknown"
    assert by_key[(3, CrossingSourceKind.POINT)].marked is False
    assert by_key[(3, CrossingSourceKind.LINE)].marked is True
    assert by_key[(7, CrossingSourceKind.POINT)].marked is False


def test_malformed_features_are_skipped() -> None:
    store = InMemoryFeatureStore(
        points=[
            RawFeature(id=1, geometry=None, tags={"highway": "crossing"}),
            RawFeature(id=2, geometry=Point(), tags={"highway": "crossing"}),
            RawFeature(id="n/a", geometry=Point(1, 1), tags={"highway": "crossing"}),
            RawFeature(id=4, geometry=Polygon([(0, 0), (1, 0), (1, 1)]), tags={"highway": "crossing"}),
            RawFeature(id=5, geometry=Point(1, 1), tags={"highway": "crossing", "crossing": "zebra"}),
        ],
    )

    crossings = CrossingClassifier().classify(_region(), store)

    assert [c.id for c in crossings] == [5]


def test_crossings_outside_region_are_excluded() -> None:
    store = InMemoryFeatureStore(
        points=[RawFeature(id=1, geometry=Point(50_000, 0), tags={"highway": "crossing"})],
    )

    assert CrossingClassifier().classify(_region(), store) == []
