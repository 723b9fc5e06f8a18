import pytest
from shapely.geometry import LineString, Point

from pipelines.sketchiness.models import AnalysisParameters
from pipelines.sketchiness.pipeline import SketchinessPipeline
from services.feature_store import InMemoryFeatureStore, RawFeature
from services.snapshot import SnapshotStore


@pytest.fixture
def small_region_parameters() -> AnalysisParameters:
    # About 1.1 km either side of (0, 0) in EPSG:3857
    return AnalysisParameters(min_lon=-0.01, min_lat=-0.01, max_lon=0.01, max_lat=0.01)


@pytest.fixture
def forty_five_meter_store() -> InMemoryFeatureStore:
    """One 45 m residential way with a zebra crossing 10 m off its midpoint"""
    return InMemoryFeatureStore(
        points=[
            RawFeature(id=1, geometry=Point(22.5, 10.0), tags={"highway": "crossing", "crossing": "zebra"}),
        ],
        lines=[
            RawFeature(
                id=100,
                geometry=LineString([(0.0, 0.0), (45.0, 0.0)]),
                tags={"highway": "residential", "name": "Test Street"},
            ),
        ],
    )


@pytest.fixture
def published(forty_five_meter_store, small_region_parameters):
    """(store, snapshot) after one run over the 45 m scenario"""
    store = SnapshotStore()
    pipeline = SketchinessPipeline(forty_five_meter_store, snapshot_store=store, max_workers=1)
    snapshot = pipeline.run(small_region_parameters)
    return store, snapshot
