from __future__ import annotations

import mapbox_vector_tile
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from shapely.geometry import LineString, Point

from api.endpoints import sketchiness, system
from pipelines.sketchiness.pipeline import SketchinessPipeline
from pipelines.sketchiness.tiles import tile_for_point
from services.feature_store import InMemoryFeatureStore, RawFeature
from services.snapshot import SnapshotStore, get_snapshot_store


def _client(store: SnapshotStore, pipeline=None) -> TestClient:
    app = FastAPI()
    app.include_router(system.router, prefix="/api")
    app.include_router(sketchiness.router, prefix="/api/sketchiness")
    app.dependency_overrides[get_snapshot_store] = lambda: store
    app.dependency_overrides[sketchiness.get_pipeline] = lambda: pipeline
    return TestClient(app)


@pytest.mark.parametrize("path", ["-1/0/0", "23/0/0", "3/-1/0", "3/0/abc", "x/0/0"])
def test_invalid_tile_address(path, published) -> None:
    store, _ = published
    response = _client(store).get(f"/api/sketchiness/{path}")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid z/x/y"}


def test_tile_without_snapshot() -> None:
    response = _client(SnapshotStore()).get("/api/sketchiness/0/0/0")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to generate tile"
    assert "not been run" in body["message"]


def test_tile_response(published) -> None:
    store, snapshot = published
    x, y = tile_for_point(22.5, 0.0, 16)

    response = _client(store).get(f"/api/sketchiness/16/{x}/{y}.mvt")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/vnd.mapbox-vector-tile"
    assert response.headers["cache-control"] == "public, max-age=60"
    assert response.headers["x-snapshot-version"] == snapshot.version
    layer = mapbox_vector_tile.decode(response.content)["streets"]
    assert len(layer["features"]) == 3


def test_empty_tile_is_ok(published) -> None:
    store, _ = published
    response = _client(store).get("/api/sketchiness/12/0/0")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/vnd.mapbox-vector-tile"


def test_status_and_health(published) -> None:
    store, snapshot = published
    client = _client(store)

    status = client.get("/api/sketchiness/status").json()
    health = client.get("/api/health").json()

    assert status["status"] == "success"
    assert status["snapshot"]["version"] == snapshot.version
    assert status["snapshot"]["segment_count"] == 3
    assert health["ready"] is True
    assert health["snapshot_version"] == snapshot.version


def test_health_before_first_run() -> None:
    health = _client(SnapshotStore()).get("/api/health").json()
    assert health["ready"] is False
    assert health["snapshot_version"] is None


def test_run_analysis(forty_five_meter_store) -> None:
    store = SnapshotStore()
    pipeline = SketchinessPipeline(forty_five_meter_store, snapshot_store=store)
    client = _client(store, pipeline)

    response = client.post(
        "/api/sketchiness/analysis",
        json={"min_lon": -0.01, "min_lat": -0.01, "max_lon": 0.01, "max_lat": 0.01},
    )

    assert response.status_code == 200
    assert response.json()["snapshot"]["annotated_segment_count"] == 3
    assert store.current().version == response.json()["snapshot"]["version"]


def test_run_analysis_with_bad_region(forty_five_meter_store) -> None:
    store = SnapshotStore()
    pipeline = SketchinessPipeline(forty_five_meter_store, snapshot_store=store)

    response = _client(store, pipeline).post(
        "/api/sketchiness/analysis",
        json={"min_lon": 1.0, "min_lat": 0.0, "max_lon": 0.0, "max_lat": 1.0},
    )

    assert response.status_code == 400
    assert store.peek() is None


def test_run_analysis_without_feature_source() -> None:
    response = _client(SnapshotStore()).post("/api/sketchiness/analysis", json={})

    assert response.status_code == 500
    assert "feature source" in response.json()["message"]


def test_run_analysis_with_bad_step(forty_five_meter_store) -> None:
    store = SnapshotStore()
    pipeline = SketchinessPipeline(forty_five_meter_store, snapshot_store=store)

    response = _client(store, pipeline).post("/api/sketchiness/analysis", json={"step_meters": 0})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid analysis parameters"


def test_status_before_first_run() -> None:
    body = _client(SnapshotStore()).get("/api/sketchiness/status").json()

    assert body["status"] == "unavailable"
    assert "not been run" in body["message"]


def test_unmarked_crossings_without_snapshot() -> None:
    response = _client(SnapshotStore()).get("/api/sketchiness/unmarked-crossings")
    assert response.status_code == 500


def test_unmarked_crossings_geojson(published) -> None:
    store, snapshot = published
    body = _client(store).get("/api/sketchiness/unmarked-crossings").json()

    assert body["type"] == "FeatureCollection"
    assert body["version"] == snapshot.version
    assert body["features"] == []


def test_unmarked_crossings_are_reported_in_degrees(small_region_parameters) -> None:
    feature_store = InMemoryFeatureStore(
        points=[
            RawFeature(id=1, geometry=Point(22.5, 10.0), tags={"highway": "crossing", "crossing": "zebra"}),
            RawFeature(id=2, geometry=Point(111.32, 0.0), tags={"highway": "crossing", "crossing": "unmarked"}),
        ],
        lines=[
            RawFeature(id=100, geometry=LineString([(0.0, 0.0), (200.0, 0.0)]), tags={"highway": "residential"}),
        ],
    )
    store = SnapshotStore()
    SketchinessPipeline(feature_store, snapshot_store=store, max_workers=1).run(small_region_parameters)

    body = _client(store).get("/api/sketchiness/unmarked-crossings").json()

    assert len(body["features"]) == 1
    feature = body["features"][0]
    lon, lat = feature["geometry"]["coordinates"]
    assert lon == pytest.approx(0.001, abs=1e-6)
    assert lat == pytest.approx(0.0, abs=1e-9)
    assert feature["properties"]["id"] == 2
    assert feature["properties"]["dist_to_marked_crossing_m"] == pytest.approx(89.4, abs=0.5)
