from __future__ import annotations

import json

import geopandas as gpd
import pytest
from shapely.geometry import LineString, Point

import run_analysis
from config import settings
from services.snapshot import SnapshotPersistenceService, SnapshotStore

ENV_NAMES = ("MIN_LON", "MIN_LAT", "MAX_LON", "MAX_LAT", "BBOX_BUFFER_M", "STEP_METERS", "ROAD_CLASSES")
SMALL_REGION = ["--min-lon", "-0.01", "--min-lat", "-0.01", "--max-lon", "0.01", "--max-lat", "0.01"]


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, "FEATURE_POINTS_PATH", "")
    monkeypatch.setattr(settings, "FEATURE_LINES_PATH", "")
    monkeypatch.setenv("SKETCHINESS_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setattr(run_analysis, "init_logging", lambda: None)
    store = SnapshotStore()
    monkeypatch.setattr(run_analysis, "get_snapshot_store", lambda: store)
    return store


@pytest.fixture
def feature_files(tmp_path):
    points = gpd.GeoDataFrame(
        {"osm_id": [11, 12], "highway": ["crossing", "crossing"], "crossing": ["zebra", "unmarked"]},
        geometry=[Point(0.0002, 0.0001), Point(0.0009, 0.0)],
        crs="EPSG:4326",
    )
    lines = gpd.GeoDataFrame(
        {"osm_id": [21], "highway": ["residential"], "name": ["Elm St"]},
        geometry=[LineString([(0, 0), (45, 0)])],
        crs="EPSG:3857",
    )
    points_path = tmp_path / "points.parquet"
    lines_path = tmp_path / "lines.parquet"
    points.to_parquet(points_path)
    lines.to_parquet(lines_path)
    return ["--points", str(points_path), "--lines", str(lines_path)]


def test_points_without_lines(feature_files) -> None:
    assert run_analysis.main(feature_files[:2] + SMALL_REGION) == 2


def test_lines_without_points(feature_files) -> None:
    assert run_analysis.main(feature_files[2:] + SMALL_REGION) == 2


def test_no_feature_source() -> None:
    assert run_analysis.main(SMALL_REGION) == 2


def test_invalid_step(feature_files) -> None:
    assert run_analysis.main(feature_files + SMALL_REGION + ["--step-m", "0"]) == 2


def test_invalid_environment_value(feature_files, monkeypatch) -> None:
    monkeypatch.setenv("MIN_LON", "west")
    assert run_analysis.main(feature_files) == 2


def test_inverted_region_fails_the_run(feature_files, _isolated, tmp_path) -> None:
    argv = feature_files + ["--min-lon", "1", "--min-lat", "0", "--max-lon", "0", "--max-lat", "1"]

    assert run_analysis.main(argv + ["--out", str(tmp_path / "snapshots")]) == 1
    assert _isolated.peek() is None
    assert not (tmp_path / "snapshots" / "current.json").exists()


def test_successful_run_persists_snapshot(feature_files, _isolated, tmp_path, capsys) -> None:
    out = tmp_path / "snapshots"

    code = run_analysis.main(feature_files + SMALL_REGION + ["--out", str(out), "--workers", "1"])

    assert code == 0
    assert (out / "current.json").exists()
    summary = json.loads(capsys.readouterr().out)
    loaded = SnapshotPersistenceService(root=str(out)).load_current()
    assert loaded is not None
    assert loaded.version == summary["version"] == _isolated.current().version
    assert summary["segment_count"] == len(loaded.segments) > 0
    assert summary["crossing_count"] == 2
    assert summary["marked_crossing_count"] == 1
    assert summary["unmarked_crossing_count"] == 1


def test_feature_files_from_data_directory(feature_files, tmp_path) -> None:
    features = tmp_path / "data" / "features"
    features.mkdir(parents=True)
    (tmp_path / "points.parquet").rename(features / "points.parquet")
    (tmp_path / "lines.parquet").rename(features / "lines.parquet")

    assert run_analysis.main(SMALL_REGION + ["--out", str(tmp_path / "snapshots")]) == 0
    assert (tmp_path / "snapshots" / "current.json").exists()
