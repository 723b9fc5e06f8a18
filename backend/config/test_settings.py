from __future__ import annotations

import pytest

from config.settings import env_analysis_overrides
from pipelines.sketchiness.models import AnalysisParameters, RoadClass

ENV_NAMES = ("MIN_LON", "MIN_LAT", "MAX_LON", "MAX_LAT", "BBOX_BUFFER_M", "STEP_METERS", "ROAD_CLASSES")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_no_environment_means_whole_world() -> None:
    assert env_analysis_overrides() == {}
    params = AnalysisParameters.from_env()
    assert (params.min_lon, params.min_lat, params.max_lon, params.max_lat) == (-180.0, -90.0, 180.0, 90.0)
    assert params.buffer_meters == 0.0
    assert params.step_meters == 20.0


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MIN_LON", "-98.6")
    monkeypatch.setenv("MAX_LON", "-98.4")
    monkeypatch.setenv("BBOX_BUFFER_M", "150")
    monkeypatch.setenv("ROAD_CLASSES", "primary, Trunk")

    params = AnalysisParameters.from_env(max_lat=29.5)

    assert params.min_lon == -98.6
    assert params.max_lon == -98.4
    assert params.max_lat == 29.5
    assert params.buffer_meters == 150.0
    assert params.road_classes == (RoadClass.PRIMARY, RoadClass.TRUNK)


def test_bad_number_is_reported(monkeypatch) -> None:
    monkeypatch.setenv("STEP_METERS", "twenty")
    with pytest.raises(ValueError, match="STEP_METERS"):
        env_analysis_overrides()


def test_unknown_road_class_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("ROAD_CLASSES", "motorway")
    with pytest.raises(ValueError):
        AnalysisParameters.from_env()
