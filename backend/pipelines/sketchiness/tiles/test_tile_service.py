from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import mapbox_vector_tile
import pytest

from pipelines.sketchiness.errors import InvalidTileCoordinate, SnapshotUnavailable
from pipelines.sketchiness.tiles import TileService, parse_tile_coordinate, tile_bounds, tile_for_point
from services.snapshot import SnapshotStore


def _decode(data: bytes):
    return mapbox_vector_tile.decode(data)


def test_tile_bounds_world_and_origin() -> None:
    assert tile_bounds(0, 0, 0) == pytest.approx(
        (-20037508.342789244, -20037508.342789244, 20037508.342789244, 20037508.342789244)
    )
    min_x, min_y, max_x, max_y = tile_bounds(1, 1, 0)
    assert (min_x, max_y) == pytest.approx((0.0, 20037508.342789244))
    assert tile_for_point(10.0, 10.0, 18) == (131072, 131071)


@pytest.mark.parametrize(
    "zxy",
    [(-1, 0, 0), (23, 0, 0), (3, -1, 0), (3, 0, -1), ("a", 0, 0), ("1.5", 0, 0), (True, 0, 0), ("", 1, 1)],
)
def test_bad_coordinates_are_rejected(zxy) -> None:
    with pytest.raises(InvalidTileCoordinate):
        parse_tile_coordinate(*zxy)


def test_integer_strings_are_accepted() -> None:
    assert parse_tile_coordinate("14", "8192", " 8191 ") == (14, 8192, 8191)


def test_tile_over_the_way_has_three_features(published) -> None:
    store, snapshot = published
    x, y = tile_for_point(22.5, 0.0, 16)

    tile = TileService(store).render(16, x, y)

    assert tile.version == snapshot.version
    assert tile.feature_count == 3
    layer = _decode(tile.data)["streets"]
    assert layer["extent"] == 4096
    props = sorted((f["properties"] for f in layer["features"]), key=lambda p: p["segment_id"])
    assert [p["segment_id"] for p in props] == ["100:0:0", "100:0:1", "100:0:2"]
    assert props[1]["dist_to_crossing_meters"] == pytest.approx(10.0)
    assert all(p["nearest_crossing_marked"] is True for p in props)
    assert all(p["highway"] == "residential" and p["name"] == "Test Street" for p in props)
    assert all(p["osm_id"] == 100 for p in props)


def test_concurrent_renders_are_identical(published) -> None:
    store, snapshot = published
    x, y = tile_for_point(22.5, 0.0, 16)
    service = TileService(store)

    with ThreadPoolExecutor(max_workers=8) as pool:
        tiles = list(pool.map(lambda _: service.render(16, x, y), range(8)))

    assert {t.data for t in tiles} == {tiles[0].data}
    assert {t.version for t in tiles} == {snapshot.version}
    assert tiles[0].feature_count == 3


def test_empty_tile_is_valid(published) -> None:
    store, _ = published

    data = TileService(store).get_tile(10, 0, 0)

    assert isinstance(data, bytes)
    assert _decode(data).get("streets", {}).get("features", []) == []


def test_distance_is_clamped_for_display(published) -> None:
    store, _ = published
    x, y = tile_for_point(22.5, 0.0, 16)

    layer = _decode(TileService(store, max_reported_distance=10.5).get_tile(16, x, y))["streets"]

    distances = sorted(f["properties"]["dist_to_crossing_meters"] for f in layer["features"])
    assert distances == pytest.approx([10.0, 10.3078, 10.5], abs=1e-3)


def test_no_snapshot_raises() -> None:
    with pytest.raises(SnapshotUnavailable):
        TileService(SnapshotStore()).get_tile(0, 0, 0)


def test_tile_beyond_zoom_range_is_empty(published) -> None:
    store, _ = published
    data = TileService(store).get_tile(2, 100, 100)
    assert _decode(data).get("streets", {}).get("features", []) == []
