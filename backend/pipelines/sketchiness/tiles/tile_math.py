"""
Tile Math
XYZ (slippy map) tile addressing in Web Mercator
"""
import math
from typing import Any, Tuple

from ..errors import InvalidTileCoordinate

MAX_ZOOM = 22
# Half the width of the Web Mercator square, in meters
ORIGIN_SHIFT = 20037508.342789244


def parse_tile_coordinate(z: Any, x: Any, y: Any) -> Tuple[int, int, int]:
    """
    Parse and validate raw z/x/y values (strings from a URL path or ints)

    Raises:
        InvalidTileCoordinate: When any value is not an integer or out of range
    """
    values = []
    for name, raw in (("z", z), ("x", x), ("y", y)):
        if isinstance(raw, bool):
            raise InvalidTileCoordinate(f"Invalid {name}: {raw!r}")
        if isinstance(raw, int):
            values.append(raw)
            continue
        text = str(raw).strip()
        try:
            values.append(int(text, 10))
        except ValueError as e:
            raise InvalidTileCoordinate(f"Invalid {name}: {raw!r}") from e
    validate_tile_coordinate(*values)
    return values[0], values[1], values[2]


def validate_tile_coordinate(z: int, x: int, y: int) -> None:
    for name, value in (("z", z), ("x", x), ("y", y)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidTileCoordinate(f"Invalid {name}: {value!r}")
    if z < 0 or z > MAX_ZOOM:
        raise InvalidTileCoordinate(f"Invalid z: {z} (expected 0..{MAX_ZOOM})")
    if x < 0 or y < 0:
        raise InvalidTileCoordinate(f"Invalid x/y: {x}/{y} (expected >= 0)")


def tile_size(z: int) -> float:
    return 2 * ORIGIN_SHIFT / (1 << z)


def tile_bounds(z: int, x: int, y: int) -> Tuple[float, float, float, float]:
    """
    Web Mercator envelope of a tile (y counted down from the north edge)

    Returns:
        tuple: (min_x, min_y, max_x, max_y) in EPSG:3857 meters
    """
    size = tile_size(z)
    min_x = -ORIGIN_SHIFT + x * size
    max_y = ORIGIN_SHIFT - y * size
    return (min_x, max_y - size, min_x + size, max_y)


def buffered_bounds(bounds: Tuple[float, float, float, float], extent: int, buffer: int) -> Tuple[float, float, float, float]:
    """Grow tile bounds by `buffer` tile pixels out of `extent`"""
    min_x, min_y, max_x, max_y = bounds
    pad = (max_x - min_x) * buffer / extent
    return (min_x - pad, min_y - pad, max_x + pad, max_y + pad)


def tile_for_point(mx: float, my: float, z: int) -> Tuple[int, int]:
    """Tile column/row containing a Web Mercator point at zoom z"""
    size = tile_size(z)
    n = 1 << z
    x = int(math.floor((mx + ORIGIN_SHIFT) / size))
    y = int(math.floor((ORIGIN_SHIFT - my) / size))
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)
