"""
Vector tile rendering for analysis snapshots
"""
from .tile_math import parse_tile_coordinate, tile_bounds, tile_for_point, validate_tile_coordinate
from .tile_service import LAYER_NAME, MEDIA_TYPE, RenderedTile, TileService

__all__ = [
    "LAYER_NAME",
    "MEDIA_TYPE",
    "RenderedTile",
    "TileService",
    "parse_tile_coordinate",
    "tile_bounds",
    "tile_for_point",
    "validate_tile_coordinate",
]
