"""
Sketchiness Errors
Domain exceptions raised by the analysis pipeline and the tile service
"""


class SketchinessError(Exception):
    """Base class for all sketchiness analysis errors"""


class InvalidRegion(SketchinessError, ValueError):
    """Bounding parameters do not describe a usable analysis area"""


class InvalidTileCoordinate(SketchinessError, ValueError):
    """Tile request outside the supported z/x/y range"""


class SnapshotUnavailable(SketchinessError):
    """No analysis snapshot has been published yet (or the last run failed)"""

    def __init__(self, message: str = "No analysis snapshot has been published"):
        super().__init__(message)
        self.message = message
