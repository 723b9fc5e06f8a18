"""
Region Builder
Turns a lon/lat rectangle plus a buffer distance into the buffered analysis
polygon in the projected working CRS (EPSG:3857).
"""
import logging
import math
from typing import Optional

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError
from shapely.geometry import box

from .errors import InvalidRegion
from .models import AnalysisParameters, GEOGRAPHIC_CRS, Region, WORKING_CRS

logger = logging.getLogger(__name__)

# Web Mercator is undefined at the poles; latitudes are clamped to its limit.
MERCATOR_MAX_LAT = 85.0511287798066


class RegionBuilder:
    """
    Builds analysis regions using pyproj for the geographic -> projected step
    """

    def __init__(self, target_crs: str = WORKING_CRS):
        self.target_crs = target_crs
        self._transformer: Optional[Transformer] = None

    def _get_transformer(self) -> Transformer:
        if self._transformer is None:
            try:
                self._transformer = Transformer.from_crs(
                    CRS.from_user_input(GEOGRAPHIC_CRS),
                    CRS.from_user_input(self.target_crs),
                    always_xy=True,
                )
            except CRSError as e:
                raise InvalidRegion(f"Unsupported target CRS {self.target_crs}: {e}") from e
        return self._transformer

    def build(
        self,
        min_lon: float = -180.0,
        min_lat: float = -90.0,
        max_lon: float = 180.0,
        max_lat: float = 90.0,
        buffer_meters: float = 0.0,
    ) -> Region:
        """
        Build the buffered analysis polygon

        Args:
            min_lon, min_lat, max_lon, max_lat: Rectangle in decimal degrees
            buffer_meters: Dilation applied after projection (>= 0)

        Returns:
            Region: Single polygon in the working CRS

        Raises:
            InvalidRegion: When the rectangle or buffer is malformed
        """
        self._validate(min_lon, min_lat, max_lon, max_lat, buffer_meters)

        south = max(min_lat, -MERCATOR_MAX_LAT)
        north = min(max_lat, MERCATOR_MAX_LAT)
        if south >= north:
            raise InvalidRegion(
                f"Latitude range [{min_lat}, {max_lat}] lies outside the projectable band"
            )

        transformer = self._get_transformer()
        try:
            # Web Mercator keeps meridians and parallels axis-aligned, so the corners define the box
            xs, ys = transformer.transform([min_lon, max_lon], [south, north])
        except ProjError as e:
            raise InvalidRegion(f"Failed to project region: {e}") from e
        projected = box(float(xs[0]), float(ys[0]), float(xs[1]), float(ys[1]))

        if not all(math.isfinite(v) for v in projected.bounds):
            raise InvalidRegion("Projected region has non-finite bounds")

        geometry = projected.buffer(buffer_meters) if buffer_meters > 0 else projected

        logger.info(
            f"🗺️ Region built: bbox=({min_lon}, {min_lat}, {max_lon}, {max_lat}) "
            f"buffer={buffer_meters}m envelope={tuple(round(v, 1) for v in geometry.bounds)}"
        )
        return Region(
            geometry=geometry,
            bbox=(float(min_lon), float(min_lat), float(max_lon), float(max_lat)),
            buffer_meters=float(buffer_meters),
            crs=self.target_crs,
        )

    def from_parameters(self, parameters: AnalysisParameters) -> Region:
        return self.build(
            parameters.min_lon,
            parameters.min_lat,
            parameters.max_lon,
            parameters.max_lat,
            parameters.buffer_meters,
        )

    def _validate(self, min_lon, min_lat, max_lon, max_lat, buffer_meters) -> None:
        errors = []
        values = {
            "min_lon": min_lon,
            "min_lat": min_lat,
            "max_lon": max_lon,
            "max_lat": max_lat,
            "buffer_meters": buffer_meters,
        }
        for name, value in values.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                errors.append(f"{name} must be a finite number (got {value!r})")
        if errors:
            raise InvalidRegion("; ".join(errors))

        if min_lon >= max_lon:
            errors.append("min_lon must be less than max_lon")
        if min_lat >= max_lat:
            errors.append("min_lat must be less than max_lat")
        if not (-180 <= min_lon <= 180) or not (-180 <= max_lon <= 180):
            errors.append("Longitude values must be between -180 and 180")
        if not (-90 <= min_lat <= 90) or not (-90 <= max_lat <= 90):
            errors.append("Latitude values must be between -90 and 90")
        if buffer_meters < 0:
            errors.append("buffer_meters must be >= 0")
        if errors:
            raise InvalidRegion("; ".join(errors))


def build_region(
    min_lon: float = -180.0,
    min_lat: float = -90.0,
    max_lon: float = 180.0,
    max_lat: float = 90.0,
    buffer_meters: float = 0.0,
) -> Region:
    """Convenience wrapper around RegionBuilder().build()"""
    return RegionBuilder().build(min_lon, min_lat, max_lon, max_lat, buffer_meters)
