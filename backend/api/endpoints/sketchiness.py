"""
Sketchiness Endpoints
Vector tiles, analysis runs and the unmarked crossing report
"""
import logging
import threading
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Response, status
from fastapi.responses import JSONResponse
import geopandas as gpd
from shapely.geometry import mapping

from config import settings
from pipelines.sketchiness.errors import InvalidRegion, InvalidTileCoordinate, SnapshotUnavailable
from pipelines.sketchiness.models import GEOGRAPHIC_CRS, WORKING_CRS, AnalysisParameters
from pipelines.sketchiness.tiles import MEDIA_TYPE, TileService
from services.snapshot import SnapshotStore, get_snapshot_store
from utils.response_models import AnalysisRequest, AnalysisResponse, SnapshotSummary

logger = logging.getLogger(__name__)
router = APIRouter()

TILE_SUFFIXES = (".mvt", ".pbf")

_pipeline = None
_pipeline_lock = threading.Lock()


def get_pipeline():
    """
    Process-wide analysis pipeline wired to the configured feature files

    Returns:
        SketchinessPipeline or None when no feature source is configured
    """
    global _pipeline
    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                from pipelines.sketchiness.pipeline import SketchinessPipeline
                from services.feature_store import feature_store_from_settings
                from services.snapshot import SnapshotPersistenceService

                store = feature_store_from_settings()
                if store is None:
                    return None
                _pipeline = SketchinessPipeline(
                    feature_store=store,
                    snapshot_store=get_snapshot_store(),
                    persistence=SnapshotPersistenceService(),
                )
    return _pipeline


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


@router.get("/status", response_model=AnalysisResponse)
def get_analysis_status(store: SnapshotStore = Depends(get_snapshot_store)):
    """Currently published snapshot (if any) and the last run error"""
    snapshot = store.peek()
    if snapshot is None:
        message = store.last_error or "The analysis has not been run yet"
        return JSONResponse(content={"status": "unavailable", "message": message})
    return AnalysisResponse(
        status="success",
        snapshot=SnapshotSummary(**snapshot.summary()),
        last_error=store.last_error,
    )


@router.post("/analysis", response_model=AnalysisResponse)
def run_analysis(
    request: Optional[AnalysisRequest] = Body(default=None),
    pipeline=Depends(get_pipeline),
):
    """
    Run the analysis synchronously and publish the result

    Args:
        request: Optional overrides; anything unset comes from the environment

    Returns:
        AnalysisResponse: Summary of the newly published snapshot
    """
    if pipeline is None:
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Analysis failed",
            "No feature source configured (FEATURE_POINTS_PATH / FEATURE_LINES_PATH)",
        )

    overrides: Dict[str, Any] = request.model_dump(exclude_none=True) if request else {}
    try:
        parameters = AnalysisParameters.from_env(**overrides)
    except ValueError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid analysis parameters", str(e))

    try:
        snapshot = pipeline.run(parameters)
    except InvalidRegion as e:
        logger.warning(f"⚠️ Rejected analysis region: {e}")
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid analysis parameters", str(e))
    except Exception as e:
        logger.error(f"❌ Analysis run failed: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Analysis failed", str(e))

    return AnalysisResponse(status="success", snapshot=SnapshotSummary(**snapshot.summary()))


@router.get("/unmarked-crossings")
def get_unmarked_crossings(store: SnapshotStore = Depends(get_snapshot_store)):
    """
    Unmarked crossings with the distance to the nearest marked crossing

    Returns:
        dict: GeoJSON FeatureCollection in EPSG:4326
    """
    try:
        snapshot = store.current()
    except SnapshotUnavailable as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Snapshot unavailable", e.message)

    rows = snapshot.unmarked_crossings
    geographic = gpd.GeoSeries([row.crossing.geometry for row in rows], crs=WORKING_CRS).to_crs(GEOGRAPHIC_CRS)
    features = []
    for row, geometry in zip(rows, geographic):
        crossing = row.crossing
        features.append({
            "type": "Feature",
            "geometry": mapping(geometry),
            "properties": {
                "id": crossing.id,
                "source_kind": crossing.source_kind.value,
                "crossing_type": crossing.crossing_type,
                "dist_to_marked_crossing_m": row.distance_to_nearest_marked,
            },
        })
    return {"type": "FeatureCollection", "version": snapshot.version, "features": features}


@router.get("/{z}/{x}/{y}")
def get_sketchiness_tile(z: str, x: str, y: str, store: SnapshotStore = Depends(get_snapshot_store)):
    """
    Serve one Mapbox Vector Tile of the "streets" layer

    Args:
        z: Zoom level (0..22)
        x: Tile column
        y: Tile row, optionally suffixed with .mvt or .pbf

    Returns:
        Response: Encoded tile with vector-tile content type
    """
    for suffix in TILE_SUFFIXES:
        if y.endswith(suffix):
            y = y[: -len(suffix)]
            break

    try:
        tile = TileService(store).render(z, x, y)
    except InvalidTileCoordinate as e:
        logger.debug(f"🚫 Rejected tile request {z}/{x}/{y}: {e}")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid z/x/y"})
    except SnapshotUnavailable as e:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate tile", e.message)
    except Exception as e:
        logger.error(f"❌ Tile {z}/{x}/{y} failed: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to generate tile", str(e))

    return Response(
        content=tile.data,
        media_type=MEDIA_TYPE,
        headers={
            "Cache-Control": f"public, max-age={settings.TILE_CACHE_MAX_AGE}",
            "X-Snapshot-Version": tile.version,
        },
    )
