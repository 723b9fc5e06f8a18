"""
Run Analysis
Command-line entry point: run the crossing-distance analysis once and persist
the snapshot the API server loads on startup.

Bounding box and buffer default to MIN_LON / MIN_LAT / MAX_LON / MAX_LAT /
BBOX_BUFFER_M from the environment (or .env); flags override them.
"""
import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from pipelines.sketchiness.errors import SketchinessError
from pipelines.sketchiness.models import AnalysisParameters
from pipelines.sketchiness.pipeline import SketchinessPipeline
from services.feature_store import GeoFileFeatureStore, feature_store_from_settings
from services.logging_service import init_logging
from services.snapshot import SnapshotPersistenceService, get_snapshot_store

logger = logging.getLogger("run_analysis")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Compute street segment distance to the nearest crossing")
    ap.add_argument("--min-lon", type=float, default=None)
    ap.add_argument("--min-lat", type=float, default=None)
    ap.add_argument("--max-lon", type=float, default=None)
    ap.add_argument("--max-lat", type=float, default=None)
    ap.add_argument("--buffer-m", type=float, default=None, help="grow the region by this many meters")
    ap.add_argument("--step-m", type=float, default=None, help="target segment length in meters")
    ap.add_argument("--road-classes", default="", help="comma separated highway classes (optional)")
    ap.add_argument("--points", default="", help="crossing point features file (overrides FEATURE_POINTS_PATH)")
    ap.add_argument("--lines", default="", help="line features file (overrides FEATURE_LINES_PATH)")
    ap.add_argument("--out", default="", help="snapshot root directory (default: data/snapshots)")
    ap.add_argument("--workers", type=int, default=None, help="nearest-crossing worker threads")
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_logging()

    if args.points or args.lines:
        if not (args.points and args.lines):
            logger.error("❌ --points and --lines must be given together")
            return 2
        feature_store = GeoFileFeatureStore(args.points, args.lines)
    else:
        feature_store = feature_store_from_settings()
    if feature_store is None:
        logger.error("❌ No feature source: pass --points/--lines or set FEATURE_POINTS_PATH/FEATURE_LINES_PATH")
        return 2

    road_classes = tuple(c.strip() for c in args.road_classes.split(",") if c.strip()) or None
    try:
        parameters = AnalysisParameters.from_env(
            min_lon=args.min_lon,
            min_lat=args.min_lat,
            max_lon=args.max_lon,
            max_lat=args.max_lat,
            buffer_meters=args.buffer_m,
            step_meters=args.step_m,
            road_classes=road_classes,
        )
    except ValueError as e:
        logger.error(f"❌ Invalid parameters: {e}")
        return 2

    pipeline = SketchinessPipeline(
        feature_store=feature_store,
        snapshot_store=get_snapshot_store(),
        persistence=SnapshotPersistenceService(root=args.out or None),
        max_workers=args.workers,
    )
    try:
        snapshot = pipeline.run(parameters)
    except SketchinessError as e:
        logger.error(f"❌ {e}")
        return 1

    print(json.dumps(snapshot.summary(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
