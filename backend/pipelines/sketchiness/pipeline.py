"""
Sketchiness Pipeline
Main orchestrator for the crossing-distance analysis.

region -> (crossings || street segments) -> nearest crossing -> snapshot

Only a fully built snapshot is persisted and published; a failed run leaves
the previously published snapshot in place.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from services.feature_store import FeatureStore
from utils.id_hash import content_hash

from .crossing_classifier import CrossingClassifier
from .models import AnalysisParameters, AnalysisSnapshot, Crossing, StreetSegment
from .nearest_crossing import NearestCrossingResolver
from .region_builder import RegionBuilder
from .street_segmenter import StreetSegmenter
from .unmarked_report import build_unmarked_report

logger = logging.getLogger(__name__)


class SketchinessPipeline:
    """
    Runs one analysis end to end and publishes the result
    """

    def __init__(
        self,
        feature_store: FeatureStore,
        snapshot_store=None,
        persistence=None,
        max_workers: Optional[int] = None,
        shard_size: Optional[int] = None,
    ):
        """
        Args:
            feature_store: Source of crossing and road features
            snapshot_store: Where results are published (process singleton by default)
            persistence: Optional SnapshotPersistenceService; None skips writing to disk
            max_workers: Thread count for nearest-crossing resolution
            shard_size: Segments per resolver shard
        """
        from config import settings

        if snapshot_store is None:
            from services.snapshot import get_snapshot_store

            snapshot_store = get_snapshot_store()
        self.feature_store = feature_store
        self.snapshot_store = snapshot_store
        self.persistence = persistence
        self.region_builder = RegionBuilder()
        self.classifier = CrossingClassifier()
        self.resolver = NearestCrossingResolver(
            max_workers=max_workers if max_workers is not None else settings.RESOLVER_WORKERS,
            shard_size=shard_size if shard_size is not None else settings.RESOLVER_SHARD_SIZE,
        )
        self._run_lock = threading.Lock()

    def run(self, parameters: Optional[AnalysisParameters] = None) -> AnalysisSnapshot:
        """
        Execute the analysis and publish the snapshot

        Args:
            parameters: Run parameters; environment-derived defaults when omitted

        Returns:
            AnalysisSnapshot: The newly published snapshot

        Raises:
            InvalidRegion: Bad bounding parameters (nothing is published)
            Exception: Any stage failure, after it is recorded on the snapshot store
        """
        with self._run_lock:
            try:
                if parameters is None:
                    parameters = AnalysisParameters.from_env()
                snapshot = self._execute(parameters)
            except Exception as e:
                logger.error(f"❌ Sketchiness analysis failed: {e}")
                self.snapshot_store.record_failure(str(e))
                raise

            if self.persistence is not None:
                try:
                    self.persistence.save(snapshot)
                except Exception as e:
                    logger.error(f"❌ Failed to persist snapshot {snapshot.version[:12]}: {e}")
                    self.snapshot_store.record_failure(f"persist failed: {e}")
                    raise
            self.snapshot_store.publish(snapshot)
            return snapshot

    def _execute(self, parameters: AnalysisParameters) -> AnalysisSnapshot:
        started = time.time()
        logger.info(f"🚦 Starting sketchiness analysis: {parameters.to_dict()}")

        region = self.region_builder.from_parameters(parameters)
        segmenter = StreetSegmenter(parameters.step_meters, parameters.road_classes)

        # Crossing extraction and road segmentation are independent once the region exists
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="sketchiness") as executor:
            crossings_future = executor.submit(self.classifier.classify, region, self.feature_store)
            segments_future = executor.submit(segmenter.segment, region, self.feature_store)
            crossings = crossings_future.result()
            segments = segments_future.result()

        annotated = self.resolver.resolve(crossings, segments)
        unmarked = build_unmarked_report(crossings)

        snapshot = AnalysisSnapshot(
            version=snapshot_version(parameters, crossings, annotated),
            created_at=datetime.now(timezone.utc).isoformat(),
            parameters=parameters,
            region=region,
            crossings=tuple(crossings),
            segments=tuple(annotated),
            unmarked_crossings=tuple(unmarked),
        )
        logger.info(
            f"✅ Analysis finished in {time.time() - started:.2f}s: "
            f"{len(crossings)} crossings, {len(annotated)} segments, {len(unmarked)} unmarked"
        )
        return snapshot


def snapshot_version(
    parameters: AnalysisParameters,
    crossings: Sequence[Crossing],
    segments: Sequence[StreetSegment],
) -> str:
    """Content fingerprint of a run; identical inputs give identical versions"""
    payload: Dict[str, Any] = {
        "parameters": parameters.to_dict(),
        "crossings": [
            [c.id, c.source_kind.value, c.crossing_type, c.marked, c.geometry.wkt]
            for c in crossings
        ],
        "segments": [
            [s.id, s.parent_way_id, s.name, s.road_class.value, s.geometry.wkt,
             s.distance_to_nearest_crossing, s.nearest_crossing_marked]
            for s in segments
        ],
    }
    return content_hash(payload)
