"""
Nearest Crossing Resolver
Annotates every street segment with the planar distance to the nearest
eligible crossing and that crossing's `marked` flag.

Eligibility is the raw-tag rule from `crossing_classifier.is_eligible`. The
spatial index is a shapely STRtree over the eligible crossings; equidistant
matches are resolved by the lowest (crossing id, source kind).
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from .crossing_classifier import is_eligible
from .models import Crossing, StreetSegment

logger = logging.getLogger(__name__)

DEFAULT_SHARD_SIZE = 5000

NearestMatch = Optional[Tuple[Crossing, float]]


class CrossingIndex:
    """Immutable STRtree over crossings, ordered by their tie-break key"""

    def __init__(self, crossings: Sequence[Crossing]):
        self.crossings: Tuple[Crossing, ...] = tuple(sorted(crossings, key=lambda c: c.sort_key))
        self.tree = STRtree([c.geometry for c in self.crossings])

    def __len__(self) -> int:
        return len(self.crossings)

    def nearest(self, geometries: Sequence[BaseGeometry]) -> List[NearestMatch]:
        """
        Nearest crossing for each geometry

        Returns:
            list: (crossing, distance) per input geometry, None when the index is empty
        """
        matches: List[NearestMatch] = [None] * len(geometries)
        if not geometries or not self.crossings:
            return matches

        query = np.empty(len(geometries), dtype=object)
        query[:] = list(geometries)
        indices, distances = self.tree.query_nearest(query, return_distance=True, all_matches=True)
        input_idx, tree_idx = indices

        # Lowest tree position wins among equidistant matches for the same input
        order = np.lexsort((tree_idx, input_idx))
        _, first = np.unique(input_idx[order], return_index=True)
        for pos in order[first]:
            crossing = self.crossings[int(tree_idx[pos])]
            matches[int(input_idx[pos])] = (crossing, float(distances[pos]))
        return matches


class NearestCrossingResolver:
    """
    Per-segment nearest eligible crossing search, sharded over worker threads
    """

    def __init__(self, max_workers: Optional[int] = None, shard_size: int = DEFAULT_SHARD_SIZE):
        self.max_workers = max_workers
        self.shard_size = max(1, int(shard_size))

    def resolve(
        self,
        crossings: Sequence[Crossing],
        segments: Sequence[StreetSegment],
    ) -> List[StreetSegment]:
        """
        Annotate segments with nearest eligible crossing distance

        Args:
            crossings: Full crossing set of the run (not modified)
            segments: Unannotated segments of the same run

        Returns:
            list: New annotated segments, in input order
        """
        eligible = [c for c in crossings if is_eligible(c.crossing_type)]
        if not eligible:
            logger.warning(
                f"⚠️ No eligible crossings among {len(crossings)}; "
                f"{len(segments)} segments keep unknown distance"
            )
            return list(segments)

        index = CrossingIndex(eligible)
        shards = [
            list(segments[i:i + self.shard_size])
            for i in range(0, len(segments), self.shard_size)
        ]
        logger.info(
            f"📏 Resolving {len(segments)} segments against {len(index)} eligible crossings "
            f"in {len(shards)} shard(s)"
        )

        if len(shards) <= 1 or self.max_workers == 1:
            results = [self._resolve_shard(index, shard) for shard in shards]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(lambda shard: self._resolve_shard(index, shard), shards))

        annotated = [segment for shard in results for segment in shard]
        logger.info(f"✅ Annotated {sum(1 for s in annotated if s.is_annotated)} segments")
        return annotated

    @staticmethod
    def _resolve_shard(index: CrossingIndex, shard: List[StreetSegment]) -> List[StreetSegment]:
        matches = index.nearest([s.geometry for s in shard])
        annotated: List[StreetSegment] = []
        for segment, match in zip(shard, matches):
            if match is None:
                annotated.append(segment)
                continue
            crossing, distance = match
            annotated.append(
                replace(
                    segment,
                    distance_to_nearest_crossing=distance,
                    nearest_crossing_marked=crossing.marked,
                )
            )
        return annotated
