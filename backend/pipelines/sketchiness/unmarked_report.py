"""
Unmarked Crossing Report
For every crossing that is not marked, how far away is the nearest marked one?
"""
import logging
from typing import List, Sequence

from .models import Crossing, UnmarkedCrossing
from .nearest_crossing import CrossingIndex

logger = logging.getLogger(__name__)


def build_unmarked_report(crossings: Sequence[Crossing]) -> List[UnmarkedCrossing]:
    """
    Args:
        crossings: Full crossing set of a run

    Returns:
        list: One row per crossing with marked=False, distance unset when no
        marked crossing exists
    """
    unmarked = sorted((c for c in crossings if not c.marked), key=lambda c: c.sort_key)
    marked = [c for c in crossings if c.marked]

    if not unmarked:
        return []
    if not marked:
        logger.info(f"ℹ️ {len(unmarked)} unmarked crossings, no marked crossings to measure against")
        return [UnmarkedCrossing(crossing=c) for c in unmarked]

    matches = CrossingIndex(marked).nearest([c.geometry for c in unmarked])
    report = [
        UnmarkedCrossing(crossing=c, distance_to_nearest_marked=match[1] if match else None)
        for c, match in zip(unmarked, matches)
    ]
    logger.info(f"📋 Unmarked crossing report: {len(report)} rows")
    return report
