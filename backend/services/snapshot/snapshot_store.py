"""
Snapshot Store
Holds the currently published AnalysisSnapshot.

Publishing swaps a single reference under a lock; readers take the reference
once per request and only ever see a complete snapshot.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from pipelines.sketchiness.errors import SnapshotUnavailable
from pipelines.sketchiness.models import AnalysisSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Process-level holder for the published analysis result"""

    def __init__(self) -> None:
        self._current: Optional[AnalysisSnapshot] = None
        self._last_error: Optional[str] = None
        self._lock = threading.Lock()

    def publish(self, snapshot: AnalysisSnapshot) -> Optional[AnalysisSnapshot]:
        """Atomically replace the published snapshot; returns the previous one"""
        with self._lock:
            previous = self._current
            self._current = snapshot
            self._last_error = None
        logger.info(
            f"📣 Published snapshot {snapshot.version[:12]} "
            f"({len(snapshot.segments)} segments, {len(snapshot.crossings)} crossings)"
        )
        return previous

    def record_failure(self, message: str) -> None:
        with self._lock:
            self._last_error = message

    def current(self) -> AnalysisSnapshot:
        snapshot = self._current
        if snapshot is None:
            last_error = self._last_error
            if last_error:
                raise SnapshotUnavailable(f"Analysis snapshot unavailable: last run failed: {last_error}")
            raise SnapshotUnavailable("Analysis snapshot unavailable: the analysis has not been run yet")
        return snapshot

    def peek(self) -> Optional[AnalysisSnapshot]:
        return self._current

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def clear(self) -> None:
        with self._lock:
            self._current = None
            self._last_error = None


_snapshot_store: SnapshotStore | None = None
_store_lock = threading.Lock()


def get_snapshot_store() -> SnapshotStore:
    global _snapshot_store
    if _snapshot_store is None:
        with _store_lock:
            if _snapshot_store is None:
                _snapshot_store = SnapshotStore()
    return _snapshot_store
