"""
Logging Service
Rotating log file plus an in-memory ring buffer served by /logs/recent.

Every record handled here is stamped with the version of the snapshot that
was published when it was emitted, so log lines from a tile request can be
matched to the analysis run that produced the tile.
"""
import logging
import os
from collections import deque
from logging.handlers import RotatingFileHandler
from typing import Any, Callable, Deque, Dict, List, Optional

from services.snapshot import get_snapshot_store


LOG_DIR = os.getenv("LOG_DIR", os.path.join(os.path.dirname(__file__), "..", "logs"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
RING_BUFFER_SIZE = int(os.getenv("RING_BUFFER_SIZE", "2000"))
LOG_FILE = os.path.join(LOG_DIR, "sketchiness.log")
NO_SNAPSHOT = "-"


def published_snapshot_version() -> Optional[str]:
    snapshot = get_snapshot_store().peek()
    return snapshot.version if snapshot is not None else None


class SnapshotContextFilter(logging.Filter):
    """Adds `snapshot_version` (short form, or "-") to every record"""

    def __init__(self, version_provider: Callable[[], Optional[str]] = published_snapshot_version):
        super().__init__()
        self.version_provider = version_provider

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "snapshot_version"):
            version = self.version_provider()
            record.snapshot_version = version[:12] if version else NO_SNAPSHOT
        return True


class RingBufferHandler(logging.Handler):
    """Keeps the most recent log records as plain dicts"""

    def __init__(self, maxlen: int = 2000):
        super().__init__()
        self.buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append({
                "ts": record.created,
                "level": record.levelname,
                "levelno": record.levelno,
                "name": record.name,
                "message": record.getMessage(),
                "snapshot_version": getattr(record, "snapshot_version", NO_SNAPSHOT),
                "pathname": record.pathname,
                "lineno": record.lineno,
            })
        except Exception:
            self.handleError(record)

    def get_recent(self, limit: int = 500, min_level: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Args:
            limit: Newest N records; 0 or less returns everything buffered
            min_level: Level name such as "WARNING"; lower records are skipped

        Returns:
            list: Records oldest first
        """
        records = list(self.buffer)
        if min_level:
            threshold = logging.getLevelName(min_level.upper())
            if not isinstance(threshold, int):
                raise ValueError(f"Unknown log level: {min_level}")
            records = [r for r in records if r["levelno"] >= threshold]
        if limit <= 0:
            return records
        return records[-limit:]


_ring_handler: RingBufferHandler | None = None
_initialized = False


def get_ring_handler() -> RingBufferHandler:
    global _ring_handler
    if _ring_handler is None:
        _ring_handler = RingBufferHandler(maxlen=RING_BUFFER_SIZE)
        _ring_handler.addFilter(SnapshotContextFilter())
    return _ring_handler


def init_logging() -> None:
    """Attach the file and ring-buffer handlers to the root logger (once per process)"""
    global _initialized
    if _initialized:
        return
    os.makedirs(LOG_DIR, exist_ok=True)

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s [snapshot %(snapshot_version)s]: %(message)s")

    root = logging.getLogger()
    if root.level == logging.NOTSET:
        root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=5_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(fmt)
    file_handler.addFilter(SnapshotContextFilter())
    root.addHandler(file_handler)

    ring = get_ring_handler()
    ring.setFormatter(fmt)
    min_level_name = os.getenv("RING_BUFFER_MIN_LEVEL", "INFO").upper()
    ring.setLevel(getattr(logging, min_level_name, logging.INFO))
    root.addHandler(ring)

    # Tile requests are frequent; keep access logs quiet
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    _initialized = True
