"""
Log Endpoints
Recent in-memory log records and a zip of the rotating log files, each
tagged with the state of the published snapshot.
"""
import io
import json
import logging
import os
import zipfile
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from services import logging_service
from services.snapshot import SnapshotStore, get_snapshot_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/logs", tags=["logs"])


def snapshot_status(store: SnapshotStore) -> Dict[str, Any]:
    snapshot = store.peek()
    return {
        "snapshot_version": snapshot.version if snapshot is not None else None,
        "created_at": snapshot.created_at if snapshot is not None else None,
        "last_error": store.last_error,
    }


@router.get("/recent")
def get_recent_logs(
    limit: int = Query(500, ge=1, le=5000),
    level: Optional[str] = Query(None, description="Minimum level, e.g. WARNING"),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    try:
        records = logging_service.get_ring_handler().get_recent(limit, min_level=level)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": "Invalid log level", "message": str(e)})
    return {**snapshot_status(store), "logs": records}


@router.get("/download")
def download_logs(store: SnapshotStore = Depends(get_snapshot_store)):
    log_file = logging_service.LOG_FILE
    buf = io.BytesIO()
    base = os.path.splitext(os.path.basename(log_file))[0]
    directory = os.path.dirname(log_file)
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        # sketchiness.log, sketchiness.log.1, ...
        if os.path.isdir(directory):
            for name in sorted(os.listdir(directory)):
                path = os.path.join(directory, name)
                if name.startswith(base) and os.path.isfile(path):
                    zf.write(path, arcname=name)
        else:
            logger.debug(f"Log directory {directory} does not exist yet")

        ring = logging_service.get_ring_handler()
        ring_json = json.dumps({"logs": ring.get_recent(0)}, indent=2, default=str)
        zf.writestr("recent_ring_buffer.json", ring_json.encode("utf-8"))
        zf.writestr("snapshot_status.json", json.dumps(snapshot_status(store), indent=2, default=str))

    headers = {"Content-Disposition": 'attachment; filename="sketchiness-logs.zip"'}
    return Response(content=buf.getvalue(), media_type="application/zip", headers=headers)
