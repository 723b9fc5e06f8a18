"""
Centralized path configuration for backend data storage.

Responsibilities:
- Locate the backend source root and the repository root.
- Provide a stable data root (overridable with SKETCHINESS_DATA_DIR).
- Expose small helpers for the snapshot and feature subtrees.
"""

from __future__ import annotations

import os
from pathlib import Path


def backend_root() -> Path:
    """Backend source root (the 'backend' directory in the repo)."""
    # backend/config/paths.py -> backend/config -> backend
    return Path(__file__).resolve().parents[1]


def project_root() -> Path:
    """Repository root (parent of the backend directory)."""
    return backend_root().parent


def data_root() -> Path:
    """
    Root for generated data.
    - SKETCHINESS_DATA_DIR when set.
    - Otherwise <project_root>/data.
    """
    override = os.environ.get("SKETCHINESS_DATA_DIR")
    root = Path(override) if override else project_root() / "data"
    root.mkdir(parents=True, exist_ok=True)
    return root


def snapshots_root() -> Path:
    root = data_root() / "snapshots"
    root.mkdir(parents=True, exist_ok=True)
    return root


def feature_store_root() -> Path:
    """Default location for extracted OSM feature files."""
    return data_root() / "features"


def logs_root() -> Path:
    root = backend_root() / "logs"
    root.mkdir(parents=True, exist_ok=True)
    return root
