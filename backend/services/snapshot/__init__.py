"""
Snapshot Module
Publication and persistence of analysis snapshots
"""
from .snapshot_store import SnapshotStore, get_snapshot_store
from .snapshot_persistence_service import SnapshotPersistenceService

__all__ = ["SnapshotStore", "get_snapshot_store", "SnapshotPersistenceService"]
