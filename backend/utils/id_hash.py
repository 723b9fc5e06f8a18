"""
Content Hashing
Stable fingerprints for JSON-serializable data
"""
import hashlib
import json
from typing import Any


def content_hash(obj: Any) -> str:
    """sha256 hex digest of the canonical (sorted, compact) JSON form of obj"""
    canonical = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()
