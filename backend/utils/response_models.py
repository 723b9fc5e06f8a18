"""
Shared Response Models
Request and response contracts for the sketchiness API
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class BaseResponse(BaseModel):
    """Base response format"""
    status: str  # "success" or "error"
    error: Optional[str] = None


class AnalysisRequest(BaseModel):
    """Body of POST /api/sketchiness/analysis; unset fields fall back to the environment"""
    min_lon: Optional[float] = None
    min_lat: Optional[float] = None
    max_lon: Optional[float] = None
    max_lat: Optional[float] = None
    buffer_meters: Optional[float] = None
    step_meters: Optional[float] = None
    road_classes: Optional[List[str]] = None


class SnapshotSummary(BaseModel):
    version: str
    created_at: str
    parameters: Dict[str, Any]
    region_envelope: List[float]
    crossing_count: int
    marked_crossing_count: int
    segment_count: int
    annotated_segment_count: int
    unmarked_crossing_count: int


class AnalysisResponse(BaseResponse):
    """Response for analysis run and status endpoints"""
    snapshot: Optional[SnapshotSummary] = None
    last_error: Optional[str] = None
