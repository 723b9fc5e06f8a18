"""
Utility modules for the sketchiness backend.
"""

from utils.id_hash import content_hash
from utils.response_models import AnalysisRequest, AnalysisResponse, BaseResponse, SnapshotSummary

__all__ = [
    'content_hash',
    'AnalysisRequest',
    'AnalysisResponse',
    'BaseResponse',
    'SnapshotSummary',
]
