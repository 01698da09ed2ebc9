"""
API schemas for the Hotline Training Server.

This module contains Pydantic models for API requests and responses.
"""

from app.schemas.errors import ErrorResponse, ValidationErrorItem, ErrorDetail
from app.schemas.session import StartSessionRequest, SessionRead, AttemptResponse
from app.schemas.transcript import (
    TurnIn, ReplaceTranscriptRequest, ReplaceTranscriptResponse,
    TurnRead, TranscriptRead,
)
from app.schemas.flag import (
    FeedbackRequest, FlagRead, FlagSessionContext, FlagListItem, FlagList,
)
from app.schemas.evaluation import EvaluationRead, EvaluationResponse, AnalysisResponse

# Export schemas
__all__ = [
    "ErrorResponse", "ValidationErrorItem", "ErrorDetail",
    "StartSessionRequest", "SessionRead", "AttemptResponse",
    "TurnIn", "ReplaceTranscriptRequest", "ReplaceTranscriptResponse",
    "TurnRead", "TranscriptRead",
    "FeedbackRequest", "FlagRead", "FlagSessionContext", "FlagListItem", "FlagList",
    "EvaluationRead", "EvaluationResponse", "AnalysisResponse",
]
