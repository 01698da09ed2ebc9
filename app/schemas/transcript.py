"""
Transcript schemas.

Payload caps (turn count, characters per turn) are enforced by the
reconciliation gate rather than here, so oversized payloads get a 413
instead of a generic validation error.
"""

from typing import List, Optional
from datetime import datetime
from pydantic import Field

from app import config
from app.models.enums import TurnRole
from app.schemas.base import ApiModel


class TurnIn(ApiModel):
    """One turn as flushed by a capture writer."""
    role: TurnRole = Field(..., description="Who spoke")
    content: str = Field(..., min_length=1, description="Utterance text")
    turn_order: int = Field(
        ..., ge=0, le=config.MAX_TURN_ORDER, description="Zero-indexed position within the attempt"
    )


class ReplaceTranscriptRequest(ApiModel):
    """Full turn set for one attempt; replaces whatever is stored if not shorter."""
    attempt_number: Optional[int] = Field(
        None, ge=1, description="Attempt to replace; defaults to the session's current attempt"
    )
    turns: List[TurnIn] = Field(..., description="Every turn the writer observed")


class ReplaceTranscriptResponse(ApiModel):
    """Outcome of a replace call. ``accepted`` is false when a longer transcript was kept."""
    written: int = Field(..., description="Rows written by this call")
    accepted: bool = Field(..., description="Whether the incoming set replaced the stored one")
    stored_count: int = Field(..., description="Turns stored for the attempt after the call")
    attempt_number: int
    gaps: List[int] = Field(
        default_factory=list, description="First missing turn positions below the highest turn order"
    )
    gap_count: int = Field(0, description="Total number of missing positions")


class TurnRead(ApiModel):
    turn_order: int
    role: TurnRole
    content: str
    attempt_number: int
    created_at: datetime


class TranscriptRead(ApiModel):
    session_id: str
    attempt_number: int
    turns: List[TurnRead]
