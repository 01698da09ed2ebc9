"""
Session flag schemas.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import Field

from app.models.enums import (
    FlagType, FlagSeverity, FlagSource, FlagStatus, FeedbackCategory, Modality,
)
from app.schemas.base import ApiModel


class FeedbackRequest(ApiModel):
    """Trainee-submitted feedback about a session."""
    type: FeedbackCategory
    details: str = Field(..., min_length=1, max_length=2000)
    severity: Optional[FlagSeverity] = Field(
        None, description="Requested severity; ai-guidance-concern is always critical"
    )


class FlagRead(ApiModel):
    id: int
    session_id: str
    type: FlagType
    severity: FlagSeverity
    source: FlagSource
    status: FlagStatus
    details: str
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="flag_metadata")
    created_at: datetime


class FlagSessionContext(ApiModel):
    """Just enough session context for a supervisor to triage a flag."""
    id: str
    modality: Modality
    started_at: datetime
    user_id: str
    user_display_name: Optional[str] = None
    scenario_id: Optional[str] = None
    scenario_title: Optional[str] = None


class FlagListItem(FlagRead):
    session: FlagSessionContext


class FlagList(ApiModel):
    results: List[FlagListItem]
    total: int
