"""
Session lifecycle schemas.
"""

from typing import Optional
from datetime import datetime
from pydantic import Field

from app.models.enums import Modality, SessionStatus
from app.schemas.base import ApiModel


class StartSessionRequest(ApiModel):
    user_id: Optional[str] = Field(
        None, description="Owner; required for internal callers, otherwise the caller is the owner"
    )
    scenario_id: Optional[str] = Field(None, description="Scenario to practice, if any")
    modality: Modality = Field(Modality.VOICE, description="voice or text")


class SessionRead(ApiModel):
    id: str
    user_id: str
    scenario_id: Optional[str] = None
    modality: Modality
    status: SessionStatus
    current_attempt: int
    started_at: datetime
    ended_at: Optional[datetime] = None


class AttemptResponse(ApiModel):
    session_id: str
    attempt_number: int
