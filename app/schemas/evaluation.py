"""
Evaluation and analysis schemas.
"""

from typing import List, Optional
from datetime import datetime
from pydantic import Field

from app.schemas.base import ApiModel
from app.schemas.flag import FlagRead


class EvaluationRead(ApiModel):
    id: int
    session_id: str
    attempt_number: int
    overall_score: float
    grade: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    areas_to_improve: List[str] = Field(default_factory=list)
    raw_response: str
    created_at: datetime
    flags: List[FlagRead] = Field(default_factory=list, description="Flags raised by the scorer")


class EvaluationResponse(ApiModel):
    evaluation: EvaluationRead
    created: bool = Field(..., description="False when an existing evaluation was returned")


class AnalysisResponse(ApiModel):
    analyzed: bool
    flags_created: int = 0
    skipped: Optional[str] = Field(None, description="already_analyzed or too_short when nothing ran")
