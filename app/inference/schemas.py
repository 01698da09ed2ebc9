"""
Typed results returned by the inference service.

Each model mirrors the strict JSON schema sent with the request (see
``app.inference.prompts``); a response that does not validate is treated
as malformed.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.models.enums import FlagType, FlagSeverity, MISUSE_FLAG_TYPES, CONSISTENCY_FLAG_TYPES

DETECTABLE_FLAG_TYPES = MISUSE_FLAG_TYPES + CONSISTENCY_FLAG_TYPES


def _detectable(value: FlagType) -> FlagType:
    if value not in DETECTABLE_FLAG_TYPES:
        raise ValueError(f"{value.value} is not a misuse or consistency flag type")
    return value


class ScoringFlag(BaseModel):
    """A safety or consistency concern raised by the scorer itself."""
    type: FlagType
    severity: FlagSeverity
    details: str = ""

    @field_validator("type")
    @classmethod
    def check_type(cls, value: FlagType) -> FlagType:
        return _detectable(value)


class ScoringResult(BaseModel):
    """Scorer output for one transcript."""
    score: float = Field(..., ge=0, le=100, description="Overall score out of 100")
    grade: Optional[str] = Field(None, description="Letter grade if the rubric uses one")
    strengths: List[str] = Field(default_factory=list)
    areas_to_improve: List[str] = Field(default_factory=list)
    narrative: str = Field(..., description="Full written feedback")
    flags: List[ScoringFlag] = Field(default_factory=list)


class AnalysisFinding(BaseModel):
    """One misuse or consistency finding from the post-session scan."""
    category: FlagType
    severity: FlagSeverity
    summary: str
    evidence: str = ""
    prompt_reference: Optional[str] = None

    @field_validator("category")
    @classmethod
    def check_category(cls, value: FlagType) -> FlagType:
        return _detectable(value)


class AnalysisResult(BaseModel):
    """Combined misuse + consistency scan output."""
    findings: List[AnalysisFinding] = Field(default_factory=list)
    consistency_score: Optional[int] = Field(None, ge=0, le=100)
    summary: str = ""


class ScenarioContext(BaseModel):
    """Scenario text used to enrich scoring and analysis prompts."""
    title: str
    description: Optional[str] = None
    prompt: Optional[str] = None
    evaluator_context: Optional[str] = None

    @property
    def has_prompt(self) -> bool:
        return bool(self.prompt and self.prompt.strip())
