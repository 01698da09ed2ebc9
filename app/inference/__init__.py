"""
Inference service client.

Talks to an OpenAI-compatible chat completions endpoint for transcript
scoring and post-session analysis. Both calls request schema-constrained
JSON so parsing failures surface as errors instead of silent garbage.
"""

from app.inference.client import InferenceClient
from app.inference.schemas import (
    ScoringFlag, ScoringResult,
    AnalysisFinding, AnalysisResult,
    ScenarioContext,
)

__all__ = [
    "InferenceClient",
    "ScoringFlag", "ScoringResult",
    "AnalysisFinding", "AnalysisResult",
    "ScenarioContext",
]
