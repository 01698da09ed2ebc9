from app.models.base import Base
from app.models.user import User
from app.models.scenario import Scenario
from app.models.session import Session
from app.models.transcript_turn import TranscriptTurn
from app.models.evaluation import Evaluation
from app.models.session_flag import SessionFlag

# Export all models
__all__ = [
    "Base",
    "User",
    "Scenario",
    "Session",
    "TranscriptTurn",
    "Evaluation",
    "SessionFlag",
]
