"""
Business logic for the session transcript pipeline.

Components, leaves first: transcript store, session lifecycle manager,
reconciliation gate, evaluation orchestrator, analysis scanner (plus the
background runner that isolates it), and the flag service.
"""

from app.business_logic.transcript_store import TranscriptStore
from app.business_logic.lifecycle import SessionLifecycleManager, get_or_create_user
from app.business_logic.reconciliation import ReconciliationGate, ReplaceOutcome, find_gaps
from app.business_logic.scenarios import load_scenario_context
from app.business_logic.evaluation_orchestrator import EvaluationOrchestrator, EvaluationOutcome
from app.business_logic.analysis_scanner import AnalysisScanner, AnalysisOutcome
from app.business_logic.background import AnalysisRunner
from app.business_logic.flags import FlagService

__all__ = [
    "TranscriptStore",
    "SessionLifecycleManager", "get_or_create_user",
    "ReconciliationGate", "ReplaceOutcome", "find_gaps",
    "load_scenario_context",
    "EvaluationOrchestrator", "EvaluationOutcome",
    "AnalysisScanner", "AnalysisOutcome",
    "AnalysisRunner",
    "FlagService",
]
