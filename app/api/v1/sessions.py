from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.business_logic import (
    AnalysisRunner, AnalysisScanner, EvaluationOrchestrator, EvaluationOutcome,
    FlagService, ReconciliationGate, SessionLifecycleManager, TranscriptStore,
)
from app.database.init_db import get_session
from app.dependencies import (
    Principal, get_principal, require_supervisor,
    get_lifecycle_manager, get_reconciliation_gate, get_flag_service,
    get_evaluation_orchestrator, get_analysis_scanner, get_analysis_runner,
)
from app.errors import AccessDeniedError, AttemptMismatchError, InvalidRequestError
from app.models.session import Session
from app.schemas import (
    StartSessionRequest, SessionRead, AttemptResponse,
    ReplaceTranscriptRequest, ReplaceTranscriptResponse, TranscriptRead, TurnRead,
    EvaluationRead, EvaluationResponse, AnalysisResponse,
    FeedbackRequest, FlagRead, ErrorResponse,
)

router = APIRouter(responses={
    403: {"model": ErrorResponse, "description": "Caller may not act on this session"},
    404: {"model": ErrorResponse, "description": "Session not found"},
})


async def load_session_for(
    db: AsyncSession,
    lifecycle: SessionLifecycleManager,
    session_id: str,
    principal: Principal,
) -> Session:
    """Load a session and check the caller may act on it."""
    session = await lifecycle.get_session(db, session_id)
    if not principal.can_access(session):
        raise AccessDeniedError()
    return session


def build_evaluation_response(outcome: EvaluationOutcome) -> EvaluationResponse:
    evaluation = EvaluationRead.model_validate(outcome.evaluation).model_copy(
        update={"flags": [FlagRead.model_validate(flag) for flag in outcome.flags]}
    )
    return EvaluationResponse(evaluation=evaluation, created=outcome.created)


@router.post("", response_model=SessionRead, status_code=status.HTTP_201_CREATED)
async def start_session(
    request: StartSessionRequest,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_session),
):
    """
    Start a practice session.

    End users always own the session they start. Internal callers must
    name the owner with ``userId``.
    """
    if principal.internal:
        if not request.user_id:
            raise InvalidRequestError("userId is required for internal callers")
        owner_id = request.user_id
    else:
        if request.user_id and request.user_id != principal.user_id and not principal.is_supervisor:
            raise AccessDeniedError("Cannot start a session for another user")
        owner_id = request.user_id or principal.user_id

    session = await lifecycle.start_session(db, owner_id, request.scenario_id, request.modality)
    return SessionRead.model_validate(session)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session_by_id(
    session_id: str,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_session),
):
    session = await load_session_for(db, lifecycle, session_id, principal)
    return SessionRead.model_validate(session)


@router.post("/{session_id}/attempts", response_model=AttemptResponse, responses={
    409: {"model": ErrorResponse, "description": "Session is completed"},
})
async def restart_attempt(
    session_id: str,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_session),
):
    """Restart the session; later transcript writes target the new attempt."""
    await load_session_for(db, lifecycle, session_id, principal)
    attempt = await lifecycle.increment_attempt(db, session_id)
    return AttemptResponse(session_id=session_id, attempt_number=attempt)


@router.post("/{session_id}/complete", response_model=SessionRead)
async def complete_session(
    session_id: str,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_session),
):
    """Mark the session completed. Completing twice is a no-op."""
    await load_session_for(db, lifecycle, session_id, principal)
    await lifecycle.complete_session(db, session_id)
    session = await lifecycle.get_session(db, session_id, refresh=True)
    return SessionRead.model_validate(session)


@router.get("/{session_id}/transcript", response_model=TranscriptRead)
async def read_transcript(
    session_id: str,
    attempt: Optional[int] = Query(None, ge=1, description="Attempt to read; defaults to the current attempt"),
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    db: AsyncSession = Depends(get_session),
):
    session = await load_session_for(db, lifecycle, session_id, principal)
    attempt_number = attempt or session.current_attempt
    if attempt_number > session.current_attempt:
        raise AttemptMismatchError(
            f"Session {session_id} has no attempt {attempt_number} (current is {session.current_attempt})"
        )

    turns = await TranscriptStore().list_turns(db, session_id, attempt_number)
    return TranscriptRead(
        session_id=session_id,
        attempt_number=attempt_number,
        turns=[TurnRead.model_validate(turn) for turn in turns],
    )


@router.post("/{session_id}/transcript", response_model=ReplaceTranscriptResponse, responses={
    400: {"model": ErrorResponse, "description": "Malformed transcript"},
    409: {"model": ErrorResponse, "description": "Attempt does not exist"},
    413: {"model": ErrorResponse, "description": "Too many turns or characters"},
    503: {"model": ErrorResponse, "description": "Storage unavailable, retry"},
})
async def replace_transcript(
    session_id: str,
    request: ReplaceTranscriptRequest,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    gate: ReconciliationGate = Depends(get_reconciliation_gate),
    db: AsyncSession = Depends(get_session),
):
    """
    Replace the stored turns of one attempt.

    Both capture writers flush their full view here. A payload shorter than
    what is stored is ignored (``accepted`` false) and reported as success.
    """
    await load_session_for(db, lifecycle, session_id, principal)
    outcome = await gate.replace_turns(db, session_id, request.attempt_number, request.turns)
    return ReplaceTranscriptResponse(
        written=outcome.written,
        accepted=outcome.accepted,
        stored_count=outcome.stored_count,
        attempt_number=outcome.attempt_number,
        gaps=outcome.gaps,
        gap_count=outcome.gap_count,
    )


@router.post("/{session_id}/evaluate", response_model=EvaluationResponse, responses={
    409: {"model": ErrorResponse, "description": "Session ended without enough turns"},
    422: {"model": ErrorResponse, "description": "Scorer refused the content"},
    425: {"model": ErrorResponse, "description": "Transcript not ready, retry"},
    502: {"model": ErrorResponse, "description": "Scorer failed"},
    503: {"model": ErrorResponse, "description": "Scorer timed out or storage unavailable"},
})
async def request_evaluation(
    session_id: str,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    orchestrator: EvaluationOrchestrator = Depends(get_evaluation_orchestrator),
    runner: AnalysisRunner = Depends(get_analysis_runner),
    db: AsyncSession = Depends(get_session),
):
    """
    Score the session's current attempt.

    Returns the existing evaluation when there is one. A 425 means the
    transcript is still arriving and the caller should poll.
    """
    await load_session_for(db, lifecycle, session_id, principal)
    outcome = await orchestrator.request_evaluation(
        db,
        session_id,
        schedule_analysis=lambda sid: runner.schedule(background_tasks, sid),
    )
    return build_evaluation_response(outcome)


@router.post("/{session_id}/analyze", response_model=AnalysisResponse)
async def analyze_session(
    session_id: str,
    principal: Principal = Depends(require_supervisor),
    scanner: AnalysisScanner = Depends(get_analysis_scanner),
    db: AsyncSession = Depends(get_session),
):
    """Run post-session analysis now. Skips sessions that were already analyzed."""
    outcome = await scanner.analyze(db, session_id)
    return AnalysisResponse(
        analyzed=outcome.analyzed,
        flags_created=outcome.flags_created,
        skipped=outcome.skipped,
    )


@router.post("/{session_id}/flag", response_model=FlagRead, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    session_id: str,
    request: FeedbackRequest,
    principal: Principal = Depends(get_principal),
    lifecycle: SessionLifecycleManager = Depends(get_lifecycle_manager),
    flags: FlagService = Depends(get_flag_service),
    db: AsyncSession = Depends(get_session),
):
    """Report a problem with a session for supervisor review."""
    await load_session_for(db, lifecycle, session_id, principal)
    flag = await flags.submit_user_feedback(
        db, session_id, request.type, request.details, request.severity
    )
    return FlagRead.model_validate(flag)
