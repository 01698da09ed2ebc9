"""
Evaluation orchestrator.

Requests scoring once a transcript is ready. The contract callers rely on:

- An existing evaluation is returned unchanged; the scorer is not called.
- Fewer than two stored turns on an active session is transient (425):
  the other writer may not have flushed yet.
- Fewer than two stored turns on a completed session is permanent (409):
  nothing will ever arrive.
- Two concurrent requests that both miss the idempotency check race on the
  unique ``evaluations.session_id``; the loser returns the winner's row.
- Post-session analysis is scheduled after a new evaluation commits, and
  only for the request that created it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.business_logic.lifecycle import SessionLifecycleManager
from app.business_logic.scenarios import load_scenario_context
from app.business_logic.transcript_store import TranscriptStore
from app.errors import (
    TranscriptNotReadyError, EvaluationConflictError, StorageUnavailableError,
)
from app.models.enums import FlagSource, FlagStatus, SessionStatus
from app.models.evaluation import Evaluation
from app.models.session_flag import SessionFlag

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class EvaluationOutcome:
    evaluation: Evaluation
    flags: List[SessionFlag] = field(default_factory=list)
    created: bool = False


class EvaluationOrchestrator:
    """Turns a ready transcript into exactly one stored evaluation."""

    def __init__(
        self,
        inference,
        lifecycle: Optional[SessionLifecycleManager] = None,
        store: Optional[TranscriptStore] = None,
        min_turns: int = config.MIN_TURNS_FOR_EVALUATION,
    ):
        self.inference = inference
        self.lifecycle = lifecycle or SessionLifecycleManager()
        self.store = store or TranscriptStore()
        self.min_turns = min_turns

    async def get_existing(self, db: AsyncSession, session_id: str) -> Optional[EvaluationOutcome]:
        result = await db.execute(
            select(Evaluation)
            .where(Evaluation.session_id == session_id)
            .execution_options(populate_existing=True)
        )
        evaluation = result.scalars().first()
        if evaluation is None:
            return None

        flags_result = await db.execute(
            select(SessionFlag)
            .where(SessionFlag.session_id == session_id, SessionFlag.source == FlagSource.EVALUATION)
            .order_by(SessionFlag.id)
            .execution_options(populate_existing=True)
        )
        return EvaluationOutcome(evaluation=evaluation, flags=list(flags_result.scalars().all()))

    async def request_evaluation(
        self,
        db: AsyncSession,
        session_id: str,
        schedule_analysis: Optional[Callable[[str], Any]] = None,
    ) -> EvaluationOutcome:
        existing = await self.get_existing(db, session_id)
        if existing is not None:
            logger.info(f"Evaluation for session {session_id} already exists, returning it")
            return existing

        session = await self.lifecycle.get_session(db, session_id)
        attempt = session.current_attempt
        scenario_id = session.scenario_id
        is_completed = session.status == SessionStatus.COMPLETED

        turns = await self.store.list_turns(db, session_id, attempt)
        if len(turns) < self.min_turns:
            if is_completed:
                raise EvaluationConflictError(
                    f"Session {session_id} ended with {len(turns)} turns; there is nothing to evaluate"
                )
            raise TranscriptNotReadyError(
                f"Session {session_id} attempt {attempt} has {len(turns)} turns stored, "
                f"need {self.min_turns}"
            )

        scenario = await load_scenario_context(db, scenario_id)
        result = await self.inference.score_transcript(turns, scenario)

        evaluation = Evaluation(
            session_id=session_id,
            attempt_number=attempt,
            overall_score=result.score,
            grade=result.grade or None,
            strengths=result.strengths,
            areas_to_improve=result.areas_to_improve,
            raw_response=result.narrative,
        )
        flags = [
            SessionFlag(
                session_id=session_id,
                type=flag.type,
                severity=flag.severity,
                source=FlagSource.EVALUATION,
                status=FlagStatus.PENDING,
                details=flag.details,
            )
            for flag in result.flags
        ]

        try:
            db.add(evaluation)
            db.add_all(flags)
            await db.flush()
            await self.lifecycle.complete_session(db, session_id, commit=False)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            winner = await self.get_existing(db, session_id)
            if winner is None:
                raise StorageUnavailableError(f"Evaluation for session {session_id} could not be stored")
            logger.info(f"Concurrent evaluation for session {session_id} won the race, returning it")
            return winner
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error storing evaluation for session {session_id}: {str(e)}")
            raise StorageUnavailableError(f"Evaluation for session {session_id} could not be stored") from e

        logger.info(
            f"Evaluated session {session_id} attempt {attempt}: score={result.score}, "
            f"{len(flags)} scorer flags"
        )

        if schedule_analysis is not None:
            try:
                schedule_analysis(session_id)
            except Exception:
                logger.exception(f"Could not schedule post-session analysis for session {session_id}")

        # Re-read so the response matches what later idempotent calls return
        stored = await self.get_existing(db, session_id)
        stored.created = True
        return stored
