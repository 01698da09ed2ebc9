"""
Post-session analysis scanner.

One combined misuse + consistency pass over a finished transcript. It runs
at most once per session: any ``source=analysis`` flag means it already
ran, and a run only proceeds after claiming the session with a
conditional UPDATE of ``analysis_claimed_at``, so concurrent runs (the
background pass and a manual trigger) cannot both classify. A failed run
releases its claim so a later trigger can retry. A scan with no findings
still writes a ``clean-audit`` flag so "clean" and "never scanned" look
different.

This is a second detector next to the scorer's own flags. Callers that
trigger it in the background go through ``AnalysisRunner``, which keeps
its failures out of the request that scheduled it.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.business_logic.lifecycle import SessionLifecycleManager, utcnow
from app.business_logic.scenarios import load_scenario_context
from app.business_logic.transcript_store import TranscriptStore
from app.errors import StorageUnavailableError
from app.models.enums import FlagType, FlagSeverity, FlagSource, FlagStatus
from app.models.session import Session
from app.models.session_flag import SessionFlag

# Set up logging
logger = logging.getLogger(__name__)

ALREADY_ANALYZED = "already_analyzed"
TOO_SHORT = "too_short"


@dataclass
class AnalysisOutcome:
    analyzed: bool
    flags_created: int = 0
    skipped: Optional[str] = None


class AnalysisScanner:
    """Creates ``source=analysis`` flags for one session."""

    def __init__(
        self,
        inference,
        lifecycle: Optional[SessionLifecycleManager] = None,
        store: Optional[TranscriptStore] = None,
        min_turns: int = config.MIN_TURNS_FOR_ANALYSIS,
    ):
        self.inference = inference
        self.lifecycle = lifecycle or SessionLifecycleManager()
        self.store = store or TranscriptStore()
        self.min_turns = min_turns

    async def count_analysis_flags(self, db: AsyncSession, session_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(SessionFlag)
            .where(SessionFlag.session_id == session_id, SessionFlag.source == FlagSource.ANALYSIS)
        )
        return result.scalar() or 0

    async def claim(self, db: AsyncSession, session_id: str) -> bool:
        """Mark the session as being analyzed. False if another run already holds it."""
        result = await db.execute(
            update(Session)
            .where(Session.id == session_id, Session.analysis_claimed_at.is_(None))
            .values(analysis_claimed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    async def release(self, db: AsyncSession, session_id: str) -> None:
        try:
            await db.rollback()
            await db.execute(
                update(Session)
                .where(Session.id == session_id)
                .values(analysis_claimed_at=None)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError:
            logger.exception(f"Could not release analysis claim for session {session_id}")

    def build_flags(self, session_id: str, result) -> List[SessionFlag]:
        flags = []
        for finding in result.findings:
            metadata = {"evidence": finding.evidence}
            if finding.prompt_reference:
                metadata["promptReference"] = finding.prompt_reference
                metadata["overallScore"] = result.consistency_score
            flags.append(SessionFlag(
                session_id=session_id,
                type=finding.category,
                severity=finding.severity,
                source=FlagSource.ANALYSIS,
                status=FlagStatus.PENDING,
                details=finding.summary,
                flag_metadata=metadata,
            ))

        if not flags:
            flags.append(SessionFlag(
                session_id=session_id,
                type=FlagType.CLEAN_AUDIT,
                severity=FlagSeverity.INFO,
                source=FlagSource.ANALYSIS,
                status=FlagStatus.PENDING,
                details="Post-session analysis completed, no issues found.",
                flag_metadata={
                    "overallConsistencyScore": result.consistency_score,
                    "consistencySummary": result.summary,
                },
            ))
        return flags

    async def analyze(self, db: AsyncSession, session_id: str) -> AnalysisOutcome:
        session = await self.lifecycle.get_session(db, session_id)
        attempt = session.current_attempt
        scenario_id = session.scenario_id

        if await self.count_analysis_flags(db, session_id) > 0:
            logger.info(f"Session {session_id} already analyzed, skipping")
            return AnalysisOutcome(analyzed=False, skipped=ALREADY_ANALYZED)

        turns = await self.store.list_turns(db, session_id, attempt)
        if len(turns) < self.min_turns:
            logger.info(f"Session {session_id} has {len(turns)} turns, too short to analyze")
            return AnalysisOutcome(analyzed=False, skipped=TOO_SHORT)

        if not await self.claim(db, session_id):
            logger.info(f"Session {session_id} is already being analyzed, skipping")
            return AnalysisOutcome(analyzed=False, skipped=ALREADY_ANALYZED)

        try:
            scenario = await load_scenario_context(db, scenario_id)
            result = await self.inference.classify_transcript(turns, scenario)
            flags = self.build_flags(session_id, result)
            db.add_all(flags)
            await db.commit()
        except SQLAlchemyError as e:
            await self.release(db, session_id)
            logger.error(f"Error storing analysis flags for session {session_id}: {str(e)}")
            raise StorageUnavailableError(f"Analysis flags for session {session_id} could not be stored") from e
        except BaseException:
            # Includes cancellation by the runner's deadline
            await self.release(db, session_id)
            raise

        logger.info(f"Analyzed session {session_id}: {len(flags)} flags created")
        return AnalysisOutcome(analyzed=True, flags_created=len(flags))
