"""
Transcript store.

Storage primitives for transcript turns. Nothing here commits: the
reconciliation gate decides what to write and owns the transaction.
"""

from typing import List, Optional, Sequence

from sqlalchemy import select, update, delete, insert, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.session import Session
from app.models.transcript_turn import TranscriptTurn


class TranscriptStore:
    """Durable record of conversation turns per session and attempt."""

    async def count_turns(self, db: AsyncSession, session_id: str, attempt_number: int) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(TranscriptTurn)
            .where(
                TranscriptTurn.session_id == session_id,
                TranscriptTurn.attempt_number == attempt_number,
            )
        )
        return result.scalar() or 0

    async def list_turns(self, db: AsyncSession, session_id: str, attempt_number: int) -> List[TranscriptTurn]:
        """Turns for one attempt, ordered by turn order."""
        result = await db.execute(
            select(TranscriptTurn)
            .where(
                TranscriptTurn.session_id == session_id,
                TranscriptTurn.attempt_number == attempt_number,
            )
            .order_by(TranscriptTurn.turn_order)
        )
        return list(result.scalars().all())

    async def lock_for_write(self, db: AsyncSession, session_id: str) -> Optional[int]:
        """Take the per-session transcript write lock.

        Bumping ``transcript_revision`` makes this transaction the session
        row's writer (a row lock on PostgreSQL, the database write lock on
        SQLite), so a concurrent replace blocks here until this one commits
        or rolls back. Returns the session's current attempt, or None if the
        session does not exist.
        """
        result = await db.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(transcript_revision=Session.transcript_revision + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        attempt_result = await db.execute(
            select(Session.current_attempt).where(Session.id == session_id)
        )
        return attempt_result.scalar_one()

    async def replace_all(
        self,
        db: AsyncSession,
        session_id: str,
        attempt_number: int,
        turns: Sequence,
    ) -> int:
        """Delete every turn of the attempt, then bulk-insert ``turns``."""
        await db.execute(
            delete(TranscriptTurn).where(
                TranscriptTurn.session_id == session_id,
                TranscriptTurn.attempt_number == attempt_number,
            )
        )
        if not turns:
            return 0

        await db.execute(
            insert(TranscriptTurn),
            [
                {
                    "session_id": session_id,
                    "attempt_number": attempt_number,
                    "turn_order": turn.turn_order,
                    "role": turn.role,
                    "content": turn.content,
                }
                for turn in turns
            ],
        )
        return len(turns)
