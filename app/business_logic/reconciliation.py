"""
Reconciliation gate.

Both capture writers (the server-side agent and the end-user client)
flush their full view of an attempt through ``replace_turns``. Neither
waits for the other. The gate keeps whichever view is more complete,
approximated by turn count:

1. Reject oversized or malformed payloads before touching storage.
2. Take the per-session write lock, then read the stored turn count.
3. If the incoming set is shorter, keep the stored set (a normal outcome,
   not an error).
4. Otherwise delete the attempt's turns and insert the incoming set in the
   same transaction.

Turn count is a heuristic. Two writers that each missed a different
message produce equally long, divergent views; the later flush wins and
the gate cannot tell.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app import config
from app.business_logic.transcript_store import TranscriptStore
from app.errors import (
    PipelineError, SessionNotFoundError, MalformedTranscriptError,
    AttemptMismatchError, PayloadTooLargeError, StorageUnavailableError,
)

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class ReplaceOutcome:
    """Result of one ``replace_turns`` call."""
    written: int
    accepted: bool
    stored_count: int
    attempt_number: int
    gaps: List[int] = field(default_factory=list)
    gap_count: int = 0


def find_gaps(turn_orders: Sequence[int], limit: Optional[int] = None) -> Tuple[List[int], int]:
    """Positions missing between 0 and the highest turn order.

    Returns the first ``limit`` missing positions and the total count. Walks
    the sorted payload orders, never the full position range.
    """
    gaps: List[int] = []
    total = 0
    expected = 0
    for order in sorted(set(turn_orders)):
        missing = order - expected
        if missing > 0:
            total += missing
            room = missing if limit is None else max(0, min(missing, limit - len(gaps)))
            gaps.extend(range(expected, expected + room))
        expected = order + 1
    return gaps, total


class ReconciliationGate:
    """Idempotent, longer-wins transcript replace."""

    def __init__(
        self,
        store: Optional[TranscriptStore] = None,
        max_turns: int = config.MAX_TURNS,
        max_turn_chars: int = config.MAX_TURN_CHARS,
        max_reported_gaps: int = config.MAX_REPORTED_GAPS,
    ):
        self.store = store or TranscriptStore()
        self.max_turns = max_turns
        self.max_turn_chars = max_turn_chars
        self.max_reported_gaps = max_reported_gaps

    def validate(self, turns: Sequence) -> None:
        """Check payload bounds and slot uniqueness. Raises, never writes."""
        if not turns:
            raise MalformedTranscriptError("Transcript must contain at least one turn")

        if len(turns) > self.max_turns:
            raise PayloadTooLargeError(
                f"Transcript has {len(turns)} turns; the limit is {self.max_turns}"
            )

        for turn in turns:
            if len(turn.content) > self.max_turn_chars:
                raise PayloadTooLargeError(
                    f"Turn {turn.turn_order} has {len(turn.content)} characters; "
                    f"the limit is {self.max_turn_chars}"
                )

        seen = set()
        for turn in turns:
            if turn.turn_order in seen:
                raise MalformedTranscriptError(f"Duplicate turn order {turn.turn_order}")
            seen.add(turn.turn_order)

    async def replace_turns(
        self,
        db: AsyncSession,
        session_id: str,
        attempt_number: Optional[int],
        turns: Sequence,
    ) -> ReplaceOutcome:
        """Replace the attempt's turn set unless the stored one is longer.

        ``attempt_number`` defaults to the session's current attempt.
        """
        self.validate(turns)

        try:
            current_attempt = await self.store.lock_for_write(db, session_id)
            if current_attempt is None:
                raise SessionNotFoundError(f"Session {session_id} not found")

            attempt = attempt_number or current_attempt
            if attempt > current_attempt:
                raise AttemptMismatchError(
                    f"Session {session_id} has no attempt {attempt} (current is {current_attempt})"
                )

            stored_count = await self.store.count_turns(db, session_id, attempt)
            if len(turns) < stored_count:
                await db.rollback()
                logger.info(
                    f"Ignored shorter transcript for session {session_id} attempt {attempt}: "
                    f"{len(turns)} incoming < {stored_count} stored"
                )
                return ReplaceOutcome(
                    written=0,
                    accepted=False,
                    stored_count=stored_count,
                    attempt_number=attempt,
                )

            written = await self.store.replace_all(db, session_id, attempt, turns)
            await db.commit()

        except PipelineError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            raise MalformedTranscriptError(f"Transcript violates turn constraints: {e.orig}") from e
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Transcript replace failed for session {session_id}: {str(e)}")
            raise StorageUnavailableError("Transcript could not be stored, retry later") from e

        gaps, gap_count = find_gaps([turn.turn_order for turn in turns], limit=self.max_reported_gaps)
        if gap_count:
            suffix = "" if gap_count == len(gaps) else f" (first {len(gaps)} of {gap_count})"
            logger.warning(
                f"Transcript for session {session_id} attempt {attempt} is missing turn positions {gaps}{suffix}"
            )

        logger.info(
            f"Stored {written} turns for session {session_id} attempt {attempt} "
            f"(replaced {stored_count})"
        )
        return ReplaceOutcome(
            written=written,
            accepted=True,
            stored_count=written,
            attempt_number=attempt,
            gaps=gaps,
            gap_count=gap_count,
        )
