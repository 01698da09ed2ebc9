"""
Agent-side transcript writer.

Lives for the whole session next to the conversational agent and flushes
its full buffer once on teardown. The flush is best effort: a bounded
number of attempts, each with a timeout, and failures are logged rather
than raised so teardown always finishes.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from app import config
from app.capture.api_client import PipelineApiClient, PipelineApiError
from app.capture.base import BaseTranscriptWriter
from app.capture.channel import Subscription

# Set up logging
logger = logging.getLogger(__name__)


class AgentTranscriptWriter(BaseTranscriptWriter):
    name = "Agent writer"

    def __init__(
        self,
        subscription: Subscription,
        api: PipelineApiClient,
        session_id: str,
        attempt_number: Optional[int] = None,
        flush_attempts: int = config.AGENT_FLUSH_ATTEMPTS,
        flush_timeout: float = config.PERSIST_TIMEOUT_SECONDS,
    ):
        super().__init__(subscription, api, session_id, attempt_number)
        self.flush_attempts = flush_attempts
        self.flush_timeout = flush_timeout

    async def run(self) -> Optional[Dict[str, Any]]:
        """Consume until the session ends, then flush.

        Cancelling the task counts as teardown; the flush still runs.
        """
        try:
            await self.consume()
        except asyncio.CancelledError:
            logger.info(f"Agent writer for session {self.session_id} cancelled, flushing")
            self.subscription.close()
            await self.flush()
            raise
        return await self.flush()

    async def flush(self) -> Optional[Dict[str, Any]]:
        turns = self.buffer.snapshot()
        if not turns:
            logger.info(f"Agent writer for session {self.session_id} has no turns to persist")
            return None

        for attempt in range(1, self.flush_attempts + 1):
            try:
                result = await asyncio.wait_for(
                    self.api.replace_transcript(self.session_id, turns, self.attempt_number),
                    timeout=self.flush_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Agent flush for session {self.session_id} timed out after {self.flush_timeout}s "
                    f"({attempt}/{self.flush_attempts})"
                )
                continue
            except PipelineApiError as e:
                if not e.retryable:
                    logger.error(f"Agent flush for session {self.session_id} rejected: {e}")
                    return None
                logger.warning(f"Agent flush for session {self.session_id} failed ({attempt}/{self.flush_attempts}): {e}")
                continue
            except httpx.HTTPError as e:
                logger.warning(f"Agent flush for session {self.session_id} failed ({attempt}/{self.flush_attempts}): {e}")
                continue

            logger.info(
                f"Agent flushed {len(turns)} turns for session {self.session_id}: "
                f"accepted={result.get('accepted')} stored={result.get('storedCount')}"
            )
            return result

        logger.error(f"Agent writer gave up persisting {len(turns)} turns for session {self.session_id}")
        return None
