"""
Client-side transcript writer.

Runs in the trainee's process. On disconnect or an explicit finish it
flushes its buffer, then asks for the evaluation and polls while the
server answers 425 (transcript still arriving). Polling is bounded and
stops on any other status. Cancelling ``finish()`` stops the loop.
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


class EvaluationUnavailableError(Exception):
    """The evaluation was still not ready after every polling attempt."""

    def __init__(self, session_id: str, attempts: int, last_error: Optional[PipelineApiError] = None):
        self.session_id = session_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Evaluation for session {session_id} not ready after {attempts} attempts")


class ClientTranscriptWriter(BaseTranscriptWriter):
    name = "Client writer"

    def __init__(
        self,
        subscription: Subscription,
        api: PipelineApiClient,
        session_id: str,
        attempt_number: Optional[int] = None,
        poll_attempts: int = config.EVALUATION_POLL_ATTEMPTS,
        poll_delay: float = config.EVALUATION_POLL_DELAY_SECONDS,
        backoff: float = 1.0,
        flush_timeout: float = config.PERSIST_TIMEOUT_SECONDS,
    ):
        super().__init__(subscription, api, session_id, attempt_number)
        self.poll_attempts = poll_attempts
        self.poll_delay = poll_delay
        self.backoff = backoff
        self.flush_timeout = flush_timeout

    async def run(self) -> Dict[str, Any]:
        """Consume until disconnect, then finish."""
        await self.consume()
        return await self.finish()

    async def finish(self) -> Dict[str, Any]:
        """Stop listening, flush, and return the evaluation response body."""
        self.subscription.close()
        await self.flush()
        return await self.request_evaluation()

    async def flush(self) -> Optional[Dict[str, Any]]:
        """Single flush attempt. A failure is logged; the agent writer may still land the transcript."""
        turns = self.buffer.snapshot()
        if not turns:
            logger.info(f"Client writer for session {self.session_id} has no turns to persist")
            return None

        try:
            result = await asyncio.wait_for(
                self.api.replace_transcript(self.session_id, turns, self.attempt_number),
                timeout=self.flush_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Client flush for session {self.session_id} timed out after {self.flush_timeout}s")
            return None
        except (PipelineApiError, httpx.HTTPError) as e:
            logger.warning(f"Client flush for session {self.session_id} failed: {e}")
            return None

        logger.info(
            f"Client flushed {len(turns)} turns for session {self.session_id}: "
            f"accepted={result.get('accepted')} stored={result.get('storedCount')}"
        )
        return result

    async def request_evaluation(self) -> Dict[str, Any]:
        last_error = None
        for attempt in range(1, self.poll_attempts + 1):
            try:
                return await self.api.request_evaluation(self.session_id)
            except PipelineApiError as e:
                if not e.too_early:
                    raise
                last_error = e
                logger.info(
                    f"Evaluation for session {self.session_id} not ready ({attempt}/{self.poll_attempts})"
                )

            if attempt < self.poll_attempts:
                await asyncio.sleep(self.poll_delay * (self.backoff ** (attempt - 1)))

        raise EvaluationUnavailableError(self.session_id, self.poll_attempts, last_error)
