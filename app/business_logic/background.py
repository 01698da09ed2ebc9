"""
Background analysis runner.

The evaluation request schedules analysis without awaiting it. The runner
gives each run its own database session, a deadline, and an error
boundary: every failure is logged with a traceback and none reaches the
request that scheduled it.
"""

import asyncio
import logging
from typing import Optional

from fastapi import BackgroundTasks

from app import config
from app.business_logic.analysis_scanner import AnalysisScanner, AnalysisOutcome

# Set up logging
logger = logging.getLogger(__name__)


class AnalysisRunner:
    """Runs the analysis scanner outside the triggering request."""

    def __init__(
        self,
        scanner: AnalysisScanner,
        session_factory,
        timeout: float = config.INFERENCE_TIMEOUT_SECONDS + 5,
    ):
        self.scanner = scanner
        self.session_factory = session_factory
        self.timeout = timeout

    def schedule(self, background_tasks: BackgroundTasks, session_id: str) -> None:
        """Queue a run to start after the current response is sent."""
        background_tasks.add_task(self.run, session_id)
        logger.debug(f"Queued post-session analysis for session {session_id}")

    async def run(self, session_id: str) -> Optional[AnalysisOutcome]:
        try:
            async with self.session_factory() as db:
                outcome = await asyncio.wait_for(
                    self.scanner.analyze(db, session_id),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            logger.error(f"Post-session analysis for session {session_id} timed out after {self.timeout}s")
            return None
        except Exception:
            logger.exception(f"Post-session analysis failed for session {session_id}")
            return None

        if outcome.skipped:
            logger.info(f"Post-session analysis for session {session_id} skipped: {outcome.skipped}")
        return outcome
