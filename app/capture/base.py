"""
Base class for the capture writers.
"""

import logging
from typing import Optional

from app.capture.api_client import PipelineApiClient
from app.capture.buffer import TranscriptBuffer
from app.capture.channel import ChannelMessage, Subscription
from app.capture.events import TRANSCRIPT_TOPIC, decode_turn_event

# Set up logging
logger = logging.getLogger(__name__)


class BaseTranscriptWriter:
    """Buffers turn events from one subscription for later flushing."""

    name = "writer"

    def __init__(
        self,
        subscription: Subscription,
        api: PipelineApiClient,
        session_id: str,
        attempt_number: Optional[int] = None,
    ):
        self.subscription = subscription
        self.api = api
        self.session_id = session_id
        self.attempt_number = attempt_number
        self.buffer = TranscriptBuffer()

    def observe(self, message: ChannelMessage) -> None:
        if message.topic != TRANSCRIPT_TOPIC:
            return
        event = decode_turn_event(message.data)
        if event is not None:
            self.buffer.add(event)

    async def consume(self) -> None:
        """Read the subscription until it closes."""
        async for message in self.subscription:
            self.observe(message)
        logger.debug(f"{self.name} for session {self.session_id} stopped with {len(self.buffer)} turns buffered")
