"""
Per-writer turn buffer.
"""

import logging
from typing import Dict, List

from app.capture.events import TurnEvent

# Set up logging
logger = logging.getLogger(__name__)


class TranscriptBuffer:
    """Turns observed by one writer, keyed by turn order.

    The channel may redeliver a turn; the last message for a given turn
    order wins.
    """

    def __init__(self):
        self._turns: Dict[int, TurnEvent] = {}

    def add(self, event: TurnEvent) -> None:
        previous = self._turns.get(event.turn_order)
        if previous is not None and previous != event:
            logger.debug(f"Turn {event.turn_order} redelivered with new content, keeping the latest")
        self._turns[event.turn_order] = event

    def snapshot(self) -> List[TurnEvent]:
        """Deduplicated turns in ascending turn order."""
        return [self._turns[order] for order in sorted(self._turns)]

    def __len__(self) -> int:
        return len(self._turns)
