"""
Turn events carried on the live channel.

Data messages on the ``transcript`` topic are UTF-8 JSON objects
``{"role", "content", "turnOrder"}``.
"""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from app.schemas.transcript import TurnIn

# Set up logging
logger = logging.getLogger(__name__)

TRANSCRIPT_TOPIC = "transcript"


class TurnEvent(TurnIn):
    """One turn as published on the live channel."""


def encode_turn_event(event: TurnEvent) -> bytes:
    return event.model_dump_json(by_alias=True).encode("utf-8")


def decode_turn_event(data: Union[bytes, str]) -> Optional[TurnEvent]:
    """Decode a data message, or return None if it is not a valid turn."""
    try:
        return TurnEvent.model_validate_json(data)
    except ValidationError as e:
        logger.warning(f"Dropping undecodable transcript message: {e.error_count()} errors")
        return None
