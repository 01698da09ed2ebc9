"""
Capture relay for live sessions.

Two uncoordinated writers (one beside the conversational agent, one in the
trainee's client) observe the same live channel, buffer turn events and
flush their full view to the transcript endpoint. Either may flush first;
the reconciliation gate keeps the longer view.
"""

from app.capture.events import TRANSCRIPT_TOPIC, TurnEvent, encode_turn_event, decode_turn_event
from app.capture.buffer import TranscriptBuffer
from app.capture.channel import ChannelMessage, InMemoryChannel, Subscription
from app.capture.api_client import PipelineApiClient, PipelineApiError
from app.capture.agent_writer import AgentTranscriptWriter
from app.capture.client_writer import ClientTranscriptWriter, EvaluationUnavailableError

__all__ = [
    "TRANSCRIPT_TOPIC", "TurnEvent", "encode_turn_event", "decode_turn_event",
    "TranscriptBuffer",
    "ChannelMessage", "InMemoryChannel", "Subscription",
    "PipelineApiClient", "PipelineApiError",
    "AgentTranscriptWriter",
    "ClientTranscriptWriter", "EvaluationUnavailableError",
]
