"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the client events the bridge sends
to the Realtime API and the event type names it reacts to.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Role of a participant in a conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ServerEventType(str, Enum):
    """Server event types the bridge reacts to."""
    ERROR = "error"
    SESSION_CREATED = "session.created"
    SESSION_UPDATED = "session.updated"
    RESPONSE_AUDIO_DELTA = "response.audio.delta"
    RESPONSE_OUTPUT_AUDIO_DELTA = "response.output_audio.delta"
    RESPONSE_AUDIO_TRANSCRIPT_DONE = "response.audio_transcript.done"
    RESPONSE_OUTPUT_AUDIO_TRANSCRIPT_DONE = "response.output_audio_transcript.done"
    INPUT_AUDIO_TRANSCRIPTION_COMPLETED = (
        "conversation.item.input_audio_transcription.completed"
    )


# Both spellings of the audio delta event carry the same payload
AUDIO_DELTA_EVENT_TYPES = frozenset(
    {
        ServerEventType.RESPONSE_AUDIO_DELTA.value,
        ServerEventType.RESPONSE_OUTPUT_AUDIO_DELTA.value,
    }
)

TRANSCRIPT_EVENT_TYPES = frozenset(
    {
        ServerEventType.RESPONSE_AUDIO_TRANSCRIPT_DONE.value,
        ServerEventType.RESPONSE_OUTPUT_AUDIO_TRANSCRIPT_DONE.value,
        ServerEventType.INPUT_AUDIO_TRANSCRIPTION_COMPLETED.value,
    }
)


class ClientEvent(BaseModel):
    """Base model for events sent to the server."""
    type: str


class TurnDetection(BaseModel):
    """Server-side voice activity detection settings."""
    type: str = "server_vad"
    threshold: float
    prefix_padding_ms: int
    silence_duration_ms: int


class InputAudioTranscription(BaseModel):
    """Caller transcription settings."""
    model: str


class SessionConfig(BaseModel):
    """Session configuration sent in a session.update event."""
    modalities: List[str] = Field(default_factory=lambda: ["text", "audio"])
    instructions: str
    voice: str
    input_audio_format: str
    output_audio_format: str
    input_audio_transcription: Optional[InputAudioTranscription] = None
    turn_detection: Optional[TurnDetection] = None


class SessionUpdateEvent(ClientEvent):
    """Event to update session configuration."""
    type: str = "session.update"
    session: SessionConfig


class ConversationItemContentParam(BaseModel):
    """Content part of a conversation item."""
    type: str  # "input_text" for user/system items, "text" for assistant items
    text: str


class ConversationItemParam(BaseModel):
    """Conversation item carried in conversation.item.create."""
    type: str = "message"
    role: MessageRole
    content: List[ConversationItemContentParam]


class ConversationItemCreateEvent(ClientEvent):
    """Event to add an item to the conversation."""
    type: str = "conversation.item.create"
    item: ConversationItemParam


class ResponseCreateEvent(ClientEvent):
    """Event asking the model to generate a response."""
    type: str = "response.create"


class InputAudioBufferAppendEvent(ClientEvent):
    """Event to append caller audio to the input buffer."""
    type: str = "input_audio_buffer.append"
    audio: str  # Base64 encoded g711_ulaw audio


class ErrorEvent(BaseModel):
    """Error event from the Realtime API; most errors leave the session open."""
    type: str = "error"
    error: Dict[str, Any] = Field(default_factory=dict)
