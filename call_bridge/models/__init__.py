"""
Data structures for the call bridge.

Key components:
- twilio_schemas: Pydantic models for Twilio Media Streams frames.
- openai_schemas: Pydantic models for the OpenAI Realtime client events the
  bridge sends and the server event types it reacts to.
- call_session: Per-call state, including the negotiation state machine of
  the call's Realtime session.
"""

from call_bridge.models.call_session import CallSession, CallState, NegotiationState
from call_bridge.models.openai_schemas import (
    ConversationItemCreateEvent,
    InputAudioBufferAppendEvent,
    ResponseCreateEvent,
    ServerEventType,
    SessionUpdateEvent,
)
from call_bridge.models.twilio_schemas import (
    MediaMessage,
    OutgoingMediaMessage,
    StartMessage,
    StopMessage,
    TwilioEventType,
)
