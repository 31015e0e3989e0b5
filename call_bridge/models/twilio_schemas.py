"""
Pydantic models for Twilio Media Streams WebSocket message schemas.

This module defines structured data models for the frames exchanged on the
bidirectional media stream socket, providing type validation and documentation.
Only the fields the bridge relies on are required; everything else Twilio sends
is accepted and ignored.

Reference: https://www.twilio.com/docs/voice/media-streams/websocket-messages
"""

import enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TwilioEventType(str, enum.Enum):
    """Event names used on the Twilio media stream socket."""

    CONNECTED = "connected"
    START = "start"
    MEDIA = "media"
    STOP = "stop"
    MARK = "mark"
    DTMF = "dtmf"


# Base Models
class BaseTwilioMessage(BaseModel):
    """Base model for all Twilio Media Streams messages."""

    model_config = ConfigDict(extra="ignore")

    event: str = Field(..., description="Message event type identifier")


# Messages from Twilio to the bridge
class ConnectedMessage(BaseTwilioMessage):
    """First frame sent by Twilio once the socket is established."""

    event: Literal["connected"]
    protocol: Optional[str] = None
    version: Optional[str] = None


class StartMetadata(BaseModel):
    """Metadata carried in the 'start' frame."""

    model_config = ConfigDict(extra="ignore")

    streamSid: str = Field(..., description="The unique identifier of the Stream")
    accountSid: Optional[str] = None
    callSid: Optional[str] = None
    tracks: List[str] = Field(default_factory=list)
    customParameters: Dict[str, str] = Field(default_factory=dict)
    mediaFormat: Optional[Dict[str, Any]] = None

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Validate that the stream SID is not empty."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class StartMessage(BaseTwilioMessage):
    """Model for the 'start' frame announcing the stream and call identifiers."""

    event: Literal["start"]
    start: StartMetadata


class MediaPayload(BaseModel):
    """Audio chunk wrapper: base64 of 8 kHz mono mu-law samples."""

    model_config = ConfigDict(extra="ignore")

    payload: str = Field(..., description="Base64 encoded mu-law audio")


class MediaMessage(BaseTwilioMessage):
    """Model for an inbound 'media' frame carrying caller audio."""

    event: Literal["media"]
    media: MediaPayload


class StopMessage(BaseTwilioMessage):
    """Model for the 'stop' frame sent when the stream ends."""

    event: Literal["stop"]
    stop: Optional[Dict[str, Any]] = None


class MarkMessage(BaseTwilioMessage):
    """Model for a 'mark' frame acknowledging playback of a named mark."""

    event: Literal["mark"]
    mark: Optional[Dict[str, Any]] = None


class DTMFMessage(BaseTwilioMessage):
    """Model for a 'dtmf' frame sent when the caller presses a key."""

    event: Literal["dtmf"]
    dtmf: Optional[Dict[str, Any]] = None


# Messages from the bridge to Twilio
class OutgoingMediaMessage(BaseModel):
    """Model for a 'media' frame sending AI audio back into the call."""

    event: Literal["media"] = "media"
    streamSid: str = Field(..., description="Stream the audio belongs to")
    media: MediaPayload
