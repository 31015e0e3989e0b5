"""
Client for one OpenAI Realtime API session per phone call.

The client owns the outbound WebSocket of a single call and drives the session
handshake on the call's CallSession:

    CONNECTING -> AWAITING_CREATED   socket opened
    AWAITING_CREATED -> AWAITING_UPDATED   session.created seen, session.update sent
    AWAITING_UPDATED -> READY   session.updated seen, greeting (if any) sent
    any -> CLOSED   socket closed/failed or close() called

Caller audio is only appended to the input buffer once the session is READY.
Audio deltas coming back are handed to the bridge through a callback.
"""

import asyncio
import json
import logging
import traceback
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from call_bridge.config.constants import (
    AUDIO_FORMAT_G711_ULAW,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_TRANSCRIPTION_MODEL,
    DEFAULT_VOICE,
    LOGGER_NAME,
    REALTIME_API_URL,
    REALTIME_BETA_HEADER,
    TURN_DETECTION_PREFIX_PADDING_MS,
    TURN_DETECTION_SILENCE_DURATION_MS,
    TURN_DETECTION_THRESHOLD,
)
from call_bridge.models.call_session import CallSession, NegotiationState
from call_bridge.models.openai_schemas import (
    AUDIO_DELTA_EVENT_TYPES,
    TRANSCRIPT_EVENT_TYPES,
    ConversationItemContentParam,
    ConversationItemCreateEvent,
    ConversationItemParam,
    ErrorEvent,
    InputAudioBufferAppendEvent,
    InputAudioTranscription,
    MessageRole,
    ResponseCreateEvent,
    ServerEventType,
    SessionConfig,
    SessionUpdateEvent,
    TurnDetection,
)

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds, socket establishment only

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5

AudioDeltaHandler = Callable[[str], Awaitable[None]]
EventHandler = Callable[[], Awaitable[None]]


class RealtimeSessionClient:
    """
    Client to connect one call to the OpenAI Realtime API over WebSocket.

    Sends are fire-and-forget: every send returns a bool and never raises,
    and a send attempted while the socket is not open is a no-op.
    """

    def __init__(
        self,
        api_key: str,
        session: CallSession,
        model: str = DEFAULT_REALTIME_MODEL,
        voice: str = DEFAULT_VOICE,
        transcription_model: Optional[str] = DEFAULT_TRANSCRIPTION_MODEL,
        greeting_role: str = MessageRole.ASSISTANT.value,
    ):
        self.api_key = api_key
        self.session = session
        self.model = model
        self.voice = voice
        self.transcription_model = transcription_model
        self.greeting_role = MessageRole(greeting_role)
        self.ws = None
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False
        self._audio_delta_handler: Optional[AudioDeltaHandler] = None
        self._ready_handler: Optional[EventHandler] = None
        self._connection_lost_handler: Optional[EventHandler] = None
        logger.info(f"RealtimeSessionClient initialized with model: {model}")

    def set_handlers(
        self,
        audio_handler: Optional[AudioDeltaHandler] = None,
        ready_handler: Optional[EventHandler] = None,
        lost_handler: Optional[EventHandler] = None,
    ) -> None:
        """
        Register the bridge callbacks.

        Args:
            audio_handler: Called with the base64 payload of every audio delta
            ready_handler: Called once the session reaches READY
            lost_handler: Called once when the socket closes without close()
        """
        self._audio_delta_handler = audio_handler
        self._ready_handler = ready_handler
        self._connection_lost_handler = lost_handler

    @property
    def is_open(self) -> bool:
        return (
            self.ws is not None
            and self._connection_active
            and not self._is_closing
        )

    async def connect(self) -> bool:
        """
        Connect to the OpenAI Realtime WebSocket endpoint.

        Returns:
            bool: True if connection was successful, False otherwise
        """
        if self._is_closing:
            logger.warning("Cannot connect - client is closing")
            return False

        url = f"{REALTIME_API_URL}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": REALTIME_BETA_HEADER,
        }

        try:
            logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
            self.ws = await asyncio.wait_for(
                websockets.connect(
                    url,
                    additional_headers=headers,
                    max_size=WS_MAX_SIZE,
                    ping_interval=WS_PING_INTERVAL,
                    compression=None,
                ),
                timeout=CONNECTION_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Timeout while connecting to OpenAI Realtime API (after {CONNECTION_TIMEOUT}s)"
            )
            self.session.advance(NegotiationState.CLOSED)
            return False
        except Exception as e:
            logger.error(f"Failed to connect to OpenAI Realtime API: {e}")
            logger.debug(f"Connection error details: {traceback.format_exc()}")
            self.session.advance(NegotiationState.CLOSED)
            return False

        if self._is_closing:
            # The call ended while the handshake was in flight
            await self._close_socket()
            return False

        self._connection_active = True
        self.session.advance(NegotiationState.AWAITING_CREATED)
        self._recv_task = asyncio.create_task(self._recv_loop())
        logger.info("Successfully connected to OpenAI Realtime API")
        return True

    async def send_event(self, event: Union[BaseModel, Dict[str, Any]]) -> bool:
        """
        Send one client event.

        Returns:
            bool: True if the event was written to the socket
        """
        if not self.is_open:
            return False

        if isinstance(event, BaseModel):
            message = event.model_dump_json(exclude_none=True)
        else:
            message = json.dumps(event)

        try:
            await self.ws.send(message)
            return True
        except ConnectionClosed as e:
            logger.info(f"OpenAI connection closed while sending: {e}")
            self._connection_active = False
            return False
        except Exception as e:
            logger.error(f"Error sending event to OpenAI: {e}")
            return False

    async def send_audio(self, payload: str) -> bool:
        """
        Append a base64 g711_ulaw chunk to the input audio buffer.

        Returns:
            bool: False if the session is not READY or the socket is not open
        """
        if not self.session.is_ready:
            return False
        sent = await self.send_event(InputAudioBufferAppendEvent(audio=payload))
        if sent:
            self.session.audio_chunks_sent += 1
        return sent

    def build_session_update(self) -> SessionUpdateEvent:
        """Build the session.update event for this call."""
        transcription = None
        if self.transcription_model:
            transcription = InputAudioTranscription(model=self.transcription_model)

        return SessionUpdateEvent(
            session=SessionConfig(
                modalities=["text", "audio"],
                instructions=self.session.instructions or DEFAULT_INSTRUCTIONS,
                voice=self.voice,
                input_audio_format=AUDIO_FORMAT_G711_ULAW,
                output_audio_format=AUDIO_FORMAT_G711_ULAW,
                input_audio_transcription=transcription,
                turn_detection=TurnDetection(
                    threshold=TURN_DETECTION_THRESHOLD,
                    prefix_padding_ms=TURN_DETECTION_PREFIX_PADDING_MS,
                    silence_duration_ms=TURN_DETECTION_SILENCE_DURATION_MS,
                ),
            )
        )

    def build_greeting_item(self, greeting: str) -> ConversationItemCreateEvent:
        """Build the conversation item that carries the scripted greeting."""
        # Assistant items take output-side "text" parts, user/system items "input_text"
        content_type = (
            "text" if self.greeting_role == MessageRole.ASSISTANT else "input_text"
        )
        return ConversationItemCreateEvent(
            item=ConversationItemParam(
                role=self.greeting_role,
                content=[ConversationItemContentParam(type=content_type, text=greeting)],
            )
        )

    async def send_greeting(self) -> None:
        """Make the AI speak first with the call's greeting."""
        greeting = self.session.greeting
        if not greeting:
            return
        logger.info(f"Sending greeting for stream: {self.session.stream_sid}")
        await self.send_event(self.build_greeting_item(greeting))
        await self.send_event(ResponseCreateEvent())

    async def handle_message(self, message: Union[str, bytes]) -> None:
        """
        Parse one physical WebSocket message and dispatch each event in it.

        The service may batch several newline-delimited JSON events into a
        single message. Malformed lines, and events whose handling fails, are
        logged and dropped without affecting the rest of the batch.
        """
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")

        # Events are "\n"-delimited; U+2028 and friends may sit unescaped in strings
        for line in message.split("\n"):
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                logger.warning(f"Received invalid JSON from OpenAI: {line[:100]}...")
                continue
            if not isinstance(event, dict):
                logger.warning(f"Ignoring non-object event from OpenAI: {line[:100]}")
                continue
            try:
                await self.handle_event(event)
            except Exception as e:
                logger.error(f"Error handling OpenAI event {line[:100]}: {e}")
                logger.debug(f"Event handling error details: {traceback.format_exc()}")

    async def handle_event(self, event: Dict[str, Any]) -> None:
        """Dispatch a single parsed server event by its type."""
        event_type = event.get("type")

        if event_type in AUDIO_DELTA_EVENT_TYPES:
            await self._handle_audio_delta(event)
        elif event_type == ServerEventType.SESSION_CREATED:
            await self._handle_session_created()
        elif event_type == ServerEventType.SESSION_UPDATED:
            await self._handle_session_updated()
        elif event_type == ServerEventType.ERROR:
            error = ErrorEvent(error=event.get("error") or {})
            logger.error(f"OpenAI error: {error.error}")
        elif event_type in TRANSCRIPT_EVENT_TYPES:
            speaker = "User" if "input_audio_transcription" in event_type else "AI"
            logger.info(f"{speaker} said: {event.get('transcript', '')}")
        else:
            logger.debug(f"Received message of type: {event_type or 'unknown'}")

    async def _handle_session_created(self) -> None:
        if self.session.negotiation_state != NegotiationState.AWAITING_CREATED:
            logger.warning("Ignoring session.created outside of AWAITING_CREATED")
            return
        logger.info("OpenAI session created")
        self.session.advance(NegotiationState.AWAITING_UPDATED)
        await self.send_event(self.build_session_update())

    async def _handle_session_updated(self) -> None:
        if self.session.negotiation_state != NegotiationState.AWAITING_UPDATED:
            logger.debug("session.updated after negotiation, nothing to do")
            return
        logger.info("OpenAI session configured")
        self.session.advance(NegotiationState.READY)
        await self.send_greeting()
        if self._ready_handler:
            await self._ready_handler()

    async def _handle_audio_delta(self, event: Dict[str, Any]) -> None:
        delta = event.get("delta")
        if not delta:
            return
        if self._audio_delta_handler:
            await self._audio_delta_handler(delta)

    async def _recv_loop(self) -> None:
        """Receive messages until the socket closes, then notify the bridge."""
        try:
            async for message in self.ws:
                if self._is_closing:
                    break
                try:
                    await self.handle_message(message)
                except Exception as e:
                    logger.error(f"Error processing OpenAI message: {e}")
                    logger.debug(f"Processing error details: {traceback.format_exc()}")
        except ConnectionClosedOK:
            logger.info("OpenAI connection closed normally")
        except ConnectionClosed as e:
            logger.warning(f"OpenAI connection closed unexpectedly: {e}")
        except asyncio.CancelledError:
            logger.debug("OpenAI receive loop cancelled")
            raise
        except Exception as e:
            logger.error(f"Error in OpenAI receive loop: {e}")
            logger.debug(f"Receive loop error details: {traceback.format_exc()}")

        self._connection_active = False
        if self._is_closing:
            return

        logger.info("OpenAI connection lost, ending call")
        if self.session.negotiation_state != NegotiationState.CLOSED:
            self.session.advance(NegotiationState.CLOSED)
        if self._connection_lost_handler:
            try:
                await self._connection_lost_handler()
            except Exception as e:
                logger.error(f"Error in connection lost handler: {e}")

    async def _close_socket(self) -> None:
        if self.ws is None:
            return
        try:
            await self.ws.close()
        except Exception as e:
            logger.debug(f"Error closing OpenAI socket: {e}")

    async def close(self) -> None:
        """Close the WebSocket connection and cancel the receive task."""
        if self._is_closing:
            return
        logger.info("Closing OpenAI Realtime client")
        self._is_closing = True
        self._connection_active = False
        if self.session.negotiation_state != NegotiationState.CLOSED:
            self.session.advance(NegotiationState.CLOSED)

        task = self._recv_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Receive task ended with error: {e}")

        await self._close_socket()
