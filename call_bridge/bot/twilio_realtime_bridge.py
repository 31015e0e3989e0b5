"""
Bridge module for connecting a Twilio Media Stream with the OpenAI Realtime API.

One TwilioRealtimeBridge exists per accepted telephony socket. It owns the
call's CallSession and its RealtimeSessionClient, so both sides of a call only
ever reach each other through this object and never through a shared table.
"""

import collections
import logging
from typing import Deque, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from call_bridge.bot.realtime_api import RealtimeSessionClient
from call_bridge.config.constants import LOGGER_NAME
from call_bridge.config.settings import Settings
from call_bridge.models.call_session import CallSession, CallState
from call_bridge.models.twilio_schemas import MediaPayload, OutgoingMediaMessage

logger = logging.getLogger(LOGGER_NAME)


class TwilioRealtimeBridge:
    """
    Bridge between one Twilio media stream socket and one OpenAI Realtime session.

    This class handles:
    - Opening the Realtime session exactly once, when the stream starts
    - Forwarding caller audio once the session is READY
    - Forwarding AI audio deltas back into the call
    - Tearing down both sockets when either side ends
    """

    def __init__(self, twilio_websocket: WebSocket, session: CallSession, settings: Settings):
        self.twilio_websocket = twilio_websocket
        self.session = session
        self.settings = settings
        self.realtime_client: Optional[RealtimeSessionClient] = None
        self._closed = False
        self._flushing = False
        self._early_audio: Deque[str] = collections.deque(
            maxlen=settings.early_audio_buffer_frames or None
        )

    @property
    def state(self) -> CallState:
        if self._closed:
            return CallState.CLOSED
        return self.session.call_state

    @property
    def closed(self) -> bool:
        return self._closed

    async def start_call(
        self,
        stream_sid: str,
        call_sid: Optional[str] = None,
        account_sid: Optional[str] = None,
    ) -> bool:
        """
        Handle the stream start: record the identifiers and open the AI session.

        Returns:
            bool: False if the call was already started or the AI connection failed
        """
        if self._closed:
            return False
        if not self.session.mark_started(stream_sid, call_sid, account_sid):
            logger.warning(
                f"Duplicate start frame for stream {self.session.stream_sid}, ignoring"
            )
            return False

        logger.info(f"Twilio stream started: {stream_sid} (call: {call_sid})")

        client = RealtimeSessionClient(
            self.settings.openai_api_key,
            self.session,
            model=self.settings.realtime_model,
            voice=self.settings.voice,
            transcription_model=self.settings.transcription_model,
            greeting_role=self.settings.greeting_role,
        )
        client.set_handlers(
            audio_handler=self.forward_ai_audio,
            ready_handler=self._flush_early_audio,
            lost_handler=self.close,
        )
        self.realtime_client = client

        if not await client.connect():
            logger.error(f"Could not open OpenAI session for stream {stream_sid}, ending call")
            await self.close()
            return False
        return True

    async def forward_caller_audio(self, payload: str) -> bool:
        """
        Forward one caller media payload to the AI session.

        Frames that arrive before the session is READY are dropped, or kept in
        a bounded buffer when early audio buffering is enabled. Until that
        buffer has drained, live frames queue behind it to keep arrival order.
        """
        self.session.media_frames_received += 1
        if self._closed:
            return False

        if self.realtime_client is None or not self.session.is_ready:
            if self.settings.early_audio_buffer_frames > 0 and self.session.started:
                self._early_audio.append(payload)
            else:
                self.session.frames_dropped += 1
            return False

        if self._early_audio or self._flushing:
            # Queue behind buffered frames that have not gone out yet
            self._early_audio.append(payload)
            return True

        return await self.realtime_client.send_audio(payload)

    async def _flush_early_audio(self) -> None:
        if not self._early_audio:
            return
        logger.info(
            f"Flushing {len(self._early_audio)} buffered caller frames for stream "
            f"{self.session.stream_sid}"
        )
        self._flushing = True
        try:
            while self._early_audio and self.realtime_client is not None:
                await self.realtime_client.send_audio(self._early_audio.popleft())
        finally:
            self._flushing = False

    async def forward_ai_audio(self, payload: str) -> bool:
        """Send one AI audio delta into the call as a Twilio media frame."""
        if self._closed or not self.session.stream_sid:
            logger.debug("Skipping audio delta - call closed or no stream SID")
            return False

        message = OutgoingMediaMessage(
            streamSid=self.session.stream_sid, media=MediaPayload(payload=payload)
        )
        if await self._send_to_twilio(message.model_dump_json()):
            self.session.audio_deltas_forwarded += 1
            return True
        return False

    def _is_twilio_closed(self) -> bool:
        return (
            self.twilio_websocket.client_state == WebSocketState.DISCONNECTED
            or self.twilio_websocket.application_state == WebSocketState.DISCONNECTED
        )

    async def _send_to_twilio(self, text: str) -> bool:
        if self._is_twilio_closed():
            return False
        try:
            await self.twilio_websocket.send_text(text)
            return True
        except Exception as e:
            logger.debug(f"Dropping frame for closed Twilio socket: {e}")
            return False

    async def close(self) -> None:
        """Close both sockets of the call; safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        if self.realtime_client is not None:
            try:
                await self.realtime_client.close()
            except Exception as e:
                logger.error(f"Error closing OpenAI connection: {e}")
        self.session.close()

        if not self._is_twilio_closed():
            try:
                await self.twilio_websocket.close()
            except Exception as e:
                logger.debug(f"Twilio socket already closed: {e}")

        logger.info(
            f"Call ended for stream {self.session.stream_sid}: "
            f"{self.session.media_frames_received} caller frames received, "
            f"{self.session.audio_chunks_sent} sent to OpenAI, "
            f"{self.session.frames_dropped} dropped, "
            f"{self.session.audio_deltas_forwarded} AI frames played"
        )
