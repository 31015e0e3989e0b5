"""
WebSocket connection manager for Twilio Media Streams.

This module implements the server side of the media stream socket:
- Accept the socket and read the session parameters from its URL
- Create one TwilioRealtimeBridge (and CallSession) for the call
- Route each inbound frame to its handler by event name
- Tear the call down when the stream stops or either socket closes

The manager keeps a set of live bridges only to report how many calls are in
progress; frames are always routed through the bridge of the socket they
arrived on.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Set

from fastapi import WebSocket
from fastapi.websockets import WebSocketDisconnect
from pydantic import ValidationError

from call_bridge.bot.twilio_realtime_bridge import TwilioRealtimeBridge
from call_bridge.config.constants import (
    LOGGER_NAME,
    PARAM_GREETING,
    PARAM_SYSTEM_PROMPT,
    WS_CLOSE_INTERNAL_ERROR,
)
from call_bridge.config.settings import load_settings
from call_bridge.handlers.stream_handlers import (
    handle_connected,
    handle_dtmf,
    handle_mark,
    handle_media,
    handle_start,
    handle_stop,
)
from call_bridge.models.call_session import CallSession
from call_bridge.models.twilio_schemas import TwilioEventType

logger = logging.getLogger(LOGGER_NAME)

# Type hint for handler functions
HandlerFunc = Callable[[Dict[str, Any], TwilioRealtimeBridge], Awaitable[None]]


class WebSocketManager:
    """Accepts Twilio media stream sockets and routes their frames to handlers.

    Each frame is routed to a handler function based on its "event" field.
    """

    def __init__(self):
        self.active_bridges: Set[TwilioRealtimeBridge] = set()

        self.handlers: Dict[str, HandlerFunc] = {
            TwilioEventType.CONNECTED: handle_connected,
            TwilioEventType.START: handle_start,
            TwilioEventType.MEDIA: handle_media,
            TwilioEventType.STOP: handle_stop,
            TwilioEventType.MARK: handle_mark,
            TwilioEventType.DTMF: handle_dtmf,
        }

    @property
    def active_calls(self) -> int:
        return len(self.active_bridges)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media stream socket throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The connection stays open until Twilio sends a stop frame, either
        socket closes, or the OpenAI session cannot be opened.
        """
        await websocket.accept()
        logger.info("=== New Twilio media stream connection ===")

        try:
            settings = load_settings()
        except ValidationError as e:
            logger.error(f"Invalid configuration, closing media stream: {e}")
            await websocket.close(code=WS_CLOSE_INTERNAL_ERROR)
            return
        if not settings.api_key_configured:
            logger.error("OPENAI_API_KEY is not configured, closing media stream")
            await websocket.close(code=WS_CLOSE_INTERNAL_ERROR)
            return

        system_prompt = websocket.query_params.get(PARAM_SYSTEM_PROMPT, "")
        greeting = websocket.query_params.get(PARAM_GREETING, "")
        logger.info(f"System prompt length: {len(system_prompt)}")
        logger.info(f"Greeting: {greeting}")

        session = CallSession(instructions=system_prompt, greeting=greeting)
        bridge = TwilioRealtimeBridge(websocket, session, settings)
        self.active_bridges.add(bridge)

        try:
            await self._receive_frames(websocket, bridge)
        except WebSocketDisconnect:
            logger.info("Twilio connection closed")
        except Exception as e:
            logger.error(f"Error in media stream connection: {e}", exc_info=True)
        finally:
            self.active_bridges.discard(bridge)
            await bridge.close()

    async def _receive_frames(self, websocket: WebSocket, bridge: TwilioRealtimeBridge) -> None:
        while not bridge.closed:
            try:
                data = await websocket.receive_text()
            except RuntimeError as e:
                # Raised once the socket was closed from our side (AI drop)
                logger.debug(f"Media stream no longer readable: {e}")
                break

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Dropping malformed Twilio frame: {data[:100]}")
                continue
            if not isinstance(message, dict):
                logger.warning(f"Dropping non-object Twilio frame: {data[:100]}")
                continue

            event = message.get("event")
            handler = self.handlers.get(event) if isinstance(event, str) else None
            if handler is None:
                logger.warning(f"Unhandled Twilio event: {event}")
                continue

            if event != TwilioEventType.MEDIA:
                logger.info(f"Received Twilio {event}")

            await handler(message, bridge)
