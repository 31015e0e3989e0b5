"""
Handles frames received on the Twilio Media Streams WebSocket.

Each handler receives the parsed frame and the call's bridge. A frame that
fails validation is logged and dropped; it never ends the call.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from call_bridge.bot.twilio_realtime_bridge import TwilioRealtimeBridge
from call_bridge.config.constants import LOGGER_NAME
from call_bridge.models.twilio_schemas import (
    ConnectedMessage,
    DTMFMessage,
    MarkMessage,
    MediaMessage,
    StartMessage,
    StopMessage,
)

logger = logging.getLogger(LOGGER_NAME)


async def handle_connected(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    """Handle the 'connected' frame Twilio sends before 'start'."""
    try:
        connected = ConnectedMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid connected frame: {e}")
        return
    logger.info(f"Twilio connected (protocol: {connected.protocol}, version: {connected.version})")


async def handle_start(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    """
    Handle the 'start' frame.

    Captures the stream SID and opens the call's OpenAI session. A second start
    frame for the same socket is ignored by the bridge.
    """
    try:
        start = StartMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid start frame: {e}")
        return

    await bridge.start_call(
        start.start.streamSid,
        call_sid=start.start.callSid,
        account_sid=start.start.accountSid,
    )


async def handle_media(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    """Handle a 'media' frame by forwarding the caller audio to OpenAI."""
    try:
        media = MediaMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid media frame: {e}")
        return

    await bridge.forward_caller_audio(media.media.payload)


async def handle_stop(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    """Handle the 'stop' frame: the call is over, close both sockets."""
    try:
        StopMessage(**message)
    except ValidationError as e:
        # A malformed stop still means the stream ended
        logger.warning(f"Malformed stop frame: {e}")

    logger.info(f"Twilio stream stopped: {bridge.session.stream_sid}")
    await bridge.close()


async def handle_mark(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    """Marks are not sent by the bridge; acknowledge and ignore."""
    try:
        mark = MarkMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid mark frame: {e}")
        return
    logger.debug(f"Ignoring mark: {mark.mark}")


async def handle_dtmf(message: Dict[str, Any], bridge: TwilioRealtimeBridge) -> None:
    try:
        dtmf = DTMFMessage(**message)
    except ValidationError as e:
        logger.error(f"Invalid dtmf frame: {e}")
        return
    logger.info(f"DTMF received: {(dtmf.dtmf or {}).get('digit')}")
