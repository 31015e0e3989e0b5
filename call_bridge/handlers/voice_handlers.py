"""
Builds the TwiML handoff returned to Twilio's voice webhook.

The document connects the call to the bridge's media stream socket and carries
the session prompt and greeting as query parameters on the stream URL, where
the media stream endpoint reads them back when Twilio connects.
"""

import logging
from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import Request
from fastapi.responses import PlainTextResponse, Response
from twilio.twiml.voice_response import VoiceResponse

from call_bridge.config.constants import (
    LOGGER_NAME,
    MEDIA_STREAM_PATH,
    PARAM_GREETING,
    PARAM_SYSTEM_PROMPT,
)
from call_bridge.config.settings import load_settings

logger = logging.getLogger(LOGGER_NAME)

TWIML_MEDIA_TYPE = "text/xml"


def build_stream_url(
    host: str, system_prompt: str = "", greeting: str = "", scheme: str = "wss"
) -> str:
    """Build the media stream URL with the prompt and greeting re-encoded."""
    query = urlencode(
        {PARAM_SYSTEM_PROMPT: system_prompt, PARAM_GREETING: greeting}, quote_via=quote
    )
    return f"{scheme}://{host}{MEDIA_STREAM_PATH}?{query}"


def build_stream_twiml(
    host: str, system_prompt: str = "", greeting: str = "", scheme: str = "wss"
) -> str:
    """Render the TwiML document pointing Twilio at the media stream socket."""
    if not host:
        raise ValueError("A host is required to build the media stream URL")
    response = VoiceResponse()
    connect = response.connect()
    connect.stream(url=build_stream_url(host, system_prompt, greeting, scheme))
    return str(response)


async def handle_voice_webhook(
    request: Request,
    system_prompt: Optional[str] = None,
    greeting: Optional[str] = None,
) -> Response:
    """
    Answer Twilio's voice webhook with a TwiML <Connect><Stream> document.

    Args:
        request: The incoming webhook request (used for its Host header)
        system_prompt: Instructions for the AI session, empty for the default
        greeting: Opening line the AI speaks first, empty for none

    Returns:
        The TwiML response, or a generic 500 if it could not be built
    """
    try:
        settings = load_settings()
        host = settings.public_host or request.headers.get("host", "")
        twiml = build_stream_twiml(host, system_prompt or "", greeting or "")
    except Exception as e:
        logger.error(f"Failed to build TwiML response: {e}", exc_info=True)
        return PlainTextResponse("Internal Server Error", status_code=500)

    logger.info(f"Voice webhook called, media stream host: {host}")
    return Response(content=twiml, media_type=TWIML_MEDIA_TYPE)
