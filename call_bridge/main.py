"""
FastAPI server bridging Twilio phone calls to the OpenAI Realtime API.

This module initializes the FastAPI application that Twilio talks to:
- POST /voice answers the voice webhook with TwiML that connects the call
  to the media stream socket
- WS /media-stream carries the call audio in both directions
- GET / and GET /health report liveness
"""

from pathlib import Path
from typing import Optional

import dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import PlainTextResponse

from call_bridge.config.constants import MEDIA_STREAM_PATH, VOICE_WEBHOOK_PATH
from call_bridge.config.logging_config import configure_logging
from call_bridge.config.settings import load_settings
from call_bridge.handlers.voice_handlers import handle_voice_webhook
from call_bridge.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

app = FastAPI(
    title="Call Bridge",
    description="Bridge between Twilio Media Streams and the OpenAI Realtime API",
    version="1.0.0",
)

websocket_manager = WebSocketManager()


@app.get("/", response_class=PlainTextResponse)
async def root():
    """Liveness probe."""
    return "Voice bridge running"


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information including whether an OpenAI key is configured
        and how many calls are currently bridged.
    """
    settings = load_settings()
    return {
        "status": "healthy",
        "openai_api_key_configured": settings.api_key_configured,
        "active_calls": websocket_manager.active_calls,
    }


@app.post(VOICE_WEBHOOK_PATH)
async def voice_webhook(
    request: Request,
    systemPrompt: Optional[str] = None,
    greeting: Optional[str] = None,
):
    """Twilio voice webhook: returns TwiML connecting the call to the media stream."""
    return await handle_voice_webhook(request, systemPrompt, greeting)


@app.websocket(MEDIA_STREAM_PATH)
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint for Twilio Media Streams.

    Accepts the optional systemPrompt and greeting query parameters produced
    by the voice webhook.
    """
    await websocket_manager.handle_websocket(websocket)


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, http="h11")
