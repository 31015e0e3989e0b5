"""
Bot module bridging Twilio phone calls with the OpenAI Realtime API.

Key components:
- RealtimeSessionClient: Owns the OpenAI Realtime WebSocket of one call and
  drives the session handshake (session.created -> session.update ->
  session.updated) before any caller audio is forwarded.
- TwilioRealtimeBridge: Per-call coordinator that wires the Twilio media stream
  socket to its RealtimeSessionClient and tears both down together.

Usage examples:
```python
from call_bridge.bot import TwilioRealtimeBridge
from call_bridge.config.settings import load_settings
from call_bridge.models.call_session import CallSession

async def on_media_stream(websocket):
    session = CallSession(instructions="Be brief.", greeting="Hello!")
    bridge = TwilioRealtimeBridge(websocket, session, load_settings())
    await bridge.start_call("MZ123")
    await bridge.forward_caller_audio(base64_mulaw_chunk)
    await bridge.close()
```
"""

from call_bridge.bot.realtime_api import RealtimeSessionClient
from call_bridge.bot.twilio_realtime_bridge import TwilioRealtimeBridge

__all__ = ["RealtimeSessionClient", "TwilioRealtimeBridge"]
