"""
Call Bridge - Twilio Media Streams to OpenAI Realtime API

This application lets an inbound phone call be answered by a conversational AI
agent. Twilio streams the caller's audio over a WebSocket; the bridge relays it
to an OpenAI Realtime session and plays the AI's synthesized speech back into
the call. Both sides use 8 kHz mu-law (g711_ulaw), so audio passes through
unchanged.

Key Components:
- bot: The per-call bridge and the OpenAI Realtime session client
- config: Constants, environment settings and logging setup
- handlers: The TwiML voice webhook and the media stream frame handlers
- models: Wire schemas for both protocols and the per-call session state
- websocket_manager: Accepts media stream sockets and routes their frames

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key
   - PORT: Port to run the server on (default 3000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio number's voice webhook at:
   https://your-server/voice?systemPrompt=...&greeting=...
"""
