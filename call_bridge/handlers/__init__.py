"""
Handlers for the two HTTP-facing surfaces Twilio talks to.

Key components:
- voice_handlers: Answers the voice webhook with TwiML that connects the call
  to the media stream socket, carrying the prompt and greeting on the URL.
- stream_handlers: Processes the frames of the media stream socket (start,
  media, stop, mark, dtmf) for one call's bridge.
"""
