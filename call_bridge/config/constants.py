"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "call_bridge"

# OpenAI Realtime API endpoint and defaults
REALTIME_API_URL = "wss://api.openai.com/v1/realtime"
REALTIME_BETA_HEADER = "realtime=v1"
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_VOICE = "alloy"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"
DEFAULT_INSTRUCTIONS = (
    "Du bist ein freundlicher Telefonassistent für einen deutschen Handwerksbetrieb."
)

# Server VAD turn detection
TURN_DETECTION_THRESHOLD = 0.5
TURN_DETECTION_PREFIX_PADDING_MS = 300
TURN_DETECTION_SILENCE_DURATION_MS = 500

# Audio format shared by both sockets (8 kHz mono mu-law, passed through as-is)
AUDIO_FORMAT_G711_ULAW = "g711_ulaw"

# HTTP / WebSocket paths
MEDIA_STREAM_PATH = "/media-stream"
VOICE_WEBHOOK_PATH = "/voice"

# Connection query parameters carried from the voice webhook into the media stream
PARAM_SYSTEM_PROMPT = "systemPrompt"
PARAM_GREETING = "greeting"

# Close code used when the server cannot serve the call
WS_CLOSE_INTERNAL_ERROR = 1011
