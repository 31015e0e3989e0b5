"""
Configuration module for the phone call bridge.

This module provides centralized configuration management for the entire application,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Defines application-wide constants used across modules, including
  Twilio event names, the shared audio format, and default model settings.
- settings: Loads runtime settings (API key, model, voice, port) from the
  environment and an optional .env file.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.

Usage examples:
```python
from call_bridge.config.constants import LOGGER_NAME, AUDIO_FORMAT_G711_ULAW
from call_bridge.config.logging_config import configure_logging
from call_bridge.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Using realtime model {settings.realtime_model}")
```
"""
