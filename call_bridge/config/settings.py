"""
Runtime settings loaded from the process environment.

A .env file in the working directory is loaded first when present, so local
development can keep the OpenAI key out of the shell. Settings are re-read on
every call to ``load_settings`` rather than cached at import time; each new call
picks up the current environment.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import dotenv
from pydantic import BaseModel, Field, field_validator

from call_bridge.config.constants import (
    DEFAULT_REALTIME_MODEL,
    DEFAULT_TRANSCRIPTION_MODEL,
    DEFAULT_VOICE,
)

ENV_PATH = Path(".") / ".env"


class Settings(BaseModel):
    """Settings for the bridge server and its OpenAI Realtime sessions."""

    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    realtime_model: str = Field(DEFAULT_REALTIME_MODEL)
    voice: str = Field(DEFAULT_VOICE)
    transcription_model: Optional[str] = Field(
        DEFAULT_TRANSCRIPTION_MODEL,
        description="Model for caller transcription; empty disables it",
    )
    greeting_role: Literal["user", "assistant", "system"] = Field(
        "assistant", description="Role of the conversation item carrying the greeting"
    )
    early_audio_buffer_frames: int = Field(
        0,
        ge=0,
        description="Caller frames kept before the AI session is ready; 0 drops them",
    )
    public_host: Optional[str] = Field(
        None, description="Host used in the media stream URL instead of the Host header"
    )
    host: str = Field("0.0.0.0")
    port: int = Field(3000)
    log_level: str = Field("INFO")

    @field_validator("openai_api_key", "transcription_model", "public_host")
    def blank_to_none(cls, v):
        """Treat empty or whitespace-only values as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @property
    def api_key_configured(self) -> bool:
        return bool(self.openai_api_key)


def load_settings() -> Settings:
    """
    Build a Settings instance from the environment (and .env, if present).

    Values are passed through as strings for the model to coerce.

    Raises:
        ValidationError: If a variable holds a value the model rejects
    """
    if ENV_PATH.exists():
        dotenv.load_dotenv(ENV_PATH)

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        realtime_model=os.getenv("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
        voice=os.getenv("OPENAI_VOICE", DEFAULT_VOICE),
        transcription_model=os.getenv(
            "TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL
        ),
        greeting_role=os.getenv("GREETING_ROLE", "assistant").lower(),
        early_audio_buffer_frames=os.getenv("EARLY_AUDIO_BUFFER_FRAMES", "0"),
        public_host=os.getenv("PUBLIC_HOST"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=os.getenv("PORT", "3000"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
