import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from call_bridge.config.constants import DEFAULT_REALTIME_MODEL, DEFAULT_VOICE
from call_bridge.config.settings import Settings, load_settings

ENV_KEYS = [
    "OPENAI_API_KEY",
    "OPENAI_REALTIME_MODEL",
    "OPENAI_VOICE",
    "TRANSCRIPTION_MODEL",
    "GREETING_ROLE",
    "EARLY_AUDIO_BUFFER_FRAMES",
    "PUBLIC_HOST",
    "HOST",
    "PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env():
    env = {k: v for k, v in os.environ.items() if k not in ENV_KEYS}
    with patch.dict(os.environ, env, clear=True), patch(
        "call_bridge.config.settings.ENV_PATH"
    ) as env_path:
        env_path.exists.return_value = False
        yield


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.openai_api_key is None
    assert not settings.api_key_configured
    assert settings.realtime_model == DEFAULT_REALTIME_MODEL
    assert settings.voice == DEFAULT_VOICE
    assert settings.transcription_model == "whisper-1"
    assert settings.greeting_role == "assistant"
    assert settings.early_audio_buffer_frames == 0
    assert settings.public_host is None
    assert settings.host == "0.0.0.0"
    assert settings.port == 3000
    assert settings.log_level == "INFO"


def test_environment_overrides(clean_env):
    with patch.dict(
        os.environ,
        {
            "OPENAI_API_KEY": "sk-test",
            "OPENAI_VOICE": "verse",
            "GREETING_ROLE": "User",
            "EARLY_AUDIO_BUFFER_FRAMES": "25",
            "PORT": "8080",
            "LOG_LEVEL": "debug",
        },
    ):
        settings = load_settings()

    assert settings.api_key_configured
    assert settings.voice == "verse"
    assert settings.greeting_role == "user"
    assert settings.early_audio_buffer_frames == 25
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"


def test_blank_values_are_unset(clean_env):
    with patch.dict(
        os.environ, {"OPENAI_API_KEY": "  ", "TRANSCRIPTION_MODEL": "", "PUBLIC_HOST": ""}
    ):
        settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.transcription_model is None
    assert settings.public_host is None


def test_invalid_values_are_rejected():
    with pytest.raises(ValidationError):
        Settings(greeting_role="narrator")
    with pytest.raises(ValidationError):
        Settings(early_audio_buffer_frames=-1)


@pytest.mark.parametrize("name", ["EARLY_AUDIO_BUFFER_FRAMES", "PORT"])
def test_non_numeric_environment_value_is_a_validation_error(clean_env, name):
    with patch.dict(os.environ, {name: "lots"}):
        with pytest.raises(ValidationError):
            load_settings()
