import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.websockets import WebSocketDisconnect
from starlette.websockets import WebSocketState

from call_bridge.config.settings import Settings


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeTwilioWebSocket:
    """Stands in for the FastAPI media stream socket and records what is sent."""

    def __init__(self, frames=(), query_params=None):
        self.frames = list(frames)
        self.query_params = query_params or {}
        self.sent = []
        self.close_codes = []
        self.accepted = False
        self.receive_calls = 0
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def accept(self):
        self.accepted = True

    async def receive_text(self):
        self.receive_calls += 1
        if self.application_state == WebSocketState.DISCONNECTED:
            raise RuntimeError('WebSocket is not connected. Need to call "accept" first.')
        if not self.frames:
            self.client_state = WebSocketState.DISCONNECTED
            raise WebSocketDisconnect(code=1000)
        frame = self.frames.pop(0)
        if isinstance(frame, dict):
            return json.dumps(frame)
        return frame

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def close(self, code=1000):
        self.close_codes.append(code)
        self.application_state = WebSocketState.DISCONNECTED

    @property
    def closed(self):
        return self.application_state == WebSocketState.DISCONNECTED


class FakeRealtimeSocket:
    """Stands in for the OpenAI Realtime WebSocket; messages are fed by the test."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self.close_calls = 0
        self._incoming = asyncio.Queue()

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(None)

    def feed(self, message):
        self._incoming.put_nowait(message)

    def drop(self):
        """Simulate the service closing the connection."""
        self._incoming.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is None:
            raise StopAsyncIteration
        return message

    def sent_types(self):
        return [event["type"] for event in self.sent]


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-api-key")


@pytest.fixture
def twilio_ws():
    return FakeTwilioWebSocket()


@pytest.fixture
def realtime_ws():
    return FakeRealtimeSocket()


@pytest.fixture
def mock_connect(realtime_ws):
    """Patch websockets.connect so every call gets the fake Realtime socket."""
    with patch("websockets.connect", new=AsyncMock(return_value=realtime_ws)) as connect:
        yield connect


@pytest.fixture
def make_twilio_ws():
    """Factory for media stream sockets pre-loaded with inbound frames."""
    return FakeTwilioWebSocket


@pytest.fixture
def make_realtime_ws():
    """Factory for additional fake Realtime sockets."""
    return FakeRealtimeSocket
