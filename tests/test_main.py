import os
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse
from xml.etree import ElementTree

import pytest
from fastapi.testclient import TestClient

from call_bridge.main import app, websocket_manager

client = TestClient(app)


def test_root_endpoint():
    """Test the root endpoint answers as a plain text liveness probe"""
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Voice bridge running"
    assert response.headers["content-type"].startswith("text/plain")


def test_health_check():
    """Test the health check endpoint returns correct response"""
    with patch.dict(os.environ, {"OPENAI_API_KEY": "test-api-key"}):
        response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert response_json["openai_api_key_configured"] is True
    assert response_json["active_calls"] == 0


def test_health_check_without_key():
    with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
        response = client.get("/health")
    assert response.json()["openai_api_key_configured"] is False


def test_voice_webhook_returns_twiml():
    with patch.dict(os.environ, {"PUBLIC_HOST": ""}):
        response = client.post(
            "/voice",
            params={"systemPrompt": "Sei freundlich", "greeting": "Hallo & willkommen"},
            headers={"host": "bridge.example.com"},
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")

    stream = ElementTree.fromstring(response.content).find("./Connect/Stream")
    url = urlparse(stream.get("url"))
    assert url.scheme == "wss"
    assert url.netloc == "bridge.example.com"
    assert url.path == "/media-stream"
    assert parse_qs(url.query) == {
        "systemPrompt": ["Sei freundlich"],
        "greeting": ["Hallo & willkommen"],
    }


def test_voice_webhook_prefers_public_host():
    with patch.dict(os.environ, {"PUBLIC_HOST": "public.example.org"}):
        response = client.post("/voice", headers={"host": "internal:3000"})

    stream = ElementTree.fromstring(response.content).find("./Connect/Stream")
    assert urlparse(stream.get("url")).netloc == "public.example.org"


def test_voice_webhook_failure_returns_500():
    with patch(
        "call_bridge.handlers.voice_handlers.build_stream_twiml",
        side_effect=RuntimeError("template broken"),
    ):
        response = client.post("/voice")

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    assert "template broken" not in response.text


@pytest.mark.asyncio
async def test_media_stream_endpoint():
    """Test that the media stream endpoint calls the handle_websocket method"""
    with patch("call_bridge.websocket_manager.WebSocketManager.handle_websocket") as mock_handle:
        mock_handle.return_value = None
        mock_websocket = MagicMock()

        websocket_route = next(route for route in app.routes if route.path == "/media-stream")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_called_once_with(mock_websocket)


def test_app_configuration():
    assert app.title == "Call Bridge"
    assert app.version == "1.0.0"
    assert websocket_manager is not None

    route_paths = [route.path for route in app.routes]
    for path in ["/", "/health", "/voice", "/media-stream"]:
        assert path in route_paths
