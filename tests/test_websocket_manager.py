import os
from unittest.mock import AsyncMock, patch

import pytest

from call_bridge.models.call_session import CallSession
from call_bridge.websocket_manager import WebSocketManager

START_FRAME = {
    "event": "start",
    "sequenceNumber": "1",
    "start": {"streamSid": "CA123", "callSid": "CAcall", "accountSid": "ACxyz"},
    "streamSid": "CA123",
}
MEDIA_FRAME = {"event": "media", "streamSid": "CA123", "media": {"payload": "AAA"}}
STOP_FRAME = {"event": "stop", "streamSid": "CA123", "stop": {"callSid": "CAcall"}}


@pytest.fixture
def websocket_manager():
    return WebSocketManager()


@pytest.fixture
def api_key_env():
    with patch.dict(os.environ, {"OPENAI_API_KEY": "test-api-key"}):
        yield


def test_websocket_manager_initialization(websocket_manager):
    """Test that WebSocketManager initializes correctly"""
    assert websocket_manager.active_calls == 0
    for event in ["connected", "start", "media", "stop", "mark", "dtmf"]:
        assert event in websocket_manager.handlers


@pytest.mark.asyncio
async def test_missing_api_key_closes_media_stream(websocket_manager, make_twilio_ws, mock_connect):
    ws = make_twilio_ws(frames=[START_FRAME])

    with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
        await websocket_manager.handle_websocket(ws)

    assert ws.accepted
    assert ws.close_codes == [1011]
    assert ws.receive_calls == 0
    mock_connect.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_configuration_closes_media_stream(
    websocket_manager, make_twilio_ws, mock_connect
):
    ws = make_twilio_ws(frames=[START_FRAME])

    with patch.dict(
        os.environ, {"OPENAI_API_KEY": "test-api-key", "EARLY_AUDIO_BUFFER_FRAMES": "many"}
    ):
        await websocket_manager.handle_websocket(ws)

    assert ws.accepted
    assert ws.close_codes == [1011]
    assert ws.receive_calls == 0
    mock_connect.assert_not_awaited()
    assert websocket_manager.active_calls == 0


@pytest.mark.asyncio
async def test_start_media_stop_flow(
    websocket_manager, make_twilio_ws, mock_connect, realtime_ws, api_key_env
):
    ws = make_twilio_ws(
        frames=[{"event": "connected", "protocol": "Call"}, START_FRAME, MEDIA_FRAME, STOP_FRAME]
    )

    await websocket_manager.handle_websocket(ws)

    assert mock_connect.await_count == 1
    assert realtime_ws.closed
    assert ws.close_codes == [1000]
    # Media arrived before the AI session was ready
    assert "input_audio_buffer.append" not in realtime_ws.sent_types()
    # Loop ends on stop without reading further
    assert ws.receive_calls == 4
    assert websocket_manager.active_calls == 0


@pytest.mark.asyncio
async def test_malformed_and_unknown_frames_are_skipped(
    websocket_manager, make_twilio_ws, mock_connect, realtime_ws, api_key_env
):
    ws = make_twilio_ws(
        frames=[
            "{not json",
            "[1, 2, 3]",
            {"event": "bogus"},
            {"no_event": True},
            {"event": 42},
            START_FRAME,
            STOP_FRAME,
        ]
    )

    await websocket_manager.handle_websocket(ws)

    assert mock_connect.await_count == 1
    assert realtime_ws.closed


@pytest.mark.asyncio
async def test_duplicate_start_opens_one_ai_session(
    websocket_manager, make_twilio_ws, mock_connect, api_key_env
):
    ws = make_twilio_ws(frames=[START_FRAME, START_FRAME, STOP_FRAME])

    await websocket_manager.handle_websocket(ws)

    assert mock_connect.await_count == 1


@pytest.mark.asyncio
async def test_twilio_disconnect_closes_ai_session(
    websocket_manager, make_twilio_ws, mock_connect, realtime_ws, api_key_env
):
    ws = make_twilio_ws(frames=[START_FRAME, MEDIA_FRAME])

    await websocket_manager.handle_websocket(ws)

    assert realtime_ws.closed
    # The peer already hung up, so nothing is closed from our side
    assert ws.close_codes == []
    assert websocket_manager.active_calls == 0


@pytest.mark.asyncio
async def test_query_parameters_configure_session(
    websocket_manager, make_twilio_ws, mock_connect, api_key_env
):
    ws = make_twilio_ws(
        frames=[STOP_FRAME],
        query_params={"systemPrompt": "Be brief.", "greeting": "Hallo"},
    )

    with patch("call_bridge.websocket_manager.CallSession", wraps=CallSession) as session_cls:
        await websocket_manager.handle_websocket(ws)

    session_cls.assert_called_once_with(instructions="Be brief.", greeting="Hallo")


@pytest.mark.asyncio
async def test_active_calls_counts_live_bridges(
    websocket_manager, make_twilio_ws, mock_connect, api_key_env
):
    seen = []

    async def record(message, bridge):
        seen.append(websocket_manager.active_calls)

    websocket_manager.handlers["mark"] = record
    ws = make_twilio_ws(frames=[START_FRAME, {"event": "mark", "mark": {"name": "m"}}, STOP_FRAME])

    await websocket_manager.handle_websocket(ws)

    assert seen == [1]
    assert websocket_manager.active_calls == 0


@pytest.mark.asyncio
async def test_handler_error_ends_call_cleanly(
    websocket_manager, make_twilio_ws, mock_connect, realtime_ws, api_key_env
):
    websocket_manager.handlers["media"] = AsyncMock(side_effect=RuntimeError("boom"))
    ws = make_twilio_ws(frames=[START_FRAME, MEDIA_FRAME, STOP_FRAME])

    await websocket_manager.handle_websocket(ws)

    assert realtime_ws.closed
    assert ws.close_codes == [1000]
    assert websocket_manager.active_calls == 0
