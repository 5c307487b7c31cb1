import asyncio

import pytest

from userstream.server.main import create_app
from userstream.server.routes import stream as stream_routes
from userstream.server.stream_session import SessionState, StreamSession
from userstream.shared.client_utils import parse_sse_block, split_sse_blocks
from userstream.shared.config import settings


def read_frames(client, path="/stream-resource"):
    with client.stream("GET", path) as response:
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        body = "".join(response.iter_text())
    blocks, rest = split_sse_blocks(body)
    frames = [parse_sse_block(block) for block in blocks]
    return [frame for frame in frames if frame is not None], rest


def test_stream_resource_sends_ten_ticks_then_exit(client):
    frames, rest = read_frames(client)

    assert frames == [("time", f"Timer: {n} seconds") for n in range(1, 11)] + [("exit", "exited")]
    assert rest.strip() == ""


def test_each_request_gets_a_fresh_counter(client):
    first, _ = read_frames(client)
    second, _ = read_frames(client)

    assert first[0] == ("time", "Timer: 1 seconds")
    assert second[0] == ("time", "Timer: 1 seconds")
    assert first == second


def test_stream_limit_is_configurable(client, monkeypatch):
    monkeypatch.setattr(settings, "STREAM_TICK_LIMIT", 3)
    frames, _ = read_frames(client)

    assert [name for name, _ in frames] == ["time", "time", "time", "exit"]


def test_stream_page_points_at_stream_resource(client):
    response = client.get("/stream")

    assert response.status_code == 200
    assert "SSE Timer Stream" in response.text
    assert '"/stream-resource"' in response.text
    assert 'addEventListener("exit"' in response.text


class RecordingSessions:
    """Stands in for StreamSession in the route so the test can inspect the session afterwards."""

    def __init__(self):
        self.sessions = []

    def __call__(self, *args, **kwargs):
        session = StreamSession(*args, **kwargs)
        self.sessions.append(session)
        return session


def stream_scope():
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "path": "/stream-resource",
        "raw_path": b"/stream-resource",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver"), (b"accept", b"text/event-stream")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


@pytest.fixture
def recorded(monkeypatch):
    recorder = RecordingSessions()
    monkeypatch.setattr(stream_routes, "StreamSession", recorder)
    monkeypatch.setattr(settings, "STREAM_TICK_INTERVAL_S", 0.05)
    return recorder


@pytest.mark.asyncio
async def test_client_disconnect_after_third_tick_cancels_the_session(recorded):
    app = create_app()
    body = bytearray()
    third_tick_sent = asyncio.Event()
    request_sent = False

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await third_tick_sent.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.body":
            body.extend(message.get("body", b""))
            if b"Timer: 3 seconds" in body:
                third_tick_sent.set()

    await asyncio.wait_for(app(stream_scope(), receive, send), timeout=5)

    session = recorded.sessions[0]
    assert session.state is SessionState.CANCELLED
    assert session.tick_count == 3
    assert not session.timer_active
    assert b"event: exit" not in body
    assert b"Timer: 4 seconds" not in body

    await asyncio.sleep(0.15)
    assert session.tick_count == 3


@pytest.mark.asyncio
async def test_failed_write_cancels_the_session(recorded):
    app = create_app()
    body = bytearray()
    never = asyncio.Event()
    request_sent = False

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await never.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.body":
            chunk = message.get("body", b"")
            if b"Timer: 3 seconds" in chunk:
                raise OSError("connection reset by peer")
            body.extend(chunk)

    try:
        await asyncio.wait_for(app(stream_scope(), receive, send), timeout=5)
    except Exception:
        # Whether the write error surfaces here depends on how the middleware stack wraps it.
        pass

    session = recorded.sessions[0]
    assert session.state is SessionState.CANCELLED
    assert session.tick_count == 3
    assert not session.timer_active
    assert b"Timer: 2 seconds" in body
    assert b"event: exit" not in body

    await asyncio.sleep(0.15)
    assert session.tick_count == 3
