"""
MODULE OVERVIEW:
The timer event-stream endpoint and the browser page that consumes it.

WHAT IS HAPPENING HERE:
`/stream-resource` builds a fresh `StreamSession` per request and hands its
iterator to sse-starlette. sse-starlette watches for the client disconnecting
and, when it does, cancels the task iterating our generator; the session's
`finally` block turns that into a cancellation. A failed socket write takes
the same path.
"""
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from userstream.server.stream_session import StreamSession
from userstream.server.templating import templates
from userstream.shared.config import settings
from userstream.shared.route_utils import log_connection

router = APIRouter()


async def session_publisher(session: StreamSession):
    log_connection("stream:connect", session.session_id, {"limit": session.limit})
    try:
        async for event in session.open():
            yield ServerSentEvent(data=event.payload, event=event.kind.value)
    finally:
        log_connection(
            "stream:disconnect",
            session.session_id,
            {"state": session.state.value, "ticks": session.tick_count},
        )


@router.get("/stream-resource")
async def stream_resource(request: Request):
    session = StreamSession()
    return EventSourceResponse(
        session_publisher(session),
        ping=int(settings.SSE_PING_INTERVAL_S),
    )


@router.get("/stream", response_class=HTMLResponse)
async def stream_page(request: Request):
    return templates.TemplateResponse(
        request,
        "stream.html",
        {"stream_url": request.url_for("stream_resource").path},
    )
