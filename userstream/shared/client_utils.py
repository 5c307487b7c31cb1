from datetime import datetime, timezone

from userstream.shared.models import StreamEvent, StreamEventKind


def make_client_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    Every client calls this once in __init__.
    Keys: events_received, connections_opened, connections_closed,
          bytes_received, last_event_at, created_at.
    """
    return {
        "events_received": 0,
        "connections_opened": 0,
        "connections_closed": 0,
        "bytes_received": 0,
        "last_event_at": None,
        "created_at": datetime.now(timezone.utc).isoformat()
    }


def parse_sse_block(block: str) -> tuple[str, str] | None:
    """
    Parse one blank-line-terminated SSE block into (event_name, data).
    Returns None for comment-only blocks such as sse-starlette's pings.
    """
    event_type = "message"
    data_lines = []
    seen_field = False

    for line in block.splitlines():
        if not line or line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event_type = value
            seen_field = True
        elif field == "data":
            data_lines.append(value)
            seen_field = True

    if not seen_field:
        return None
    return event_type, "\n".join(data_lines)


def split_sse_blocks(buffer: str) -> tuple[list[str], str]:
    """
    Split complete blocks off the front of `buffer`.
    Returns the complete blocks and the unterminated remainder.
    """
    buffer = buffer.replace("\r\n", "\n")
    blocks = []
    while "\n\n" in buffer:
        block, buffer = buffer.split("\n\n", 1)
        blocks.append(block)
    return blocks, buffer


def to_stream_event(event_type: str, data: str) -> StreamEvent | None:
    """Map a raw SSE frame to a StreamEvent; unknown event names are ignored."""
    try:
        kind = StreamEventKind(event_type)
    except ValueError:
        return None
    return StreamEvent(kind=kind, payload=data)
