"""
MODULE OVERVIEW:
The timer stream consumer.

WHAT IS HAPPENING HERE:
We use the HTTPX `stream()` context manager to keep the body open and parse
the raw `event:` / `data:` frames ourselves, the same work a browser's
EventSource does.

States are just `streaming` True/False:
  start()  -> open a brand-new GET (a new server session, counting from 1)
  `time`   -> append the payload to `lines`
  `exit`   -> stop()
  stop()   -> close the connection, streaming=False (idempotent)
There is no reconnect. If the connection drops, `lines` simply stops growing
until someone calls start() again. `lines` is never cleared.
"""
import asyncio
from datetime import datetime, timezone

import httpx
from loguru import logger

from userstream.client.base_client import BaseStreamClient
from userstream.shared.client_utils import parse_sse_block, split_sse_blocks, to_stream_event
from userstream.shared.config import settings
from userstream.shared.models import StreamEvent, StreamEventKind

STREAM_PATH = "/stream-resource"


class TimerStreamConsumer(BaseStreamClient):
    def __init__(
        self,
        server_base_url: str,
        client: httpx.AsyncClient | None = None,
        stream_path: str = STREAM_PATH,
    ):
        super().__init__(server_base_url)
        self.client = client or httpx.AsyncClient(timeout=settings.CLIENT_TIMEOUT_S)
        self._owns_client = client is None
        self.stream_path = stream_path

        self.lines: list[str] = []
        self.streaming = False
        self.exit_received = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self.streaming:
            return
        # A previous subscription may still be releasing its connection.
        previous = self._task
        if previous is not None and previous is not asyncio.current_task():
            await asyncio.gather(previous, return_exceptions=True)
        self.streaming = True
        self.exit_received = False
        await self._emit_status("CONNECTING")
        self._task = asyncio.create_task(self._consume())

    async def stop(self) -> None:
        if not self.streaming:
            return
        logger.info("Stopping stream")
        self.streaming = False

        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def wait_closed(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        await self.stop()
        await self.wait_closed()
        if self._owns_client:
            await self.client.aclose()

    async def handle_event(self, event: StreamEvent) -> None:
        if not self.streaming:
            return
        self.stats["events_received"] += 1
        self.stats["last_event_at"] = datetime.now(timezone.utc).isoformat()
        if event.kind is StreamEventKind.TICK:
            self.lines.append(event.payload)
            await self._emit_line(event.payload)
        elif event.kind is StreamEventKind.EXIT:
            self.exit_received = True
            await self.stop()

    async def _consume(self) -> None:
        url = f"{self.server_base_url}{self.stream_path}"
        status = "CLOSED"
        try:
            async with self.client.stream(
                "GET", url, headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"}
            ) as response:
                response.raise_for_status()
                self.stats["connections_opened"] += 1
                try:
                    await self._emit_status("ACTIVE")
                    await self._read_events(response)
                finally:
                    self.stats["connections_closed"] += 1
        except httpx.HTTPError as e:
            status = "FAILED"
            logger.warning(f"protocol=sse url={url} error={e!r}")
        finally:
            # _task stays set until the connection is fully released so that
            # start(), wait_closed() and aclose() wait for it.
            if self._task is asyncio.current_task():
                self.streaming = False
                await self._emit_status(status)
                self._task = None

    async def _read_events(self, response: httpx.Response) -> None:
        buffer = ""
        async for chunk in response.aiter_text():
            self.stats["bytes_received"] += len(chunk)
            blocks, buffer = split_sse_blocks(buffer + chunk)
            for block in blocks:
                frame = parse_sse_block(block)
                if frame is None:
                    continue
                event = to_stream_event(*frame)
                if event is None:
                    continue
                await self.handle_event(event)
                if not self.streaming:
                    return
