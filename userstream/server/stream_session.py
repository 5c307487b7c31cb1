"""
MODULE OVERVIEW:
The per-connection timer stream producer.

WHAT IS HAPPENING HERE:
Every request to /stream-resource gets its own `StreamSession`. Opening it spawns
one `asyncio.Task` that sleeps `interval_s`, bumps `tick_count` and drops a
`time` event into the session's private queue. On the `limit`-th tick it also
drops the single `exit` event and finishes.

A session can end two ways:
  1. COMPLETED: the tick limit was reached.
  2. CANCELLED: the transport went away. Either the caller set the
     cancellation `asyncio.Event`, or sse-starlette closed our iterator because
     the client disconnected or a write failed.
Both paths call `_finish()`, which checks the terminal state first, so it runs
its cleanup at most once no matter how many times or from where it is invoked.
"""
import asyncio
from enum import Enum
from typing import AsyncIterator

from loguru import logger

from userstream.shared.config import settings
from userstream.shared.models import StreamEvent
from userstream.shared.route_utils import new_session_id


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_TERMINAL_STATES = (SessionState.COMPLETED, SessionState.CANCELLED)


class StreamSession:
    def __init__(
        self,
        limit: int | None = None,
        interval_s: float | None = None,
        session_id: str | None = None,
    ):
        self.session_id = session_id or new_session_id()
        self.limit = limit if limit is not None else settings.STREAM_TICK_LIMIT
        self.interval_s = interval_s if interval_s is not None else settings.STREAM_TICK_INTERVAL_S
        if self.limit < 1:
            raise ValueError("limit must be at least 1")

        self.tick_count = 0
        self.state = SessionState.IDLE
        self.emitted: list[StreamEvent] = []

        # None is the end-of-stream marker.
        self._queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()
        self._timer: asyncio.Task | None = None
        self._watcher: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self.state is SessionState.CANCELLED

    @property
    def finished(self) -> bool:
        return self.state in _TERMINAL_STATES

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    # ==========================
    # LIFECYCLE
    # ==========================
    async def open(self, cancellation: asyncio.Event | None = None) -> AsyncIterator[StreamEvent]:
        """
        Start the timer and yield events until the session ends.

        `cancellation` is set by the transport when the client disconnects.
        Closing this iterator early counts as the same signal.
        """
        self._start(cancellation)
        try:
            while True:
                event = await self._queue.get()
                if event is None:
                    break
                yield event
        finally:
            self.cancel("transport_closed")

    def _start(self, cancellation: asyncio.Event | None) -> None:
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"session {self.session_id} already opened (state={self.state.value})")
        self.state = SessionState.RUNNING
        self._timer = asyncio.create_task(self._run_timer(), name=f"{self.session_id}-timer")
        if cancellation is not None:
            self._watcher = asyncio.create_task(
                self._watch_cancellation(cancellation), name=f"{self.session_id}-watcher"
            )
        logger.debug(f"session_id={self.session_id} state=running limit={self.limit} interval_s={self.interval_s}")

    def cancel(self, reason: str = "cancelled") -> bool:
        """Abnormal termination. Returns False if the session had already ended."""
        if self.finished:
            return False
        # Undelivered ticks must not reach the client after a cancel.
        while not self._queue.empty():
            self._queue.get_nowait()
        return self._finish(SessionState.CANCELLED, reason)

    def _finish(self, state: SessionState, reason: str) -> bool:
        if self.finished:
            return False
        self.state = state

        current = asyncio.current_task()
        for task in (self._timer, self._watcher):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._timer = None
        self._watcher = None

        self._queue.put_nowait(None)
        logger.info(
            f"session_id={self.session_id} state={state.value} reason={reason} ticks={self.tick_count}"
        )
        return True

    # ==========================
    # TIMER
    # ==========================
    async def _run_timer(self) -> None:
        while not self.finished:
            await asyncio.sleep(self.interval_s)
            self.fire()

    def fire(self) -> None:
        """One timer firing. Ignored outside the RUNNING state."""
        if self.state is not SessionState.RUNNING:
            return
        self.tick_count += 1
        logger.debug(f"session_id={self.session_id} tick={self.tick_count}")
        self._emit(StreamEvent.tick(self.tick_count))

        if self.tick_count >= self.limit:
            logger.debug(f"session_id={self.session_id} tick=exit")
            self._emit(StreamEvent.exit())
            self._finish(SessionState.COMPLETED, "limit_reached")

    def _emit(self, event: StreamEvent) -> None:
        self.emitted.append(event)
        self._queue.put_nowait(event)

    async def _watch_cancellation(self, cancellation: asyncio.Event) -> None:
        await cancellation.wait()
        self.cancel("client_disconnected")
