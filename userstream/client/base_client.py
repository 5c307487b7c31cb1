from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from userstream.shared.client_utils import make_client_stats


class BaseStreamClient(ABC):
    """Callback plumbing and counters shared by streaming clients."""

    def __init__(self, server_base_url: str):
        self.server_base_url = server_base_url.rstrip('/')

        self.on_line_callback: Callable[[str], Awaitable[None]] | None = None
        self.on_status_change_callback: Callable[[str], Awaitable[None]] | None = None

        self.stats = make_client_stats()
        self.status = "STOPPED"

    @property
    def events_received(self): return self.stats["events_received"]

    @property
    def connections_opened(self): return self.stats["connections_opened"]

    @property
    def connections_closed(self): return self.stats["connections_closed"]

    def set_callbacks(self, on_line=None, on_status_change=None):
        self.on_line_callback = on_line
        self.on_status_change_callback = on_status_change

    async def _emit_status(self, status: str):
        self.status = status
        if self.on_status_change_callback:
            await self.on_status_change_callback(status)

    async def _emit_line(self, line: str):
        if self.on_line_callback:
            await self.on_line_callback(line)

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass
