"""
MODULE OVERVIEW:
The Rich terminal dashboard for the timer stream.

WHAT IS HAPPENING HERE:
The consumer runs in the background; its hooks feed a status timeline while
the log panel renders `consumer.lines` directly. The dashboard exits when the
consumer stops, either because `exit` arrived or because of Ctrl+C.
"""

from collections import deque
from datetime import datetime
import asyncio

from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel

from userstream.client.timer_client import TimerStreamConsumer


class Visualizer:
    def __init__(self, consumer: TimerStreamConsumer, visible_lines: int = 15):
        self.consumer = consumer
        self.visible_lines = visible_lines
        self.timeline = deque(maxlen=5)

    def on_status_change(self, status: str):
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] State: {status}")

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="log", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline")
        )

        status = self.consumer.status
        color = "green" if status == "ACTIVE" else "yellow" if status == "CONNECTING" else "red"
        layout["header"].update(Panel(f"[{color} bold]SSE Timer Stream | Status: {status}[/]", style=color))

        lines = self.consumer.lines[-self.visible_lines:]
        layout["log"].update(Panel("\n".join(lines) or "No data yet.", title="Log"))

        stats_text = (
            f"Lines: {len(self.consumer.lines)}\n"
            f"Events Received: {self.consumer.events_received}\n"
            f"Connections: {self.consumer.connections_opened} opened / "
            f"{self.consumer.connections_closed} closed"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))
        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))

        return layout

    async def run(self, duration_s: float):
        async def status_hook(s): self.on_status_change(s)

        self.consumer.set_callbacks(on_status_change=status_hook)
        await self.consumer.start()

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s
        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while self.consumer.streaming and loop.time() < deadline:
                    live.update(self.generate_layout())
                    await asyncio.sleep(0.25)
                live.update(self.generate_layout())
        finally:
            await self.consumer.aclose()
