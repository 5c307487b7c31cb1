"""
CLI entrypoint for userstream.
"""
import asyncio

import httpx
import typer
from rich.console import Console
from rich.table import Table

from userstream.client.timer_client import TimerStreamConsumer
from userstream.client.visualizer import Visualizer
from userstream.shared.config import configure_logging, settings

app = typer.Typer(help="userstream CLI Manager")
console = Console()


@app.command()
def server(reload: bool = typer.Option(False, help="Restart on code changes")):
    """Start the FastAPI backend server using Uvicorn."""
    import uvicorn
    configure_logging()
    typer.echo(f"Starting server on {settings.base_url}...")
    uvicorn.run(
        "userstream.server.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


@app.command()
def stream(
    base_url: str = typer.Option(settings.base_url, help="Server to subscribe to"),
    duration: float = typer.Option(60.0, help="Give up after this many seconds"),
):
    """Subscribe to the timer stream with the rich dashboard."""
    configure_logging("WARNING")
    consumer = TimerStreamConsumer(base_url)
    visualizer = Visualizer(consumer)
    try:
        asyncio.run(visualizer.run(duration))
    except KeyboardInterrupt:
        pass
    for line in consumer.lines:
        typer.echo(line)


@app.command()
def users(base_url: str = typer.Option(settings.base_url, help="Server to query")):
    """List users as a table (reads the JSON API)."""
    resp = httpx.get(f"{base_url}/api/users")
    resp.raise_for_status()

    table = Table(title="Users")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Name", style="magenta")
    table.add_column("Email", style="green")
    for user in resp.json():
        table.add_row(str(user["id"]), user["name"], user["email"])
    console.print(table)


@app.command("example-get")
def example_get(base_url: str = typer.Option(settings.base_url, help="Server to query")):
    """Call the example GET endpoint and print the JSON."""
    resp = httpx.get(f"{base_url}/example-api/get")
    resp.raise_for_status()
    typer.echo(resp.json())


if __name__ == "__main__":
    app()
