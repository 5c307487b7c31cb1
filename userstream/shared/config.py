"""
MODULE OVERVIEW:
Application-wide configuration using Pydantic Settings.
Both the server and the CLI client read from the single `settings` instance.

WHAT IS HAPPENING HERE:
The timer stream's cadence and length live here instead of being hardcoded in
the route. Tests shrink STREAM_TICK_INTERVAL_S so a full ten-tick session
finishes in milliseconds.
"""
import sys

from loguru import logger
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./userstream.db"
    DATABASE_ECHO: bool = False

    # Timer stream
    STREAM_TICK_INTERVAL_S: float = 1.0
    STREAM_TICK_LIMIT: int = 10
    SSE_PING_INTERVAL_S: float = 15.0

    # CLI client
    CLIENT_TIMEOUT_S: float = 60.0

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

    @property
    def base_url(self) -> str:
        return f"http://{self.HOST}:{self.PORT}"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Replace loguru's default sink with one stderr sink at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=(level or settings.LOG_LEVEL).upper())
