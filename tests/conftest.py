import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sse_starlette.sse import AppStatus

from userstream.server import database
from userstream.server.main import create_app
from userstream.shared.config import settings


@pytest.fixture(autouse=True)
def fast_timer(monkeypatch):
    monkeypatch.setattr(settings, "STREAM_TICK_INTERVAL_S", 0.001)
    monkeypatch.setattr(settings, "STREAM_TICK_LIMIT", 10)


@pytest.fixture(autouse=True)
def reset_sse_exit_event(monkeypatch):
    # sse-starlette caches an asyncio.Event bound to the first loop that used it.
    if hasattr(AppStatus, "should_exit_event"):
        monkeypatch.setattr(AppStatus, "should_exit_event", None)


@pytest.fixture
def memory_engine(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(database, "_engine", engine)
    monkeypatch.setattr(database, "_session_factory", sessionmaker(bind=engine, expire_on_commit=False))
    yield engine
    engine.dispose()


@pytest.fixture
def app(memory_engine):
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client
