"""
MODULE OVERVIEW:
SQLAlchemy engine, session factory and the `users` table mapping.

WHAT IS HAPPENING HERE:
One engine per process, built lazily from `settings.DATABASE_URL`.
`init_db()` runs in the app lifespan and creates the table if it is missing.
Routes get a `Session` through the `get_session` dependency, which tests
override to point at an in-memory SQLite database.
"""
from typing import Iterator

from loguru import logger
from sqlalchemy import Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from userstream.shared.config import settings


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, email={self.email!r})"


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def engine_options(url: str) -> dict:
    options: dict = {"echo": settings.DATABASE_ECHO}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    return options


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_engine(settings.DATABASE_URL, **engine_options(settings.DATABASE_URL))
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def init_db(engine: Engine | None = None) -> None:
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info(f"database ready url={engine.url.render_as_string(hide_password=True)}")


def get_session() -> Iterator[Session]:
    with get_session_factory()() as session:
        yield session
