"""SQLAlchemy engine, session factory and column types."""

from collections.abc import Iterator
from datetime import datetime, timezone

import structlog
from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

logger = structlog.get_logger(__name__)


class UTCDateTime(TypeDecorator):
    """Timestamp column that always hands back timezone-aware UTC datetimes.

    Values are stored as naive UTC so SQLite and PostgreSQL behave the same.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


def create_db_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared across threads; in-memory SQLite uses a
    single static connection so every session sees the same database.
    """
    kwargs: dict = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def init_database(url: str, create_tables: bool = True) -> Engine:
    """Bind the process-wide session factory to ``url``."""
    global _engine, _session_factory

    # Import models so their tables are registered on Base.metadata
    from analytics.services.api_server import models  # noqa: F401

    _engine = create_db_engine(url)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    if create_tables:
        Base.metadata.create_all(_engine)
    logger.info("database_initialized", dialect=_engine.dialect.name)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        from analytics.services.api_server.config import get_settings

        init_database(get_settings().database_url)
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        get_engine()
    return _session_factory


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding a session closed after the request."""
    with get_session_factory()() as session:
        yield session
