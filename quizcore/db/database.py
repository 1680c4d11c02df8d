from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quizcore.config import get_settings

from .models import Base

# Built on first use so that settings (and tests) can pick the URL first.
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def create_engine_for(url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory sqlite shares one connection across sessions."""
    if url.startswith("sqlite") and (url.endswith(":memory:") or url == "sqlite://"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def get_engine() -> Engine:
    """Get the database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine_for(settings.database_url, echo=settings.log_level == "DEBUG")
    return _engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Session factory bound to `engine`, or to the configured engine."""
    global _session_factory
    if engine is not None:
        return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autocommit=False, autoflush=False, expire_on_commit=False)
    return _session_factory


def reset_engine() -> None:
    """Dispose the cached engine; the next call rebuilds it from settings."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def init_db(engine: Engine | None = None) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("Database tables initialized")


@contextmanager
def session_scope(session_factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
