"""
Database connection management for Multi-Calendar.

Handles SQLite (default) and PostgreSQL connections.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)


def _ensure_data_dir() -> Path:
    """Ensure the data directory exists and return its path."""
    # Use /data in Docker (separate volume), otherwise relative to this file
    if Path("/app").exists():
        data_dir = Path("/data")
    else:
        data_dir = Path(__file__).parent / "data"

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Data directory ready: {data_dir}")
    except PermissionError as e:
        logger.error(f"Cannot write to data directory {data_dir}: {e}")
        raise

    return data_dir


def get_database_url(
    url: Optional[str] = None,
    user: Optional[str] = None,
    password: Optional[str] = None,
) -> str:
    """
    Resolve the database URL.

    Supports:
    - An explicit URL or the DATABASE_URL env var (PostgreSQL, custom SQLite path)
    - DATABASE_USER / DATABASE_PASSWORD, applied when the URL carries no credentials
    - Default: sqlite:////data/calendars.db (Docker) or local db/data/calendars.db
    """
    url = url or os.environ.get("DATABASE_URL")
    if not url:
        data_dir = _ensure_data_dir()
        return f"sqlite:///{data_dir}/calendars.db"

    # Handle Heroku-style postgres:// URLs
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    user = user or os.environ.get("DATABASE_USER")
    password = password or os.environ.get("DATABASE_PASSWORD")
    parsed = make_url(url)
    if not parsed.drivername.startswith("sqlite") and parsed.username is None and user:
        parsed = parsed.set(username=user, password=password)
        return parsed.render_as_string(hide_password=False)

    return url


def create_db_engine(url: str) -> Engine:
    """Create the database engine for a URL."""
    logger.info(f"Connecting to database: {url.split('@')[-1] if '@' in url else url}")
    echo = os.environ.get("SQL_DEBUG", "").lower() == "true"

    if url.startswith("sqlite"):
        kwargs = {
            "connect_args": {"check_same_thread": False},  # Allow multi-threaded access
            "echo": echo,
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory database
            from sqlalchemy.pool import StaticPool

            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before use
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine."""
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
