"""
Database engine and session management.

This module provides:
- Engine creation for SQLite (local runs, tests) and PostgreSQL (production)
- SQLite optimization settings (WAL mode, busy timeout) applied per connection
- Session-per-operation pattern through get_db_session()
"""

import logging
from contextlib import contextmanager
from typing import Generator
from urllib.parse import urlparse

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from stream_digest.exceptions import ConfigurationError
from stream_digest.logger import log_function
from .models import Base


db_logger = logging.getLogger("database")

SUPPORTED_SCHEMES = ("sqlite", "postgresql")


def validate_database_url(url: str) -> tuple[bool, str]:
    """Validate the database URL scheme."""
    if not url:
        return False, "Database URL is empty"
    scheme = urlparse(url).scheme.split("+", 1)[0]
    if scheme not in SUPPORTED_SCHEMES:
        return False, f"Unsupported database scheme: {scheme or '<none>'}"
    return True, scheme


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Set per-connection SQLite pragmas (WAL journal, busy timeout, FK checks)."""
    cursor = dbapi_connection.cursor()

    # WAL lets readers proceed while the commit stage writes
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")

    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    Args:
        database_url: sqlite:///path.db or postgresql://... URL
        echo: Log SQL statements

    Returns:
        Engine: configured engine

    Raises:
        ConfigurationError: If the URL scheme is not supported.
    """
    is_valid, info = validate_database_url(database_url)
    if not is_valid:
        db_logger.error(f"Database configuration error: {info}")
        raise ConfigurationError(f"Database configuration error: {info}")

    if info == "sqlite":
        engine = create_engine(
            database_url,
            poolclass=NullPool,  # Avoid connection pooling issues with SQLite
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        event.listen(engine, "connect", optimize_sqlite_connection)
    else:
        engine = create_engine(
            database_url, pool_size=5, pool_pre_ping=True, echo=echo
        )

    db_logger.info(f"Database engine created ({info})")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Yield a session from the factory, one per datastore operation.

    Rolls back on any error and always closes the session.

    Usage:
        with get_db_session(SessionLocal) as session:
            session.add(record)
            session.commit()
    """
    session = session_factory()
    try:
        db_logger.debug("Session opened")
        yield session

    except SQLAlchemyError as e:
        db_logger.error(f"Session rolled back after database error: {e}")
        session.rollback()
        raise

    except Exception as e:
        db_logger.error(f"Session rolled back after {type(e).__name__}: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        db_logger.debug("Session closed")


@log_function(logger_name="database", log_execution_time=True)
def init_database(engine: Engine) -> None:
    """
    Create all tables defined in the models.

    Raises:
        SQLAlchemyError: If table creation fails.
    """
    Base.metadata.create_all(bind=engine)
    db_logger.info("Schema ready (streams table)")


def check_database_connection(engine: Engine) -> bool:
    """
    Check if the database connection is working.

    Returns:
        True when a trivial query succeeds
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        db_logger.info("Database reachable")
        return True
    except SQLAlchemyError as e:
        db_logger.error(f"Database unreachable: {e}")
        return False
