"""
Database package for the stream digest store.

Structure:
- models.py: SQLAlchemy ORM models (StreamRecord, TimestampMixin)
- database.py: Engine creation, session factory and table initialization
- datastore.py: DataStore boundary and its SQLAlchemy implementation
"""

from .models import Base, StreamRecord, TimestampMixin
from .database import (
    create_db_engine,
    create_session_factory,
    get_db_session,
    init_database,
    check_database_connection,
)
from .datastore import DataStore, SqlDataStore

__all__ = [
    # Models
    "Base",
    "StreamRecord",
    "TimestampMixin",
    # Database utilities
    "create_db_engine",
    "create_session_factory",
    "get_db_session",
    "init_database",
    "check_database_connection",
    # Datastore
    "DataStore",
    "SqlDataStore",
]
