"""
Datastore boundary used by the pipeline.

DataStore exposes the two operations the pipeline needs: a batched lookup of
already processed ids and an idempotent single-stream insert.
SqlDataStore implements them over SQLAlchemy.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from stream_digest.exceptions import StorageError
from stream_digest.ingestion.models import Stream
from stream_digest.logger import log_function
from .database import (
    create_db_engine,
    create_session_factory,
    get_db_session,
    init_database,
)
from .models import StreamRecord


class DataStore(ABC):
    """Persistence boundary for processed streams."""

    @abstractmethod
    def get_existing_stream_ids(self, video_ids: Iterable[str]) -> set[str]:
        """Return the subset of video_ids that are already stored."""

    @abstractmethod
    def insert_stream(self, stream: Stream) -> None:
        """Store a processed stream; a duplicate id is a no-op, not an error."""


class SqlDataStore(DataStore):
    """SQLAlchemy-backed datastore (SQLite or PostgreSQL)."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not database_url:
                raise ValueError("Either database_url or engine is required")
            engine = create_db_engine(database_url)
        self.engine = engine
        self.session_factory = create_session_factory(engine)

    def init_schema(self) -> None:
        try:
            init_database(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create tables: {e}") from e

    @log_function(logger_name="database", log_execution_time=True)
    def get_existing_stream_ids(self, video_ids: Iterable[str]) -> set[str]:
        """
        Fetch which of the given ids are already stored, in one query.

        Raises:
            StorageError: If the query fails.
        """
        logger = logging.getLogger("database")
        video_ids = list(video_ids)
        if not video_ids:
            return set()

        try:
            with get_db_session(self.session_factory) as session:
                rows = session.execute(
                    select(StreamRecord.video_id).where(
                        StreamRecord.video_id.in_(video_ids)
                    )
                ).scalars()
                existing = set(rows)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to fetch existing streams: {e}") from e

        logger.info(f"{len(existing)} of {len(video_ids)} streams already stored")
        return existing

    @log_function(logger_name="database", log_execution_time=True)
    def insert_stream(self, stream: Stream) -> None:
        """
        Insert a processed stream unless its id is already stored.

        Raises:
            StorageError: If the insert fails for any reason other than a duplicate id.
        """
        logger = logging.getLogger("database")
        try:
            with get_db_session(self.session_factory) as session:
                if session.get(StreamRecord, stream.video_id) is not None:
                    logger.info(f"Stream {stream.video_id} already stored, skipping insert")
                    return
                session.add(StreamRecord.from_stream(stream))
                session.commit()
        except IntegrityError as e:
            # Only a row committed by another run since the check counts as a duplicate
            try:
                stored = self.get_stream(stream.video_id)
            except SQLAlchemyError:
                stored = None
            if stored is None:
                raise StorageError(
                    f"Failed to insert stream: {e}", video_id=stream.video_id
                ) from e
            logger.info(f"Stream {stream.video_id} inserted concurrently, skipping")
            return
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to insert stream: {e}", video_id=stream.video_id
            ) from e

        logger.info(f"Inserted stream {stream.video_id}")

    def get_stream(self, video_id: str) -> Optional[StreamRecord]:
        with get_db_session(self.session_factory) as session:
            record = session.get(StreamRecord, video_id)
            if record is not None:
                session.expunge(record)
            return record
