"""
SQLAlchemy ORM models for the stream digest store.

Models:
    StreamRecord: A processed live stream with its summary
    TimestampMixin: Provides automatic created_at/updated_at timestamps
"""

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from stream_digest.ingestion.models import Stream

Base = declarative_base()


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Both fields use database-level defaults (func.now()) for consistency.
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class StreamRecord(Base, TimestampMixin):
    """
    A live stream that went through the whole pipeline.

    A row is only ever written once, after the summary is attached, so the
    presence of a video_id in this table means "done".

    Attributes:
        video_id: Primary key, platform video id
        title: Stream title
        view_count: View count text at discovery time
        stream_timestamp: Absolute stream time derived from the relative text (nullable)
        streamed_date: Relative time text as scraped
        duration: Length text (HH:MM:SS)
        summary_md: Markdown summary
        timestamp_md: Auxiliary display text
    """

    __tablename__ = "streams"

    video_id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    view_count = Column(String, nullable=False, default="")
    stream_timestamp = Column(DateTime(timezone=True), nullable=True)
    streamed_date = Column(String, nullable=False, default="")
    duration = Column(String, nullable=False, default="")
    summary_md = Column(Text, nullable=True)
    timestamp_md = Column(Text, nullable=True)

    @classmethod
    def from_stream(cls, stream: Stream) -> "StreamRecord":
        return cls(
            video_id=stream.video_id,
            title=stream.title,
            view_count=stream.view_count,
            stream_timestamp=stream.stream_timestamp,
            streamed_date=stream.streamed_date,
            duration=stream.duration,
            summary_md=stream.summary_md,
            timestamp_md=stream.timestamp_md,
        )

    def __repr__(self):
        return (
            f"<StreamRecord(video_id={self.video_id}, title='{self.title}', "
            f"stream_timestamp='{self.stream_timestamp}')>"
        )
