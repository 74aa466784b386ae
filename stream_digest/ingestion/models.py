"""
Domain record for a discovered live stream recording.

A Stream is built by the discovery parser from one channel grid entry, gets
its summary attached by the summarization stage, and is then handed to the
datastore exactly once.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional


# "Streamed 3 days ago", "1 hour ago", "2 weeks ago"
TIME_AGO_REGEX = re.compile(
    r"^\s*(?:streamed\s+)?(\d+)\s+(second|minute|hour|day|week|month|year)s?\s+ago\s*$",
    re.IGNORECASE,
)

TIME_AGO_UNITS = {
    "second": timedelta(seconds=1),
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def timestamp_from_time_ago(
    text: str, now: Optional[datetime] = None
) -> Optional[datetime]:
    """
    Convert relative time text into an absolute UTC timestamp.

    Args:
        text: Relative time such as "Streamed 2 days ago"
        now: Reference time (defaults to the current UTC time)

    Returns:
        The derived timestamp, or None if the text does not match the grammar.
    """
    if not text:
        return None
    match = TIME_AGO_REGEX.match(text)
    if match is None:
        return None

    amount = int(match.group(1))
    unit = TIME_AGO_UNITS[match.group(2).lower()]
    if now is None:
        now = datetime.now(timezone.utc)
    return now - amount * unit


@dataclass
class Stream:
    """
    One archived live stream and its processing state.

    Attributes:
        video_id: Platform id, primary dedup key
        title: Human readable title
        view_count: View count text as rendered by the platform
        streamed_date: Relative publish text ("Streamed 3 days ago")
        duration: Length text (HH:MM:SS, MM:SS or SS)
        summary_md: Markdown summary, set by the summarization stage
        timestamp_md: Auxiliary display text, carried through unchanged
        stream_timestamp: Absolute time derived from streamed_date at construction
    """

    video_id: str
    title: str
    view_count: str = ""
    streamed_date: str = ""
    duration: str = ""
    summary_md: Optional[str] = None
    timestamp_md: Optional[str] = None
    stream_timestamp: Optional[datetime] = field(default=None)

    def __post_init__(self):
        if self.stream_timestamp is None:
            self.stream_timestamp = timestamp_from_time_ago(self.streamed_date)

    @property
    def url(self) -> str:
        return f"https://youtube.com/watch?v={self.video_id}"
