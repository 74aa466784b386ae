"""
Channel page parser.

Extracts the ``ytInitialData`` JSON blob embedded in a channel "streams" page
and turns its grid entries into Stream records.

The JSON path walked here is fixed on purpose: when the platform changes its
page layout, parsing fails loudly with a ParseError naming the missing key
instead of silently returning nothing.
"""

import json
import logging
import re
from typing import Any, Optional, Sequence, Union

from bs4 import BeautifulSoup

from stream_digest.exceptions import ParseError
from stream_digest.logger import log_function
from .models import Stream


STAGE = "discovery"

# Compiled once, matched against the text of each <script> block
YT_INITIAL_DATA_RE = re.compile(r"var\s+ytInitialData\s*=\s*(\{.*\})\s*;", re.DOTALL)
DURATION_RE = re.compile(r"^\d+(?::\d+){0,2}$")

# Path from the page root to the list of grid entries on the "Live" tab
STREAMS_GRID_PATH: Sequence[Union[str, int]] = (
    "contents",
    "twoColumnBrowseResultsRenderer",
    "tabs",
    2,
    "tabRenderer",
    "content",
    "richGridRenderer",
    "contents",
)

MIN_STREAM_DURATION_SECONDS = 600


def parse_duration_to_seconds(duration: str) -> Optional[int]:
    """
    Convert a HH:MM:SS, MM:SS or SS duration string into whole seconds.

    Args:
        duration: Duration text as displayed on the channel page

    Returns:
        Number of seconds, or None for any other shape.

    Example:
        >>> parse_duration_to_seconds("1:02:03")
        3723
    """
    if duration is None:
        return None
    duration = duration.strip()
    if not DURATION_RE.match(duration):
        return None

    seconds = 0
    for part in duration.split(":"):
        seconds = seconds * 60 + int(part)
    return seconds


def extract_initial_data(document: str) -> dict:
    """
    Extract the ytInitialData JSON object from a channel page.

    The first <script> block assigning ytInitialData wins.

    Args:
        document: Raw HTML of the channel page

    Returns:
        dict: Parsed JSON object

    Raises:
        ParseError: If no script assigns ytInitialData or its value is not valid JSON.
    """
    soup = BeautifulSoup(document or "", "html.parser")

    for script in soup.find_all("script"):
        script_text = script.string or script.get_text()
        if not script_text:
            continue
        match = YT_INITIAL_DATA_RE.search(script_text)
        if match is None:
            continue
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError as e:
            raise ParseError(
                f"ytInitialData is not valid JSON: {e}", stage=STAGE
            ) from e
        if not isinstance(data, dict):
            raise ParseError("ytInitialData is not a JSON object", stage=STAGE)
        return data

    raise ParseError(
        "Failed to extract ytInitialData from the page's script tags", stage=STAGE
    )


def get_path(data: Any, path: Sequence[Union[str, int]]) -> Any:
    """
    Walk a fixed key/index path through nested JSON.

    Raises:
        ParseError: naming the first missing segment and the path walked so far.
    """
    current = data
    walked = "ytInitialData"
    for segment in path:
        try:
            current = current[segment]
        except (KeyError, IndexError, TypeError):
            raise ParseError(
                f"Missing '{segment}' under {walked}, page structure might have changed",
                stage=STAGE,
            )
        walked += f"[{segment!r}]"
    return current


def _simple_text(node: dict, key: str) -> str:
    wrapper = node.get(key) or {}
    return wrapper.get("simpleText") or ""


def stream_from_video_renderer(video_renderer: dict) -> Optional[Stream]:
    """
    Build a Stream from one videoRenderer node.

    Returns None for nodes that are expected to be skipped: upcoming or live
    events, entries without view count or publish time, unparsable durations
    and streams shorter than ten minutes.

    Raises:
        ParseError: If the title, id or length of an aired stream is missing.
    """
    if video_renderer.get("upcomingEventData") is not None:
        return None

    # Only already-aired recordings carry these two wrappers
    if "viewCountText" not in video_renderer or "publishedTimeText" not in video_renderer:
        return None

    video_id = video_renderer.get("videoId")
    if not video_id:
        raise ParseError("Failed to get videoRenderer['videoId']", stage=STAGE)

    runs = (video_renderer.get("title") or {}).get("runs") or []
    if not runs or "text" not in runs[0]:
        raise ParseError(
            "Failed to get video title via ['title']['runs'][0]['text']",
            stage=STAGE,
            video_id=video_id,
        )

    length_text = video_renderer.get("lengthText")
    if length_text is None:
        raise ParseError(
            "No value found for 'lengthText'", stage=STAGE, video_id=video_id
        )
    duration = length_text.get("simpleText") or ""

    duration_secs = parse_duration_to_seconds(duration)
    if duration_secs is None or duration_secs < MIN_STREAM_DURATION_SECONDS:
        return None

    return Stream(
        video_id=video_id,
        title=runs[0]["text"],
        view_count=_simple_text(video_renderer, "viewCountText"),
        streamed_date=_simple_text(video_renderer, "publishedTimeText"),
        duration=duration,
    )


@log_function(logger_name="parser", log_execution_time=True)
def parse_streams(initial_data: dict) -> list[Stream]:
    """
    Parse all qualifying streams from the channel's ytInitialData.

    Args:
        initial_data: JSON object returned by extract_initial_data

    Returns:
        List of Stream objects in page order (may be empty)

    Raises:
        ParseError: If the grid path is missing or a qualifying node is malformed.
    """
    logger = logging.getLogger("parser")

    contents = get_path(initial_data, STREAMS_GRID_PATH)
    if not isinstance(contents, list):
        raise ParseError("richGridRenderer['contents'] is not a list", stage=STAGE)

    streams = []
    skipped = 0
    for item in contents:
        video_renderer = (
            ((item or {}).get("richItemRenderer") or {}).get("content") or {}
        ).get("videoRenderer")
        # Continuation tokens and other grid entries carry no videoRenderer
        if not isinstance(video_renderer, dict):
            continue

        stream = stream_from_video_renderer(video_renderer)
        if stream is None:
            skipped += 1
            continue
        streams.append(stream)

    logger.info(f"Parsed {len(streams)} streams ({skipped} skipped)")
    return streams


def parse_channel_page(document: str) -> list[Stream]:
    """Extract ytInitialData from a channel page and parse its streams."""
    return parse_streams(extract_initial_data(document))
