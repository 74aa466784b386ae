"""
Shared fixtures: in-memory collaborators and a generated channel page.
"""

import json
import shutil
import threading
from pathlib import Path
from typing import Optional

import pytest

from stream_digest.db import DataStore
from stream_digest.exceptions import StorageError
from stream_digest.ingestion.audio_handler import AudioHandler
from stream_digest.ingestion.scraper import ChannelScraper
from stream_digest.transcription import (
    Summarizer,
    SummaryResponse,
    Transcriber,
    TranscribeResponse,
    TranscribeSegment,
)


QUALIFYING_COUNT = 12


def qualifying_id(index: int) -> str:
    return f"vid{index:02d}"


def video_renderer(
    video_id: str,
    title: str = "National Assembly Sitting",
    published: Optional[str] = "Streamed 1 day ago",
    views: Optional[str] = "1,234 views",
    length: Optional[str] = "2:15:00",
    upcoming: bool = False,
) -> dict:
    node = {"videoId": video_id, "title": {"runs": [{"text": title}]}}
    if published is not None:
        node["publishedTimeText"] = {"simpleText": published}
    if views is not None:
        node["viewCountText"] = {"simpleText": views}
    if length is not None:
        node["lengthText"] = {"simpleText": length}
    if upcoming:
        node["upcomingEventData"] = {"startTime": "1767225600"}
    return node


def grid_item(renderer: dict) -> dict:
    return {"richItemRenderer": {"content": {"videoRenderer": renderer}}}


def initial_data(grid_contents: list) -> dict:
    return {
        "contents": {
            "twoColumnBrowseResultsRenderer": {
                "tabs": [
                    {"tabRenderer": {"title": "Home"}},
                    {"tabRenderer": {"title": "Videos"}},
                    {
                        "tabRenderer": {
                            "title": "Live",
                            "content": {"richGridRenderer": {"contents": grid_contents}},
                        }
                    },
                ]
            }
        }
    }


def channel_document(data: dict) -> str:
    return (
        "<html><head>"
        '<script>var ytcfg = {"INNERTUBE_API_KEY": "x"};</script>'
        f"<script>var ytInitialData = {json.dumps(data)};</script>"
        "</head><body></body></html>"
    )


def build_channel_page() -> str:
    """Channel page with 12 qualifying streams and several that must be skipped.

    Qualifying stream vidNN was streamed NN days ago, so vid12 is the oldest.
    """
    contents = [
        grid_item(
            video_renderer(
                qualifying_id(i),
                title=f"Sitting {i}",
                published=f"Streamed {i} days ago",
                length=f"{i}:30:00",
            )
        )
        for i in range(1, QUALIFYING_COUNT + 1)
    ]
    contents += [
        grid_item(video_renderer("upcoming01", upcoming=True, views=None, published=None)),
        grid_item(video_renderer("short01", length="9:59")),
        grid_item(video_renderer("noviews01", views=None)),
        grid_item(video_renderer("nopublished01", published=None)),
        grid_item(video_renderer("badlength01", length="LIVE")),
        {"continuationItemRenderer": {"trigger": "CONTINUATION_TRIGGER_ON_ITEM_SHOWN"}},
    ]
    return channel_document(initial_data(contents))


class FakeScraper(ChannelScraper):
    def __init__(self, document: str = "", error: Optional[Exception] = None):
        self.document = document
        self.error = error
        self.calls = 0

    def scrape_channel(self) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.document


class FakeDataStore(DataStore):
    def __init__(
        self,
        existing: Optional[set] = None,
        fail_lookup: bool = False,
        fail_insert: bool = False,
    ):
        self.existing = set(existing or ())
        self.fail_lookup = fail_lookup
        self.fail_insert = fail_insert
        self.lookup_calls = []
        self.inserted = {}

    def get_existing_stream_ids(self, video_ids):
        video_ids = list(video_ids)
        self.lookup_calls.append(video_ids)
        if self.fail_lookup:
            raise StorageError("connection refused")
        stored = self.existing | set(self.inserted)
        return {video_id for video_id in video_ids if video_id in stored}

    def insert_stream(self, stream) -> None:
        if self.fail_insert:
            raise RuntimeError("disk full")
        if stream.video_id in self.existing or stream.video_id in self.inserted:
            return
        self.inserted[stream.video_id] = stream


class FakeAudioHandler(AudioHandler):
    """Writes placeholder files and records every tool invocation.

    Args:
        fail_on: operation name -> video ids for which that operation raises
        skip_download_output: video ids whose download "succeeds" without a file
        chunk_count: number of chunk files produced by split_audio
    """

    def __init__(
        self,
        fail_on: Optional[dict] = None,
        skip_download_output: Optional[set] = None,
        chunk_count: int = 3,
    ):
        self.fail_on = fail_on or {}
        self.skip_download_output = set(skip_download_output or ())
        self.chunk_count = chunk_count
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, operation: str, path: Path) -> None:
        with self._lock:
            self.calls.append((operation, Path(path).name))
        video_id = Path(path).stem.split("_")[0]
        if video_id in self.fail_on.get(operation, ()):
            raise RuntimeError(f"{operation} exploded")

    def calls_for(self, operation: str) -> list:
        return [name for op, name in self.calls if op == operation]

    def download_audio(self, stream, output_path):
        self._record("download", output_path)
        if stream.video_id not in self.skip_download_output:
            Path(output_path).write_bytes(b"raw audio")
        return Path(output_path)

    def _copy(self, operation, input_path, output_path):
        self._record(operation, input_path)
        shutil.copyfile(input_path, output_path)
        return Path(output_path)

    def denoise(self, input_path, output_path):
        return self._copy("denoise", input_path, output_path)

    def normalize_volume(self, input_path, output_path):
        return self._copy("normalize", input_path, output_path)

    def trim_silence(self, input_path, output_path):
        return self._copy("trim", input_path, output_path)

    def split_audio(self, input_path, chunk_duration_seconds, output_dir):
        self._record("split", input_path)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        chunks = []
        for index in range(self.chunk_count):
            chunk = output_dir / f"{Path(input_path).stem}_{index:03d}.mp3"
            chunk.write_bytes(b"chunk")
            chunks.append(chunk)
        return chunks


class FakeTranscriber(Transcriber):
    """Returns scripted responses in order, or a default one per call."""

    def __init__(self, responses: Optional[list] = None, fail_on_call: Optional[int] = None):
        self.responses = list(responses or [])
        self.fail_on_call = fail_on_call
        self.calls = []

    def transcribe(self, audio_path, prompt=None):
        self.calls.append((Path(audio_path).name, prompt))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("rate limited")
        if self.responses:
            return self.responses.pop(0)
        return TranscribeResponse(
            text=f"Transcript of {Path(audio_path).name}.",
            duration=900.0,
            segments=[TranscribeSegment(start=0.0, end=4.0, text="Order, order.")],
        )


class FakeSummarizer(Summarizer):
    def __init__(self, fail: bool = False, empty: bool = False):
        self.fail = fail
        self.empty = empty
        self.calls = []

    def summarize(self, text):
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("model overloaded")
        if self.empty:
            return SummaryResponse(summary="   ")
        return SummaryResponse(summary=f"## Overview\n{text[:40]}")


@pytest.fixture
def channel_page() -> str:
    return build_channel_page()


@pytest.fixture
def all_qualifying_ids() -> list:
    return [qualifying_id(i) for i in range(1, QUALIFYING_COUNT + 1)]


@pytest.fixture
def fake_store() -> FakeDataStore:
    return FakeDataStore()


@pytest.fixture
def fake_audio_handler() -> FakeAudioHandler:
    return FakeAudioHandler()


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def fake_summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def workdir(tmp_path) -> Path:
    return tmp_path / "work"
