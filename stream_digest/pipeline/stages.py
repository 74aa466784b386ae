"""
Pipeline stage functions.

Each stage wraps collaborator calls and provides:
- Resumability checks (skip work whose output artifact already exists)
- Translation of collaborator failures into the pipeline error taxonomy,
  tagged with the stage name and stream id
- Logging
"""

import dataclasses
import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from stream_digest.db import DataStore
from stream_digest.exceptions import (
    AcquisitionError,
    CleanupError,
    ParseError,
    PersistenceError,
    ScrapeError,
    StorageError,
    SummarizationError,
    TranscriptionError,
)
from stream_digest.ingestion.audio_handler import AudioHandler
from stream_digest.ingestion.models import Stream
from stream_digest.ingestion.parser import parse_channel_page
from stream_digest.ingestion.scraper import ChannelScraper
from stream_digest.logger import log_function
from stream_digest.storage import WorkingArea
from stream_digest.transcription import (
    AudioInput,
    Summarizer,
    Transcriber,
    TranscribeResponse,
    TranscribeSegment,
)


STAGE_DISCOVERY = "discovery"
STAGE_SELECTION = "selection"
STAGE_AUDIO = "audio"
STAGE_TRANSCRIPTION = "transcription"
STAGE_SUMMARIZATION = "summarization"
STAGE_COMMIT = "commit"

CHUNKS_DIRNAME = "chunks"


@dataclass
class AudioArtifacts:
    """Deterministic file locations for one stream's audio."""

    raw: Path
    denoised: Path
    normalized: Path
    trimmed: Path
    chunks_dir: Path

    @classmethod
    def for_stream(cls, stream_dir: Path, video_id: str) -> "AudioArtifacts":
        stream_dir = Path(stream_dir)
        return cls(
            raw=stream_dir / f"{video_id}.mp3",
            denoised=stream_dir / f"{video_id}_denoised.mp3",
            normalized=stream_dir / f"{video_id}_normalized.mp3",
            trimmed=stream_dir / f"{video_id}_trimmed.mp3",
            chunks_dir=stream_dir / CHUNKS_DIRNAME,
        )


@log_function(logger_name="pipeline", log_execution_time=True)
def run_discovery_stage(scraper: ChannelScraper) -> list[Stream]:
    """
    Fetch the channel page and parse candidate streams from it.

    Raises:
        ScrapeError: If the page cannot be fetched
        ParseError: If the page no longer matches the expected schema
    """
    logger = logging.getLogger("pipeline")
    try:
        document = scraper.scrape_channel()
    except ScrapeError as e:
        e.stage = e.stage or STAGE_DISCOVERY
        raise
    except Exception as e:
        raise ScrapeError(f"Channel fetch failed: {e}", stage=STAGE_DISCOVERY) from e

    try:
        streams = parse_channel_page(document)
    except ParseError as e:
        e.stage = e.stage or STAGE_DISCOVERY
        raise

    logger.info(f"Discovered {len(streams)} candidate streams")
    return streams


@log_function(logger_name="pipeline", log_execution_time=True)
def run_selection_stage(
    streams: Iterable[Stream], store: DataStore, max_streams: int
) -> list[Stream]:
    """
    Drop already stored streams, order the rest oldest first and cap the batch.

    Args:
        streams: Candidate streams from discovery
        store: Datastore used for the existing-ids lookup (one batched call)
        max_streams: Maximum number of streams to return

    Returns:
        At most max_streams streams, oldest stream_timestamp first; streams
        without a timestamp come after all dated ones.

    Raises:
        StorageError: If the existing-ids lookup fails
    """
    logger = logging.getLogger("pipeline")
    streams = list(streams)
    video_ids = [stream.video_id for stream in streams]

    try:
        existing_ids = store.get_existing_stream_ids(video_ids)
    except StorageError as e:
        e.stage = e.stage or STAGE_SELECTION
        raise
    except Exception as e:
        raise StorageError(
            f"Existing stream lookup failed: {e}", stage=STAGE_SELECTION
        ) from e

    # A stream listed twice on the page is selected once, first listing wins
    new_streams = []
    seen_ids = set(existing_ids)
    for stream in streams:
        if stream.video_id in seen_ids:
            continue
        seen_ids.add(stream.video_id)
        new_streams.append(stream)

    # Undated streams go last, in discovery order
    dated = sorted(
        (s for s in new_streams if s.stream_timestamp is not None),
        key=lambda s: s.stream_timestamp,
    )
    undated = [s for s in new_streams if s.stream_timestamp is None]
    selected = (dated + undated)[: max(max_streams, 0)]

    logger.info(
        f"Selected {len(selected)} of {len(new_streams)} new streams "
        f"({len(existing_ids)} already stored, limit {max_streams})"
    )
    return selected


def acquire_audio(
    stream: Stream, audio_handler: AudioHandler, artifacts: AudioArtifacts
) -> Path:
    """
    Download raw audio unless it is already present.

    Raises:
        AcquisitionError: If the download fails or reports success without
            producing the expected file
    """
    logger = logging.getLogger("pipeline")
    if artifacts.raw.exists():
        logger.info(f"Audio for {stream.video_id} already exists, skipping download")
        return artifacts.raw

    try:
        audio_handler.download_audio(stream, artifacts.raw)
    except AcquisitionError as e:
        e.stage = e.stage or STAGE_AUDIO
        e.video_id = e.video_id or stream.video_id
        raise
    except Exception as e:
        raise AcquisitionError(
            f"Audio download failed: {e}", stage=STAGE_AUDIO, video_id=stream.video_id
        ) from e

    if not artifacts.raw.exists():
        raise AcquisitionError(
            f"Download reported success but {artifacts.raw} is missing",
            stage=STAGE_AUDIO,
            video_id=stream.video_id,
        )
    return artifacts.raw


def clean_audio(
    stream: Stream, audio_handler: AudioHandler, artifacts: AudioArtifacts
) -> Path:
    """
    Run denoise, normalize and trim in order unless the trimmed file exists.

    Intermediate files from an interrupted chain are left in place; only the
    trimmed file decides whether the chain runs again.

    Raises:
        CleanupError: If any step fails
    """
    logger = logging.getLogger("pipeline")
    if artifacts.trimmed.exists():
        logger.info(f"Cleaned audio for {stream.video_id} already exists, skipping cleanup")
        return artifacts.trimmed

    steps = [
        ("denoise", audio_handler.denoise, artifacts.raw, artifacts.denoised),
        ("normalize", audio_handler.normalize_volume, artifacts.denoised, artifacts.normalized),
        ("trim silence", audio_handler.trim_silence, artifacts.normalized, artifacts.trimmed),
    ]
    for name, step, input_path, output_path in steps:
        logger.debug(f"{stream.video_id}: {name} {input_path.name} -> {output_path.name}")
        try:
            step(input_path, output_path)
        except CleanupError as e:
            e.stage = e.stage or STAGE_AUDIO
            e.video_id = e.video_id or stream.video_id
            raise
        except Exception as e:
            raise CleanupError(
                f"Audio {name} failed: {e}", stage=STAGE_AUDIO, video_id=stream.video_id
            ) from e

    if not artifacts.trimmed.exists():
        raise CleanupError(
            f"Cleanup finished but {artifacts.trimmed} is missing",
            stage=STAGE_AUDIO,
            video_id=stream.video_id,
        )
    return artifacts.trimmed


def process_stream_audio(
    stream: Stream, audio_handler: AudioHandler, stream_dir: Path
) -> Path:
    """Acquire then clean one stream's audio; returns the trimmed file."""
    artifacts = AudioArtifacts.for_stream(stream_dir, stream.video_id)
    acquire_audio(stream, audio_handler, artifacts)
    return clean_audio(stream, audio_handler, artifacts)


@log_function(logger_name="pipeline", log_execution_time=True)
def run_audio_stage(
    streams: list[Stream],
    audio_handler: AudioHandler,
    workspace: WorkingArea,
    max_workers: Optional[int] = None,
) -> dict[str, Path]:
    """
    Acquire and clean audio for every stream in parallel.

    The first failure to complete is raised. Streams not yet started are
    cancelled; streams already running finish and their results are dropped.

    Args:
        streams: Selected streams
        audio_handler: Tool used for download and cleanup
        workspace: Working area holding one directory per stream
        max_workers: Pool size (defaults to the CPU count)

    Returns:
        Mapping of video_id to its cleaned audio file

    Raises:
        AcquisitionError, CleanupError: First failure encountered
    """
    logger = logging.getLogger("pipeline")
    if not streams:
        return {}

    if max_workers is None:
        max_workers = os.cpu_count() or 1
    max_workers = max(1, min(max_workers, len(streams)))

    # Directories are created up front so workers never touch shared state
    stream_dirs = {s.video_id: workspace.stream_dir(s.video_id) for s in streams}

    logger.info(f"Processing audio for {len(streams)} streams with {max_workers} workers")
    results = {}
    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {
            executor.submit(
                process_stream_audio, stream, audio_handler, stream_dirs[stream.video_id]
            ): stream
            for stream in streams
        }
        for future in as_completed(futures):
            stream = futures[future]
            try:
                results[stream.video_id] = future.result()
            except (AcquisitionError, CleanupError):
                raise
            except Exception as e:
                raise AcquisitionError(
                    f"Audio processing failed: {e}",
                    stage=STAGE_AUDIO,
                    video_id=stream.video_id,
                ) from e
            logger.info(f"Audio ready for {stream.video_id}")
    finally:
        executor.shutdown(wait=True, cancel_futures=True)

    return results


def prepare_audio_input(
    stream: Stream,
    audio_path: Path,
    audio_handler: AudioHandler,
    enable_chunking: bool,
    chunk_duration_seconds: int,
) -> AudioInput:
    """
    Decide how a stream's cleaned audio is transcribed.

    With chunking on, the audio is split into the stream's chunks directory
    unless chunk files are already there, in which case they are reused.

    Raises:
        CleanupError: If splitting fails
    """
    logger = logging.getLogger("pipeline")
    audio_path = Path(audio_path)
    if not enable_chunking:
        return AudioInput.file(audio_path)

    chunks_dir = audio_path.parent / CHUNKS_DIRNAME
    existing_chunks = sorted(chunks_dir.glob("*.mp3")) if chunks_dir.is_dir() else []
    if existing_chunks:
        logger.info(
            f"Reusing {len(existing_chunks)} existing chunks for {stream.video_id}"
        )
    else:
        try:
            chunks = audio_handler.split_audio(
                audio_path, chunk_duration_seconds, chunks_dir
            )
        except Exception as e:
            raise CleanupError(
                f"Audio split failed: {e}",
                stage=STAGE_TRANSCRIPTION,
                video_id=stream.video_id,
            ) from e
        logger.info(f"Split {stream.video_id} into {len(chunks)} chunks")

    return AudioInput.chunked(audio_path, chunks_dir, chunk_duration_seconds)


def _transcribe_file(
    transcriber: Transcriber,
    audio_path: Path,
    prompt: Optional[str],
    video_id: Optional[str],
) -> TranscribeResponse:
    try:
        return transcriber.transcribe(audio_path, prompt=prompt)
    except TranscriptionError as e:
        e.stage = e.stage or STAGE_TRANSCRIPTION
        e.video_id = e.video_id or video_id
        raise
    except Exception as e:
        raise TranscriptionError(
            f"Transcription of {Path(audio_path).name} failed: {e}",
            stage=STAGE_TRANSCRIPTION,
            video_id=video_id,
        ) from e


def transcribe_audio_input(
    transcriber: Transcriber, audio_input: AudioInput, video_id: Optional[str] = None
) -> TranscribeResponse:
    """
    Transcribe a single file, or every chunk in filename order.

    Chunks are sent one at a time. Each request gets the previous chunk's text
    as a continuation prompt, and chunk i's segment times are shifted by
    i * chunk_duration_seconds.

    Raises:
        TranscriptionError: If any request fails or the chunk set is empty
    """
    logger = logging.getLogger("pipeline")
    if not audio_input.is_chunked:
        response = _transcribe_file(transcriber, audio_input.file_path, None, video_id)
        return TranscribeResponse(
            text=response.text.strip(),
            duration=response.duration,
            segments=list(response.segments),
        )

    chunk_files = sorted(Path(audio_input.chunks_dir_path).glob("*.mp3"))
    if not chunk_files:
        raise TranscriptionError(
            f"No chunk files found in {audio_input.chunks_dir_path}",
            stage=STAGE_TRANSCRIPTION,
            video_id=video_id,
        )

    texts = []
    segments = []
    total_duration = 0.0
    previous_text = None
    for index, chunk_path in enumerate(chunk_files):
        offset = index * audio_input.chunk_duration_seconds
        logger.info(
            f"Transcribing chunk {index + 1}/{len(chunk_files)} ({chunk_path.name}, offset {offset}s)"
        )
        response = _transcribe_file(transcriber, chunk_path, previous_text, video_id)

        for segment in response.segments:
            segments.append(
                TranscribeSegment(
                    start=segment.start + offset,
                    end=segment.end + offset,
                    text=segment.text,
                )
            )
        texts.append(response.text.strip())
        total_duration += response.duration
        previous_text = response.text or None

    return TranscribeResponse(
        text=" ".join(texts).strip(),
        duration=total_duration,
        segments=segments,
    )


@log_function(logger_name="pipeline", log_execution_time=True)
def run_transcription_stage(
    stream: Stream,
    audio_path: Path,
    audio_handler: AudioHandler,
    transcriber: Transcriber,
    enable_chunking: bool,
    chunk_duration_seconds: int,
) -> TranscribeResponse:
    """Split (if enabled) and transcribe one stream's cleaned audio."""
    audio_input = prepare_audio_input(
        stream, audio_path, audio_handler, enable_chunking, chunk_duration_seconds
    )
    transcript = transcribe_audio_input(transcriber, audio_input, stream.video_id)
    logging.getLogger("pipeline").info(
        f"Transcript for {stream.video_id}: {len(transcript.text)} chars, "
        f"{transcript.duration:.0f}s, {len(transcript.segments)} segments"
    )
    return transcript


@log_function(logger_name="pipeline", log_execution_time=True)
def summarize_and_commit(
    stream: Stream,
    transcript: TranscribeResponse,
    summarizer: Summarizer,
    store: DataStore,
) -> Stream:
    """
    Summarize a transcript and persist the stream with its summary.

    The summary is attached to the caller's stream only after the insert
    succeeds.

    Raises:
        SummarizationError: If summarization fails or returns nothing
        PersistenceError: If the insert fails
    """
    logger = logging.getLogger("pipeline")
    try:
        response = summarizer.summarize(transcript.text)
    except SummarizationError as e:
        e.stage = e.stage or STAGE_SUMMARIZATION
        e.video_id = e.video_id or stream.video_id
        raise
    except Exception as e:
        raise SummarizationError(
            f"Summarization failed: {e}",
            stage=STAGE_SUMMARIZATION,
            video_id=stream.video_id,
        ) from e

    summary = (response.summary or "").strip()
    if not summary:
        raise SummarizationError(
            "Summarizer returned an empty summary",
            stage=STAGE_SUMMARIZATION,
            video_id=stream.video_id,
        )

    summarized = dataclasses.replace(stream, summary_md=summary)
    try:
        store.insert_stream(summarized)
    except PersistenceError as e:
        e.stage = e.stage or STAGE_COMMIT
        e.video_id = e.video_id or stream.video_id
        raise
    except Exception as e:
        raise PersistenceError(
            f"Insert failed: {e}", stage=STAGE_COMMIT, video_id=stream.video_id
        ) from e

    stream.summary_md = summary
    logger.info(f"Committed stream {stream.video_id}")
    return stream
