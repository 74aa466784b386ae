import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from stream_digest.config import PipelineConfig
from stream_digest.db import DataStore
from stream_digest.exceptions import ConfigurationError, PipelineError
from stream_digest.ingestion.audio_handler import AudioHandler
from stream_digest.ingestion.scraper import ChannelScraper
from stream_digest.logger import log_function
from stream_digest.storage import WorkingArea
from stream_digest.transcription import Summarizer, Transcriber
from .stages import (
    run_audio_stage,
    run_discovery_stage,
    run_selection_stage,
    run_transcription_stage,
    summarize_and_commit,
)


class PipelineState(str, Enum):
    """Run states, in the order a successful run visits them."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    SELECTING = "selecting"
    ACQUIRING_AUDIO = "acquiring_audio"
    TRANSCRIBING_AND_SUMMARIZING = "transcribing_and_summarizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    state: PipelineState
    processed: list[str] = field(default_factory=list)
    discovered: int = 0
    selected: int = 0


class LiveStreamProcessor:
    """
    Runs one full pass: discover, select, process audio, transcribe, summarize, commit.

    Every collaborator is injected. Any failure aborts the whole run; the
    working area is removed on every exit path.
    """

    def __init__(
        self,
        config: PipelineConfig,
        store: DataStore,
        transcriber: Transcriber,
        summarizer: Summarizer,
        audio_handler: AudioHandler,
        channel_scraper: ChannelScraper,
        max_audio_workers: Optional[int] = None,
    ):
        self.config = config
        self.store = store
        self.transcriber = transcriber
        self.summarizer = summarizer
        self.audio_handler = audio_handler
        self.channel_scraper = channel_scraper
        self.max_audio_workers = max_audio_workers
        self.state = PipelineState.IDLE
        self.state_history = [PipelineState.IDLE]

    def _transition(self, state: PipelineState) -> None:
        logging.getLogger("pipeline").info(f"State: {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)

    @log_function(logger_name="pipeline", log_execution_time=True)
    def run(self) -> PipelineResult:
        """
        Execute one pipeline run.

        Returns:
            PipelineResult with the ids committed during this run

        Raises:
            PipelineError: The first failure, after the run is marked FAILED
                and the working area is removed
        """
        logger = logging.getLogger("pipeline")
        self.state = PipelineState.IDLE
        self.state_history = [PipelineState.IDLE]
        result = PipelineResult(state=self.state)

        logger.info("=== PIPELINE STARTED ===")
        with WorkingArea(self.config.workdir) as workspace:
            try:
                self._transition(PipelineState.DISCOVERING)
                streams = run_discovery_stage(self.channel_scraper)
                result.discovered = len(streams)

                self._transition(PipelineState.SELECTING)
                selected = run_selection_stage(
                    streams, self.store, self.config.max_streams
                )
                result.selected = len(selected)
                if not selected:
                    logger.info("No new streams to process")

                self._transition(PipelineState.ACQUIRING_AUDIO)
                audio_paths = run_audio_stage(
                    selected,
                    self.audio_handler,
                    workspace,
                    max_workers=self.max_audio_workers,
                )

                self._transition(PipelineState.TRANSCRIBING_AND_SUMMARIZING)
                for stream in selected:
                    transcript = run_transcription_stage(
                        stream,
                        audio_paths[stream.video_id],
                        self.audio_handler,
                        self.transcriber,
                        self.config.enable_chunking,
                        self.config.chunk_duration_seconds,
                    )
                    summarize_and_commit(stream, transcript, self.summarizer, self.store)
                    result.processed.append(stream.video_id)

            except PipelineError as e:
                logger.error(f"Pipeline failed during {self.state.value}: {e}")
                self._transition(PipelineState.FAILED)
                raise
            except Exception as e:
                failed_state = self.state
                logger.error(
                    f"Pipeline failed during {failed_state.value}: {type(e).__name__}: {e}"
                )
                self._transition(PipelineState.FAILED)
                raise PipelineError(str(e), stage=failed_state.value) from e

        self._transition(PipelineState.DONE)
        result.state = self.state
        logger.info(
            f"=== PIPELINE COMPLETED: {len(result.processed)} streams processed ==="
        )
        return result


class LiveStreamProcessorBuilder:
    """
    Collects collaborators and builds a LiveStreamProcessor.

    Example:
        processor = (
            LiveStreamProcessorBuilder("/var/tmp/stream-digest")
            .store(SqlDataStore(database_url))
            .transcriber(OpenAITranscriber(client))
            .summarizer(OpenAISummarizer(client))
            .audio_handler(YtDlpAudioHandler())
            .channel_scraper(YouTubeChannelScraper(channel_url))
            .max_streams(3)
            .with_chunking(900)
            .build()
        )
    """

    DEFAULT_MAX_STREAMS = 5

    def __init__(self, workdir: Union[str, Path]):
        self._workdir = Path(workdir)
        self._store = None
        self._transcriber = None
        self._summarizer = None
        self._audio_handler = None
        self._channel_scraper = None
        self._max_streams = self.DEFAULT_MAX_STREAMS
        self._chunk_duration_seconds = None
        self._max_audio_workers = None

    def store(self, store: DataStore) -> "LiveStreamProcessorBuilder":
        self._store = store
        return self

    def transcriber(self, transcriber: Transcriber) -> "LiveStreamProcessorBuilder":
        self._transcriber = transcriber
        return self

    def summarizer(self, summarizer: Summarizer) -> "LiveStreamProcessorBuilder":
        self._summarizer = summarizer
        return self

    def audio_handler(self, audio_handler: AudioHandler) -> "LiveStreamProcessorBuilder":
        self._audio_handler = audio_handler
        return self

    def channel_scraper(self, channel_scraper: ChannelScraper) -> "LiveStreamProcessorBuilder":
        self._channel_scraper = channel_scraper
        return self

    def max_streams(self, max_streams: int) -> "LiveStreamProcessorBuilder":
        self._max_streams = max_streams
        return self

    def with_chunking(self, chunk_duration_seconds: int) -> "LiveStreamProcessorBuilder":
        self._chunk_duration_seconds = chunk_duration_seconds
        return self

    def max_audio_workers(self, max_workers: int) -> "LiveStreamProcessorBuilder":
        self._max_audio_workers = max_workers
        return self

    def build(self) -> LiveStreamProcessor:
        """
        Raises:
            ConfigurationError: If any collaborator is missing or a limit is invalid
        """
        required = {
            "store": self._store,
            "transcriber": self._transcriber,
            "summarizer": self._summarizer,
            "audio_handler": self._audio_handler,
            "channel_scraper": self._channel_scraper,
        }
        missing = [name for name, value in required.items() if value is None]
        if missing:
            raise ConfigurationError(
                f"Missing pipeline capabilities: {', '.join(missing)}"
            )
        if self._max_streams < 0:
            raise ConfigurationError(f"max_streams must be >= 0, got {self._max_streams}")
        if self._chunk_duration_seconds is not None and self._chunk_duration_seconds <= 0:
            raise ConfigurationError(
                f"Chunk duration must be positive, got {self._chunk_duration_seconds}"
            )

        config = PipelineConfig(
            workdir=self._workdir,
            max_streams=self._max_streams,
            enable_chunking=self._chunk_duration_seconds is not None,
            chunk_duration_seconds=self._chunk_duration_seconds or 0,
        )
        return LiveStreamProcessor(
            config=config,
            store=self._store,
            transcriber=self._transcriber,
            summarizer=self._summarizer,
            audio_handler=self._audio_handler,
            channel_scraper=self._channel_scraper,
            max_audio_workers=self._max_audio_workers,
        )
