"""
Configuration settings for the stream processing pipeline.

Settings are read from the environment (a local .env file is loaded first).
The orchestrator itself only consumes PipelineConfig; the remaining fields
are used to wire concrete collaborators in the CLI.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from stream_digest.exceptions import ConfigurationError


DEFAULT_CHANNEL_URL = "https://www.youtube.com/@ParliamentofKenyaChannel/streams"
DEFAULT_WORKDIR = "/var/tmp/stream-digest"
DEFAULT_CHUNK_DURATION_SECONDS = 900  # 15 minutes keeps whisper uploads under 25MB
DEFAULT_MAX_STREAMS = 3


@dataclass
class PipelineConfig:
    """Run parameters consumed by the orchestrator."""

    workdir: Path
    max_streams: int = DEFAULT_MAX_STREAMS
    enable_chunking: bool = True
    chunk_duration_seconds: int = DEFAULT_CHUNK_DURATION_SECONDS


@dataclass
class Settings:
    """Process-level settings for wiring the pipeline."""

    database_url: str
    openai_api_key: str
    channel_url: str = DEFAULT_CHANNEL_URL
    cookies_path: Optional[Path] = None
    max_streams: int = DEFAULT_MAX_STREAMS
    chunk_duration_seconds: int = DEFAULT_CHUNK_DURATION_SECONDS
    enable_chunking: bool = True
    workdir: Path = Path(DEFAULT_WORKDIR)
    transcription_model: str = "whisper-1"
    summarizer_model: str = "gpt-4o-search-preview"
    log_file: str = "logs/pipeline.log"

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            workdir=self.workdir,
            max_streams=self.max_streams,
            enable_chunking=self.enable_chunking,
            chunk_duration_seconds=self.chunk_duration_seconds,
        )


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {parsed}")
    return parsed


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Returns:
        Settings: populated settings

    Raises:
        ConfigurationError: If DATABASE_URL or OPENAI_API_KEY is missing, or a
            numeric variable cannot be parsed.
    """
    load_dotenv()

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError("DATABASE_URL not found in environment variables")

    openai_api_key = os.getenv("OPENAI_API_KEY")
    if not openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY not found in environment variables")

    cookies_path = os.getenv("YTDLP_COOKIES_PATH")

    return Settings(
        database_url=database_url,
        openai_api_key=openai_api_key,
        channel_url=os.getenv("CHANNEL_URL", DEFAULT_CHANNEL_URL),
        cookies_path=Path(cookies_path) if cookies_path else None,
        max_streams=_get_int("MAX_STREAMS_TO_PROCESS", DEFAULT_MAX_STREAMS),
        chunk_duration_seconds=_get_int(
            "CHUNK_DURATION_SECONDS", DEFAULT_CHUNK_DURATION_SECONDS
        ),
        enable_chunking=_get_bool("ENABLE_CHUNKING", True),
        workdir=Path(os.getenv("WORKDIR", DEFAULT_WORKDIR)),
        transcription_model=os.getenv("TRANSCRIPTION_MODEL", "whisper-1"),
        summarizer_model=os.getenv("SUMMARIZER_MODEL", "gpt-4o-search-preview"),
        log_file=os.getenv("LOG_FILE", "logs/pipeline.log"),
    )
