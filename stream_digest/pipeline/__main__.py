#!/usr/bin/env python3
"""
CLI interface for the live stream digest pipeline.

One invocation runs one full pass:
    1. Fetch the channel streams page and parse archived streams
    2. Drop streams already stored, keep the oldest N
    3. Download and clean audio (in parallel)
    4. Transcribe (chunked) and summarize each stream
    5. Store each stream with its summary

Recurring runs are left to an external scheduler (cron, systemd timer).

Usage:
    python -m stream_digest.pipeline
    python -m stream_digest.pipeline --max-streams 5 --chunk-duration 600
    python -m stream_digest.pipeline --no-chunking --workdir /tmp/digest --verbose
    python -m stream_digest.pipeline --init-db
"""

import sys
import argparse
from pathlib import Path

from stream_digest.config import load_settings
from stream_digest.db import SqlDataStore, check_database_connection
from stream_digest.exceptions import PipelineError, StorageError
from stream_digest.ingestion.audio_handler import YtDlpAudioHandler
from stream_digest.ingestion.scraper import YouTubeChannelScraper
from stream_digest.llm import init_llm_openai
from stream_digest.logger import configure_pipeline_logging
from stream_digest.transcription import OpenAISummarizer, OpenAITranscriber
from .orchestrator import LiveStreamProcessorBuilder


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Unset options fall back to the environment (see stream_digest.config).

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Live stream digest pipeline - discovers archived streams, transcribes and summarizes them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  DATABASE_URL             Database connection string (required)
  OPENAI_API_KEY           OpenAI API key (required)
  CHANNEL_URL              Channel streams page to scan
  YTDLP_COOKIES_PATH       Cookies file passed to yt-dlp
  MAX_STREAMS_TO_PROCESS   Streams per run (default: 3)
  CHUNK_DURATION_SECONDS   Chunk length for transcription (default: 900)
  ENABLE_CHUNKING          Split audio before transcription (default: true)
  WORKDIR                  Working directory, removed after each run

Notes:
  - Streams already in the database are never processed twice
  - Oldest unprocessed streams are handled first
  - Any failure aborts the run; the next run resumes from the database state
  - Logs written to logs/pipeline.log
        """,
    )
    parser.add_argument(
        "--max-streams",
        type=int,
        metavar="N",
        help="Process at most N new streams this run",
    )
    parser.add_argument(
        "--chunk-duration",
        type=int,
        metavar="SECONDS",
        help="Chunk length in seconds for transcription",
    )
    parser.add_argument(
        "--no-chunking",
        action="store_true",
        help="Transcribe each stream as a single file",
    )
    parser.add_argument(
        "--workdir",
        type=str,
        metavar="PATH",
        help="Working directory for audio artifacts (removed after the run)",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create database tables before running",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for the pipeline CLI."""
    args = parse_arguments(argv)

    try:
        settings = load_settings()
    except PipelineError as e:
        print(f"✗ Configuration error: {e}", file=sys.stderr)
        return 1

    logger = configure_pipeline_logging(log_file=settings.log_file, verbose=args.verbose)

    config = settings.pipeline_config()
    if args.max_streams is not None:
        config.max_streams = args.max_streams
    if args.chunk_duration is not None:
        config.chunk_duration_seconds = args.chunk_duration
    if args.no_chunking:
        config.enable_chunking = False
    if args.workdir:
        config.workdir = Path(args.workdir)

    logger.info("=" * 80)
    logger.info("Pipeline execution started")
    logger.info(f"Channel: {settings.channel_url}")
    logger.info(f"Max streams: {config.max_streams}")
    if config.enable_chunking:
        logger.info(f"Chunking: {config.chunk_duration_seconds}s")
    else:
        logger.info("Chunking: disabled")
    logger.info(f"Workdir: {config.workdir}")
    logger.info("=" * 80)

    try:
        store = SqlDataStore(settings.database_url)
        if args.init_db:
            if not check_database_connection(store.engine):
                raise StorageError(f"Database unreachable: {settings.database_url}")
            store.init_schema()

        client = init_llm_openai(api_key=settings.openai_api_key)
        builder = (
            LiveStreamProcessorBuilder(config.workdir)
            .store(store)
            .transcriber(OpenAITranscriber(client, model=settings.transcription_model))
            .summarizer(OpenAISummarizer(client, model=settings.summarizer_model))
            .audio_handler(YtDlpAudioHandler(cookies_path=settings.cookies_path))
            .channel_scraper(YouTubeChannelScraper(settings.channel_url))
            .max_streams(config.max_streams)
        )
        if config.enable_chunking:
            builder = builder.with_chunking(config.chunk_duration_seconds)

        result = builder.build().run()

        logger.info("Pipeline execution completed successfully")
        print("\n" + "=" * 80)
        print("✓ PIPELINE COMPLETED SUCCESSFULLY")
        print(
            f"  Discovered: {result.discovered}  Selected: {result.selected}  "
            f"Processed: {len(result.processed)}"
        )
        for video_id in result.processed:
            print(f"    - {video_id}")
        print("=" * 80)
        return 0

    except PipelineError as e:
        logger.error(f"Pipeline execution failed: {e}")
        print(f"\n✗ PIPELINE FAILED: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
