"""
Live stream processing pipeline module.

This module orchestrates the complete workflow:
    1. Discovery (stream_digest.ingestion.scraper + parser)
    2. Selection against the datastore
    3. Audio download and cleanup (stream_digest.ingestion.audio_handler)
    4. Transcription (stream_digest.transcription)
    5. Summarization and commit

Usage:
    # CLI interface
    python -m stream_digest.pipeline --max-streams 3

    # Programmatic interface
    from stream_digest.pipeline import LiveStreamProcessorBuilder
    result = LiveStreamProcessorBuilder(workdir).store(...)...build().run()
"""

from .orchestrator import (
    LiveStreamProcessor,
    LiveStreamProcessorBuilder,
    PipelineResult,
    PipelineState,
)
from .stages import (
    AudioArtifacts,
    run_discovery_stage,
    run_selection_stage,
    acquire_audio,
    clean_audio,
    run_audio_stage,
    prepare_audio_input,
    transcribe_audio_input,
    run_transcription_stage,
    summarize_and_commit,
)

__all__ = [
    # Orchestration
    "LiveStreamProcessor",
    "LiveStreamProcessorBuilder",
    "PipelineResult",
    "PipelineState",
    # Stage functions
    "AudioArtifacts",
    "run_discovery_stage",
    "run_selection_stage",
    "acquire_audio",
    "clean_audio",
    "run_audio_stage",
    "prepare_audio_input",
    "transcribe_audio_input",
    "run_transcription_stage",
    "summarize_and_commit",
]
