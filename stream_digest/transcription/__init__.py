# Transcription module - transcription and summarization backends

from stream_digest.transcription.base import (
    AudioInput,
    Transcriber,
    TranscribeResponse,
    TranscribeSegment,
)
from stream_digest.transcription.transcript import OpenAITranscriber
from stream_digest.transcription.summarize import (
    OpenAISummarizer,
    Summarizer,
    SummaryResponse,
    clean_transcript_text,
)

__all__ = [
    "AudioInput",
    "Transcriber",
    "TranscribeResponse",
    "TranscribeSegment",
    "OpenAITranscriber",
    "OpenAISummarizer",
    "Summarizer",
    "SummaryResponse",
    "clean_transcript_text",
]
