#!/usr/bin/env python3
"""
OpenAI Whisper transcription backend.

Sends one audio file per request with verbose_json output so segment
timestamps come back with the text.
"""

import logging
from pathlib import Path
from typing import Optional

from openai import OpenAI

from stream_digest.llm import _transcription_prompt
from stream_digest.logger import log_function
from .base import Transcriber, TranscribeResponse, TranscribeSegment


TRANSCRIPTION_MODEL = "whisper-1"


class OpenAITranscriber(Transcriber):
    """Transcriber backed by the OpenAI audio transcription endpoint."""

    def __init__(self, client: OpenAI, model: str = TRANSCRIPTION_MODEL, language: Optional[str] = "en"):
        self.client = client
        self.model = model
        self.language = language

    @log_function(logger_name="transcript", log_execution_time=True)
    def transcribe(
        self, audio_path: Path, prompt: Optional[str] = None
    ) -> TranscribeResponse:
        """
        Transcribe one audio file.

        Args:
            audio_path: Path to the audio file (must be under the 25MB upload limit)
            prompt: Previous chunk text, used as continuation context

        Returns:
            TranscribeResponse with text, duration and segments

        Raises:
            FileNotFoundError: If the audio file does not exist
            openai.OpenAIError: If the request fails
        """
        logger = logging.getLogger("transcript")
        audio_path = Path(audio_path)
        if not audio_path.exists():
            raise FileNotFoundError(f"Audio file not found: {audio_path}")

        request = {
            "model": self.model,
            "response_format": "verbose_json",
            "timestamp_granularities": ["segment"],
        }
        if self.language:
            request["language"] = self.language
        if prompt:
            request["prompt"] = _transcription_prompt(prompt)

        logger.info(f"Transcribing {audio_path.name} with {self.model}")
        with open(audio_path, "rb") as audio_file:
            response = self.client.audio.transcriptions.create(file=audio_file, **request)

        segments = [
            TranscribeSegment(
                start=float(segment.start),
                end=float(segment.end),
                text=segment.text,
            )
            for segment in (getattr(response, "segments", None) or [])
        ]
        duration = float(getattr(response, "duration", 0.0) or 0.0)

        logger.info(
            f"Transcribed {audio_path.name}: {duration:.1f}s, {len(segments)} segments"
        )
        return TranscribeResponse(text=response.text, duration=duration, segments=segments)
