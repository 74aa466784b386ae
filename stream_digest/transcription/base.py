"""
Transcription boundary types.

A Transcriber turns one audio file into text with segment timestamps. The
transcription stage decides whether a stream is sent as a single file or as a
set of fixed-duration chunks (AudioInput) and stitches chunk results together.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class TranscribeSegment:
    start: float
    end: float
    text: str


@dataclass
class TranscribeResponse:
    """Transcript of one audio file (or of a whole stream once reassembled)."""

    text: str
    duration: float = 0.0
    segments: list[TranscribeSegment] = field(default_factory=list)


@dataclass
class AudioInput:
    """
    What to transcribe for one stream.

    Attributes:
        file_path: Cleaned audio file
        chunks_dir_path: Directory holding chunk files; None means single-file mode
        chunk_duration_seconds: Length of each chunk (used for offsets)
    """

    file_path: Path
    chunks_dir_path: Optional[Path] = None
    chunk_duration_seconds: Optional[int] = None

    @classmethod
    def file(cls, file_path: Path) -> "AudioInput":
        return cls(file_path=Path(file_path))

    @classmethod
    def chunked(
        cls, file_path: Path, chunks_dir_path: Path, chunk_duration_seconds: int
    ) -> "AudioInput":
        if chunk_duration_seconds <= 0:
            raise ValueError("chunk_duration_seconds must be positive")
        return cls(
            file_path=Path(file_path),
            chunks_dir_path=Path(chunks_dir_path),
            chunk_duration_seconds=chunk_duration_seconds,
        )

    @property
    def is_chunked(self) -> bool:
        return self.chunks_dir_path is not None


class Transcriber(ABC):
    """Speech-to-text backend."""

    @abstractmethod
    def transcribe(
        self, audio_path: Path, prompt: Optional[str] = None
    ) -> TranscribeResponse:
        """
        Transcribe one audio file.

        Args:
            audio_path: Audio file to send
            prompt: Continuation hint (text of the previous chunk), if any

        Returns:
            TranscribeResponse with segment times relative to the file start
        """
