"""
Error taxonomy for the stream processing pipeline.

Every error is fatal to the current run. Stages wrap collaborator failures
in one of these types (keeping the original as ``__cause__``) so a failed run
reports a single error naming the stage and, when known, the stream.
"""

from typing import Optional


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        video_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.video_id = video_id

    def __str__(self) -> str:
        prefix = ""
        if self.stage:
            prefix += f"[{self.stage}] "
        if self.video_id:
            prefix += f"({self.video_id}) "
        return f"{prefix}{self.message}"


class ConfigurationError(PipelineError):
    """Missing or invalid settings, or an incomplete processor build."""


class ScrapeError(PipelineError):
    """The channel page could not be fetched."""


class ParseError(PipelineError):
    """The channel page no longer matches the expected schema."""


class StorageError(PipelineError):
    """The existing-ids lookup failed."""


class AcquisitionError(PipelineError):
    """Raw audio could not be fetched, or the fetch produced no file."""


class CleanupError(PipelineError):
    """A denoise, normalize, trim or split step failed."""


class TranscriptionError(PipelineError):
    """A transcription request failed."""


class SummarizationError(PipelineError):
    """The summarization request failed or returned nothing."""


class PersistenceError(PipelineError):
    """A processed stream could not be stored."""
