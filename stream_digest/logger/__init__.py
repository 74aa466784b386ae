"""Logging utilities for the stream_digest pipeline."""

from .logging_decorator import (
    PIPELINE_LOGGERS,
    configure_pipeline_logging,
    log_function,
    setup_logging,
)

__all__ = [
    "PIPELINE_LOGGERS",
    "configure_pipeline_logging",
    "log_function",
    "setup_logging",
]
