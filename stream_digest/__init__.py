"""Transcribe and summarize archived live streams from a video channel."""

__version__ = "0.1.0"
