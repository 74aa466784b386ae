"""
Storage module for the per-run working directory.

The pipeline keeps every intermediate audio artifact inside a WorkingArea
whose lifetime matches a single run.
"""

from .workspace import WorkingArea

__all__ = [
    "WorkingArea",
]
