import logging
import shutil
from pathlib import Path
from typing import Optional, Union


class WorkingArea:
    """Per-run scratch directory holding every stream's audio artifacts.

    The root directory is created on first use, not on construction. Leaving
    the ``with`` block removes the whole tree whatever the outcome; a failed
    removal is logged and never raised.

    Layout:
        <root>/<video_id>/<video_id>.mp3
        <root>/<video_id>/<video_id>_denoised.mp3
        <root>/<video_id>/<video_id>_normalized.mp3
        <root>/<video_id>/<video_id>_trimmed.mp3
        <root>/<video_id>/chunks/<video_id>_trimmed_000.mp3 ...
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self._created = False

    def __enter__(self) -> "WorkingArea":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def path(self) -> Path:
        """Root directory, created if it does not exist yet."""
        if not self._created:
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise RuntimeError(f"Error creating working directory {self.root}: {e}") from e
            self._created = True
        return self.root

    def stream_dir(self, video_id: str) -> Path:
        """Return the directory owned by one stream, creating it if needed."""
        directory = self.path / video_id
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    def cleanup(self, logger: Optional[logging.Logger] = None) -> None:
        logger = logger or logging.getLogger("pipeline")
        if not self.root.exists():
            return
        try:
            shutil.rmtree(self.root)
            logger.info(f"Removed working directory {self.root}")
        except OSError as e:
            logger.warning(f"Failed to remove working directory {self.root}: {e}")
        finally:
            self._created = False
