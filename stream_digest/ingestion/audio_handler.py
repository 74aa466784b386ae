"""
Audio acquisition and cleanup tools.

AudioHandler is the tool boundary used by the audio and transcription stages:
each method performs exactly one operation and writes to the path it is given.
Resumability checks (skip when an artifact already exists) live in the stages,
not here.

YtDlpAudioHandler downloads with the yt-dlp library and runs every cleanup
step through the ffmpeg binary.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import yt_dlp

from stream_digest.logger import log_function
from .models import Stream


class AudioHandler(ABC):
    """Tool boundary for fetching and transforming stream audio."""

    @abstractmethod
    def download_audio(self, stream: Stream, output_path: Path) -> Path:
        """Fetch the stream's audio as mp3 into output_path."""

    @abstractmethod
    def denoise(self, input_path: Path, output_path: Path) -> Path:
        """Reduce background noise."""

    @abstractmethod
    def normalize_volume(self, input_path: Path, output_path: Path) -> Path:
        """Normalize loudness."""

    @abstractmethod
    def trim_silence(self, input_path: Path, output_path: Path) -> Path:
        """Remove leading, trailing and long inner silences."""

    @abstractmethod
    def split_audio(
        self, input_path: Path, chunk_duration_seconds: int, output_dir: Path
    ) -> list[Path]:
        """Split audio into fixed-duration mp3 segments inside output_dir."""


class YtDlpAudioHandler(AudioHandler):
    """yt-dlp download plus ffmpeg filters."""

    DENOISE_FILTER = "afftdn=nf=-25"
    NORMALIZE_FILTER = "loudnorm=I=-16:LRA=11:TP=-1.5"
    TRIM_SILENCE_FILTER = (
        "silenceremove="
        "start_periods=1:start_threshold=-50dB:start_duration=1:"
        "stop_periods=-1:stop_threshold=-50dB:stop_duration=2"
    )

    def __init__(
        self,
        cookies_path: Optional[Path] = None,
        ffmpeg_binary: str = "ffmpeg",
        timeout: int = 3600,
    ):
        self.cookies_path = cookies_path
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout

        if shutil.which(ffmpeg_binary) is None:
            logging.getLogger("audio_handler").warning(
                "FFmpeg not found. Audio cleanup will fail. "
                "Install ffmpeg to process stream audio."
            )

    @log_function(logger_name="audio_handler", log_execution_time=True)
    def download_audio(self, stream: Stream, output_path: Path) -> Path:
        """
        Download the best audio track and convert it to mp3.

        Args:
            stream: Stream to download
            output_path: Expected mp3 path; yt-dlp writes <stem>.<ext> next to it

        Returns:
            Path: output_path

        Raises:
            yt_dlp.utils.DownloadError: If yt-dlp fails
        """
        logger = logging.getLogger("audio_handler")
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        ydl_opts = {
            "format": "bestaudio/best",
            "outtmpl": str(output_path.parent / f"{output_path.stem}.%(ext)s"),
            "noplaylist": True,
            "quiet": True,
            "no_warnings": True,
            "postprocessors": [
                {
                    "key": "FFmpegExtractAudio",
                    "preferredcodec": "mp3",
                    "preferredquality": "64",
                }
            ],
        }
        if self.cookies_path:
            ydl_opts["cookiefile"] = str(self.cookies_path)

        logger.info(f"Downloading audio for {stream.video_id}: {stream.title[:60]}")
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            ydl.download([stream.url])
        return output_path

    def _run_ffmpeg(self, args: list[str], description: str) -> None:
        logger = logging.getLogger("audio_handler")
        cmd = [self.ffmpeg_binary, "-hide_banner", "-loglevel", "error", "-y", *args]
        logger.debug(f"Running ffmpeg ({description}): {' '.join(cmd)}")
        try:
            subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"FFmpeg {description} failed: {e.stderr}")
            raise

    def _filter(self, input_path: Path, output_path: Path, audio_filter: str, description: str) -> Path:
        self._run_ffmpeg(
            [
                "-i",
                str(input_path),
                "-vn",
                "-af",
                audio_filter,
                "-c:a",
                "libmp3lame",
                "-b:a",
                "64k",
                str(output_path),
            ],
            description,
        )
        return Path(output_path)

    @log_function(logger_name="audio_handler", log_execution_time=True)
    def denoise(self, input_path: Path, output_path: Path) -> Path:
        return self._filter(input_path, output_path, self.DENOISE_FILTER, "denoise")

    @log_function(logger_name="audio_handler", log_execution_time=True)
    def normalize_volume(self, input_path: Path, output_path: Path) -> Path:
        return self._filter(input_path, output_path, self.NORMALIZE_FILTER, "normalize")

    @log_function(logger_name="audio_handler", log_execution_time=True)
    def trim_silence(self, input_path: Path, output_path: Path) -> Path:
        return self._filter(
            input_path, output_path, self.TRIM_SILENCE_FILTER, "trim silence"
        )

    @log_function(logger_name="audio_handler", log_execution_time=True)
    def split_audio(
        self, input_path: Path, chunk_duration_seconds: int, output_dir: Path
    ) -> list[Path]:
        """
        Split audio into <stem>_000.mp3, <stem>_001.mp3, ... without re-encoding.

        Returns:
            list[Path]: Chunk files sorted by name
        """
        input_path = Path(input_path)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        pattern = output_dir / f"{input_path.stem}_%03d.mp3"

        self._run_ffmpeg(
            [
                "-i",
                str(input_path),
                "-f",
                "segment",
                "-segment_time",
                str(chunk_duration_seconds),
                "-c",
                "copy",
                str(pattern),
            ],
            "split",
        )
        return sorted(output_dir.glob(f"{input_path.stem}_*.mp3"))
