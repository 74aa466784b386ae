"""
Ingestion package for the live stream digest.

The ingestion side of the pipeline consists of:

1. Channel scrape (scraper.py):
   - Fetches the channel "streams" tab HTML

2. Discovery parsing (parser.py):
   - Extracts the embedded ytInitialData JSON
   - Builds Stream records, skipping upcoming, unaired and short streams

3. Audio handling (audio_handler.py):
   - Downloads stream audio with yt-dlp
   - Denoises, normalizes, trims silence and splits with ffmpeg

Modules:
    models: Stream record and relative-time parsing
    scraper: Channel page fetch
    parser: Channel page parsing
    audio_handler: Audio download and cleanup tools
"""

from .models import Stream, timestamp_from_time_ago
from .parser import parse_channel_page, parse_duration_to_seconds
from .scraper import ChannelScraper, YouTubeChannelScraper
from .audio_handler import AudioHandler, YtDlpAudioHandler

__all__ = [
    "Stream",
    "timestamp_from_time_ago",
    "parse_channel_page",
    "parse_duration_to_seconds",
    "ChannelScraper",
    "YouTubeChannelScraper",
    "AudioHandler",
    "YtDlpAudioHandler",
]
