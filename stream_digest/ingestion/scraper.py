"""
Channel page scraper.

Fetches the raw HTML of the channel's "streams" tab. Parsing is left to
stream_digest.ingestion.parser.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from stream_digest.config import DEFAULT_CHANNEL_URL
from stream_digest.exceptions import ScrapeError
from stream_digest.logger import log_function


# English labels keep "Streamed N days ago" parseable
DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class ChannelScraper(ABC):
    """Source of the raw channel page document."""

    @abstractmethod
    def scrape_channel(self) -> str:
        """Fetch the channel page.

        Returns:
            str: Raw HTML document
        """


class YouTubeChannelScraper(ChannelScraper):
    """Fetches a YouTube channel streams page over HTTP."""

    def __init__(
        self,
        channel_url: str = DEFAULT_CHANNEL_URL,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.channel_url = channel_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @log_function(logger_name="scraper", log_execution_time=True)
    def scrape_channel(self) -> str:
        """
        Fetch the channel streams page.

        Returns:
            str: Raw HTML document

        Raises:
            ScrapeError: On network errors or non-2xx responses.
        """
        logger = logging.getLogger("scraper")
        logger.info(f"Fetching channel page from {self.channel_url}...")
        try:
            response = self.session.get(
                self.channel_url, headers=DEFAULT_HEADERS, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Error fetching channel page: {e}")
            raise ScrapeError(
                f"Failed to fetch {self.channel_url}: {e}", stage="discovery"
            ) from e

        logger.info(f"Fetched channel page ({len(response.text):,} chars)")
        return response.text
