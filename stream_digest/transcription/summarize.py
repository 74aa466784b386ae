import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from openai import OpenAI

from stream_digest.llm import _sitting_summary_prompt, count_tokens, truncate_to_tokens
from stream_digest.logger import log_function


logger = logging.getLogger("summarize")

SUMMARIZER_MODEL = "gpt-4o-search-preview"
# 128k window minus room for the system prompt and the generated digest
CONTEXT_LIMIT = 128_000 - 18_000

# Whisper hallucinations on long silences: "1.0-2-1.0-1-1-..." chains
RE_NUMBER_CHAIN = re.compile(r"(\d+(?:[.\-]\d+){5,})")
# Numeric-only garbage lines like "1.0-1-1-1-1-1-1"
RE_NUMERIC_LINE = re.compile(r"^[\d.\-, ]{10,}$", re.MULTILINE)
RE_SPACES = re.compile(r"[ \t]{2,}")


def clean_transcript_text(text: str) -> str:
    """Remove numeric hallucination artifacts from a transcript."""
    text = RE_NUMERIC_LINE.sub("", text)
    text = RE_NUMBER_CHAIN.sub("", text)
    text = RE_SPACES.sub(" ", text)
    return text.strip()


@dataclass
class SummaryResponse:
    summary: str


class Summarizer(ABC):
    """Text summarization backend."""

    @abstractmethod
    def summarize(self, text: str) -> SummaryResponse:
        """Summarize a full stream transcript."""


class OpenAISummarizer(Summarizer):
    """Summarizer backed by an OpenAI chat completion."""

    def __init__(
        self,
        client: OpenAI,
        model: str = SUMMARIZER_MODEL,
        context_limit: int = CONTEXT_LIMIT,
    ):
        self.client = client
        self.model = model
        self.context_limit = context_limit

    def _request_options(self) -> dict:
        # Search-preview models accept web search context for member/bill lookups
        if "search" in self.model:
            return {
                "web_search_options": {
                    "search_context_size": "medium",
                    "user_location": {
                        "type": "approximate",
                        "approximate": {
                            "country": "KE",
                            "city": "Nairobi",
                            "region": "Nairobi",
                        },
                    },
                }
            }
        return {}

    @log_function(logger_name="summarize", log_execution_time=True)
    def summarize(self, text: str) -> SummaryResponse:
        """Generate a Markdown digest from transcript text.

        Args:
            text: Transcript text to summarize.

        Returns:
            SummaryResponse with the Markdown summary.

        Raises:
            ValueError: If text is empty or the model returns no content.
            openai.OpenAIError: If the request fails.
        """
        if not text or not text.strip():
            raise ValueError("Cannot summarize empty or whitespace-only text")

        content = clean_transcript_text(text)
        token_count = count_tokens(content)
        if token_count > self.context_limit:
            logger.warning(
                f"Transcript has {token_count} tokens, truncating to {self.context_limit}"
            )
            content = truncate_to_tokens(content, self.context_limit)

        logger.info(f"Calling {self.model} for transcript summarization")
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": _sitting_summary_prompt()},
                {"role": "user", "content": content},
            ],
            **self._request_options(),
        )

        summary = None
        if response.choices:
            summary = response.choices[0].message.content
        if not summary or not summary.strip():
            raise ValueError("No content in summarization response")

        logger.info("OpenAI returned summary")
        return SummaryResponse(summary=summary.strip())
