"""
Tests for summarization: transcript cleanup, the OpenAI summarizer and the commit step.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from stream_digest.exceptions import PersistenceError, SummarizationError
from stream_digest.ingestion.models import Stream
from stream_digest.pipeline.stages import summarize_and_commit
from stream_digest.transcription import (
    OpenAISummarizer,
    TranscribeResponse,
    clean_transcript_text,
)

from conftest import FakeDataStore, FakeSummarizer


def completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


@pytest.fixture
def no_tokenizer():
    """Avoid loading tiktoken encodings in unit tests."""
    with patch(
        "stream_digest.transcription.summarize.count_tokens",
        side_effect=lambda text: len(text.split()),
    ), patch(
        "stream_digest.transcription.summarize.truncate_to_tokens",
        side_effect=lambda text, limit: " ".join(text.split()[:limit]),
    ):
        yield


class TestCleanTranscriptText:
    def test_removes_number_chains(self):
        text = "The member for Kisumu 1.0-2-1.0-1-1-1-1 rose to speak."
        assert clean_transcript_text(text) == "The member for Kisumu rose to speak."

    def test_removes_numeric_lines(self):
        text = "Order, order.\n1.0-1-1, 1-1-1\nThe House resumes."
        assert clean_transcript_text(text) == "Order, order.\n\nThe House resumes."

    def test_keeps_ordinary_numbers(self):
        text = "Clause 12 of the Finance Bill 2024 passed with 201 votes."
        assert clean_transcript_text(text) == text


class TestOpenAISummarizer:
    def test_returns_summary(self, no_tokenizer):
        client = MagicMock()
        client.chat.completions.create.return_value = completion("## Overview\nBudget debate.")

        result = OpenAISummarizer(client, model="gpt-4o-mini").summarize("Order, order.")

        assert result.summary == "## Overview\nBudget debate."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][1] == {"role": "user", "content": "Order, order."}
        assert "web_search_options" not in kwargs

    def test_search_model_gets_web_search_options(self, no_tokenizer):
        client = MagicMock()
        client.chat.completions.create.return_value = completion("summary")

        OpenAISummarizer(client).summarize("Order, order.")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-search-preview"
        assert "web_search_options" in kwargs

    def test_long_transcript_is_truncated(self, no_tokenizer):
        client = MagicMock()
        client.chat.completions.create.return_value = completion("summary")

        OpenAISummarizer(client, context_limit=3).summarize("one two three four five")

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][1]["content"] == "one two three"

    def test_empty_text_rejected(self, no_tokenizer):
        client = MagicMock()
        with pytest.raises(ValueError):
            OpenAISummarizer(client).summarize("   ")
        client.chat.completions.create.assert_not_called()

    @pytest.mark.parametrize("content", [None, "", "  \n"])
    def test_empty_completion_rejected(self, no_tokenizer, content):
        client = MagicMock()
        client.chat.completions.create.return_value = completion(content)

        with pytest.raises(ValueError, match="No content"):
            OpenAISummarizer(client).summarize("Order, order.")


class TestSummarizeAndCommit:
    def transcript(self):
        return TranscribeResponse(text="The House resumed at 2.30 pm.", duration=60.0)

    def test_attaches_summary_and_persists(self):
        stream = Stream(video_id="abc", title="Sitting")
        store = FakeDataStore()

        summarize_and_commit(stream, self.transcript(), FakeSummarizer(), store)

        assert stream.summary_md.startswith("## Overview")
        assert store.inserted["abc"].summary_md == stream.summary_md

    def test_summarizer_failure(self):
        stream = Stream(video_id="abc", title="Sitting")
        store = FakeDataStore()

        with pytest.raises(SummarizationError) as exc_info:
            summarize_and_commit(stream, self.transcript(), FakeSummarizer(fail=True), store)

        assert exc_info.value.video_id == "abc"
        assert stream.summary_md is None
        assert store.inserted == {}

    def test_empty_summary_is_an_error(self):
        stream = Stream(video_id="abc", title="Sitting")

        with pytest.raises(SummarizationError, match="empty"):
            summarize_and_commit(
                stream, self.transcript(), FakeSummarizer(empty=True), FakeDataStore()
            )

    def test_insert_failure_leaves_stream_unsummarized(self):
        stream = Stream(video_id="abc", title="Sitting")

        with pytest.raises(PersistenceError) as exc_info:
            summarize_and_commit(
                stream, self.transcript(), FakeSummarizer(), FakeDataStore(fail_insert=True)
            )

        assert exc_info.value.stage == "commit"
        assert stream.summary_md is None

    def test_duplicate_insert_is_not_an_error(self):
        stream = Stream(video_id="abc", title="Sitting")
        store = FakeDataStore(existing={"abc"})

        summarize_and_commit(stream, self.transcript(), FakeSummarizer(), store)

        assert store.inserted == {}
        assert stream.summary_md is not None
