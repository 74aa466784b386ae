"""
Tests for the pipeline CLI wiring.
"""

from unittest.mock import MagicMock, patch

from stream_digest.config import Settings
from stream_digest.exceptions import ConfigurationError, TranscriptionError
from stream_digest.pipeline import PipelineResult, PipelineState
from stream_digest.pipeline.__main__ import main, parse_arguments


def make_settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'streams.db'}",
        openai_api_key="sk-test",
        workdir=tmp_path / "work",
        log_file=str(tmp_path / "logs" / "pipeline.log"),
    )


def chainable_builder():
    builder = MagicMock()
    for method in (
        "store",
        "transcriber",
        "summarizer",
        "audio_handler",
        "channel_scraper",
        "max_streams",
        "with_chunking",
    ):
        getattr(builder, method).return_value = builder
    return builder


class TestParseArguments:
    def test_defaults(self):
        args = parse_arguments([])
        assert args.max_streams is None
        assert args.no_chunking is False
        assert args.init_db is False

    def test_options(self):
        args = parse_arguments(
            ["--max-streams", "4", "--chunk-duration", "600", "--no-chunking", "--workdir", "/tmp/x"]
        )
        assert args.max_streams == 4
        assert args.chunk_duration == 600
        assert args.no_chunking is True
        assert args.workdir == "/tmp/x"


class TestMain:
    def test_configuration_error_exits_non_zero(self):
        with patch(
            "stream_digest.pipeline.__main__.load_settings",
            side_effect=ConfigurationError("DATABASE_URL not found"),
        ):
            assert main([]) == 1

    def test_successful_run(self, tmp_path):
        processor = MagicMock()
        processor.run.return_value = PipelineResult(
            state=PipelineState.DONE, processed=["vid01"], discovered=4, selected=1
        )
        builder = chainable_builder()
        builder.build.return_value = processor

        with patch(
            "stream_digest.pipeline.__main__.load_settings", return_value=make_settings(tmp_path)
        ), patch(
            "stream_digest.pipeline.__main__.LiveStreamProcessorBuilder", return_value=builder
        ) as builder_cls, patch(
            "stream_digest.pipeline.__main__.YtDlpAudioHandler"
        ):
            code = main(["--max-streams", "2", "--chunk-duration", "300", "--init-db"])

        assert code == 0
        builder_cls.assert_called_once_with(tmp_path / "work")
        builder.max_streams.assert_called_once_with(2)
        builder.with_chunking.assert_called_once_with(300)
        assert (tmp_path / "streams.db").exists()

    def test_pipeline_failure_exits_non_zero(self, tmp_path):
        builder = chainable_builder()
        builder.build.return_value.run.side_effect = TranscriptionError("timeout", stage="transcription")

        with patch(
            "stream_digest.pipeline.__main__.load_settings", return_value=make_settings(tmp_path)
        ), patch(
            "stream_digest.pipeline.__main__.LiveStreamProcessorBuilder", return_value=builder
        ), patch(
            "stream_digest.pipeline.__main__.YtDlpAudioHandler"
        ):
            assert main(["--no-chunking"]) == 1

        builder.with_chunking.assert_not_called()

    def test_init_db_stops_when_database_unreachable(self, tmp_path):
        builder = chainable_builder()

        with patch(
            "stream_digest.pipeline.__main__.load_settings", return_value=make_settings(tmp_path)
        ), patch(
            "stream_digest.pipeline.__main__.check_database_connection", return_value=False
        ) as check, patch(
            "stream_digest.pipeline.__main__.LiveStreamProcessorBuilder", return_value=builder
        ) as builder_cls, patch(
            "stream_digest.pipeline.__main__.YtDlpAudioHandler"
        ):
            assert main(["--init-db"]) == 1

        check.assert_called_once()
        builder_cls.assert_not_called()
        assert not (tmp_path / "streams.db").exists()
