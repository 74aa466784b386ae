"""
Tests for the selection stage (dedup, oldest first, cap).
"""

from datetime import datetime, timedelta, timezone

import pytest

from stream_digest.exceptions import StorageError
from stream_digest.ingestion.models import Stream
from stream_digest.pipeline.stages import run_selection_stage

from conftest import FakeDataStore


BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_stream(video_id, days_ago=None):
    timestamp = BASE - timedelta(days=days_ago) if days_ago is not None else None
    return Stream(
        video_id=video_id,
        title=f"Sitting {video_id}",
        streamed_date="Streamed live" if timestamp is None else "",
        stream_timestamp=timestamp,
    )


class TestSelectionStage:
    def test_oldest_first(self):
        streams = [make_stream("a", 1), make_stream("b", 5), make_stream("c", 3)]

        selected = run_selection_stage(streams, FakeDataStore(), max_streams=10)

        assert [s.video_id for s in selected] == ["b", "c", "a"]

    def test_existing_ids_are_dropped(self):
        streams = [make_stream("a", 1), make_stream("b", 5), make_stream("c", 3)]
        store = FakeDataStore(existing={"b"})

        selected = run_selection_stage(streams, store, max_streams=10)

        assert [s.video_id for s in selected] == ["c", "a"]

    def test_cap_applies_after_sort(self):
        streams = [make_stream(str(i), i) for i in range(10)]

        selected = run_selection_stage(streams, FakeDataStore(), max_streams=3)

        assert [s.video_id for s in selected] == ["9", "8", "7"]

    @pytest.mark.parametrize("max_streams", [0, 1, 4, 20])
    def test_output_bounded_by_cap_and_new_streams(self, max_streams):
        streams = [make_stream(str(i), i) for i in range(8)]
        store = FakeDataStore(existing={"1", "3", "5"})

        selected = run_selection_stage(streams, store, max_streams=max_streams)

        assert len(selected) == min(max_streams, 5)
        assert not {s.video_id for s in selected} & store.existing

    def test_undated_streams_sort_last_in_discovery_order(self):
        streams = [
            make_stream("undated-1"),
            make_stream("new", 1),
            make_stream("undated-2"),
            make_stream("old", 9),
        ]

        selected = run_selection_stage(streams, FakeDataStore(), max_streams=10)

        assert [s.video_id for s in selected] == ["old", "new", "undated-1", "undated-2"]

    def test_single_batched_lookup(self):
        streams = [make_stream(str(i), i) for i in range(5)]
        store = FakeDataStore()

        run_selection_stage(streams, store, max_streams=2)

        assert store.lookup_calls == [["0", "1", "2", "3", "4"]]

    def test_lookup_failure_raises_storage_error(self):
        store = FakeDataStore(fail_lookup=True)

        with pytest.raises(StorageError) as exc_info:
            run_selection_stage([make_stream("a", 1)], store, max_streams=3)

        assert exc_info.value.stage == "selection"

    def test_unexpected_lookup_exception_is_wrapped(self):
        class BrokenStore(FakeDataStore):
            def get_existing_stream_ids(self, video_ids):
                raise ConnectionError("db down")

        with pytest.raises(StorageError, match="db down") as exc_info:
            run_selection_stage([make_stream("a", 1)], BrokenStore(), max_streams=3)

        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_no_candidates(self):
        assert run_selection_stage([], FakeDataStore(), max_streams=3) == []

    def test_duplicate_ids_selected_once(self):
        first = make_stream("dup", 4)
        again = make_stream("dup", 2)
        streams = [first, make_stream("a", 3), again]

        selected = run_selection_stage(streams, FakeDataStore(), max_streams=5)

        assert [s.video_id for s in selected] == ["dup", "a"]
        assert selected[0] is first

    def test_duplicate_does_not_use_a_slot(self):
        streams = [make_stream("dup", 9), make_stream("dup", 9), make_stream("a", 3)]

        selected = run_selection_stage(streams, FakeDataStore(), max_streams=2)

        assert [s.video_id for s in selected] == ["dup", "a"]
