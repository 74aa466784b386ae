"""
Tests for the per-run working area.
"""

import shutil
from unittest.mock import patch

import pytest

from stream_digest.storage import WorkingArea


class TestWorkingArea:
    def test_created_lazily(self, tmp_path):
        root = tmp_path / "run"
        with WorkingArea(root) as workspace:
            assert not root.exists()
            stream_dir = workspace.stream_dir("abc")
            assert stream_dir == root / "abc"
            assert stream_dir.is_dir()

    def test_removed_on_success(self, tmp_path):
        root = tmp_path / "run"
        with WorkingArea(root) as workspace:
            (workspace.stream_dir("abc") / "abc.mp3").write_bytes(b"audio")

        assert not root.exists()

    def test_removed_on_error(self, tmp_path):
        root = tmp_path / "run"
        with pytest.raises(RuntimeError):
            with WorkingArea(root) as workspace:
                workspace.stream_dir("abc")
                raise RuntimeError("boom")

        assert not root.exists()

    def test_never_created_is_fine(self, tmp_path):
        with WorkingArea(tmp_path / "unused"):
            pass

    def test_removal_failure_does_not_mask_result(self, tmp_path):
        root = tmp_path / "run"
        with patch.object(shutil, "rmtree", side_effect=OSError("busy")):
            with WorkingArea(root) as workspace:
                workspace.stream_dir("abc")

        assert root.exists()
