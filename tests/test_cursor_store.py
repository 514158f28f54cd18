"""
Tests for cursor_store module.
"""
import json
import pytest
from datetime import datetime, timedelta
from unittest.mock import patch

from pagefeed.cursor_store import CursorStore, source_key
from pagefeed.models import Cursor

KEY = "news.example.com-0123456789abcdef"


class TestSourceKey:
    """Tests for source_key."""

    def test_format(self):
        """Test hostname prefix and 16-char hash suffix."""
        key = source_key("https://www.gov-online.go.jp/info/index.html")
        hostname, digest = key.rsplit("-", 1)
        assert hostname == "www.gov-online.go.jp"
        assert len(digest) == 16

    def test_stable_and_distinct(self):
        """Test that keys are deterministic and differ per URL."""
        a = source_key("https://news.example.com/a")
        assert a == source_key("https://news.example.com/a")
        assert a != source_key("https://news.example.com/b")


class TestCursorStoreInit:
    """Tests for CursorStore initialization."""

    def test_missing_file_starts_empty(self, tmp_path):
        """Test that a missing state file means no cursors."""
        store = CursorStore(tmp_path / "state.json")
        assert store.state == {"sources": {}}
        assert store.get_cursor(KEY) == Cursor()

    def test_loads_existing_state_file(self, tmp_path):
        """Test that an existing state file is loaded."""
        state_file = tmp_path / "state.json"
        state_file.write_text(json.dumps({
            "sources": {KEY: {"last_link": "https://x/1", "last_run_at": "2026-10-16T04:30:00"}}
        }))

        cursor = CursorStore(state_file).get_cursor(KEY)

        assert cursor.last_link == "https://x/1"
        assert cursor.last_run_at == datetime(2026, 10, 16, 4, 30)

    def test_handles_corrupted_state_file(self, tmp_path):
        """Test that a corrupted state file is backed up and reset."""
        state_file = tmp_path / "state.json"
        state_file.write_text("not valid json {{{")

        store = CursorStore(state_file)

        assert store.state == {"sources": {}}
        backup_file = tmp_path / "state.json.corrupted"
        assert backup_file.exists()
        assert backup_file.read_text() == "not valid json {{{"

    def test_unreadable_state_file_raises(self, tmp_path):
        """Test that I/O errors other than a missing file propagate."""
        state_file = tmp_path / "state.json"
        state_file.write_text("{}")

        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError):
                CursorStore(state_file)


class TestCursorStoreRead:
    """Tests for read_last_link."""

    def test_returns_none_on_first_run(self, tmp_path):
        """Test that no stored cursor reads as None."""
        assert CursorStore(tmp_path / "state.json").read_last_link(KEY) is None

    def test_returns_stored_link(self, tmp_path):
        """Test that a saved cursor is read back."""
        store = CursorStore(tmp_path / "state.json")
        store.save_cursor(KEY, "https://news.example.com/info/1.html")

        assert store.read_last_link(KEY) == "https://news.example.com/info/1.html"

    def test_ignore_last_reads_none(self, tmp_path):
        """Test that ignore_last hides the stored cursor."""
        state_file = tmp_path / "state.json"
        CursorStore(state_file).save_cursor(KEY, "https://news.example.com/info/1.html")

        store = CursorStore(state_file, ignore_last=True)

        assert store.read_last_link(KEY) is None
        assert store.get_cursor(KEY).last_link == "https://news.example.com/info/1.html"


class TestCursorStoreSave:
    """Tests for save_cursor."""

    def test_persists_to_file(self, tmp_path):
        """Test that cursors survive a new store instance."""
        state_file = tmp_path / "state.json"
        now = datetime(2026, 10, 17, 13, 30)
        CursorStore(state_file).save_cursor(KEY, "https://x/2", timestamp=now)

        cursor = CursorStore(state_file).get_cursor(KEY)

        assert cursor.last_link == "https://x/2"
        assert cursor.last_run_at == now

    def test_default_timestamp_is_aware_utc(self, tmp_path):
        """Test that the default run time keeps its UTC offset."""
        state_file = tmp_path / "state.json"
        CursorStore(state_file).save_cursor(KEY, "https://x/2")

        last_run_at = CursorStore(state_file).get_cursor(KEY).last_run_at

        assert last_run_at.utcoffset() == timedelta(0)

    def test_keys_are_independent(self, tmp_path):
        """Test that sources don't overwrite each other's cursors."""
        store = CursorStore(tmp_path / "state.json")
        store.save_cursor("a", "https://a/1")
        store.save_cursor("b", "https://b/1")

        assert store.read_last_link("a") == "https://a/1"
        assert store.read_last_link("b") == "https://b/1"

    def test_ignore_last_skips_write(self, tmp_path):
        """Test that ignore_last leaves the stored cursor untouched."""
        state_file = tmp_path / "state.json"
        CursorStore(state_file).save_cursor(KEY, "https://x/old")
        before = state_file.read_text()

        written = CursorStore(state_file, ignore_last=True).save_cursor(KEY, "https://x/new")

        assert written is False
        assert state_file.read_text() == before

    def test_creates_parent_directories(self, tmp_path):
        """Test that parent directories are created on save."""
        state_file = tmp_path / "nested" / "deep" / "state.json"
        CursorStore(state_file).save_cursor(KEY, "https://x/1")
        assert state_file.exists()

    def test_atomic_write_leaves_no_temp_file(self, tmp_path):
        """Test that the temp file is gone after a successful save."""
        store = CursorStore(tmp_path / "state.json")
        store.save_cursor(KEY, "https://x/1")
        assert not (tmp_path / "state.json.tmp").exists()

    def test_write_error_cleans_up_temp_file(self, tmp_path):
        """Test that the temp file is removed when the rename fails."""
        store = CursorStore(tmp_path / "state.json")

        with patch("pathlib.Path.replace", side_effect=OSError("Mock error")):
            with pytest.raises(OSError):
                store.save_cursor(KEY, "https://x/1")

        assert not (tmp_path / "state.json.tmp").exists()
