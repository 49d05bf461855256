"""Tests for the JSON-file cursor store."""

import json
from unittest.mock import patch

import pytest

from twosense.models import CursorState
from twosense.state import CursorStore


def test_missing_file_is_uninitialized(tmp_path):
    store = CursorStore(tmp_path, "default")
    assert store.load() == CursorState()
    assert store.load_raw() == {}


def test_save_then_load(tmp_path):
    store = CursorStore(tmp_path / "nested", "tenant-a")
    store.save(CursorState("2026-10-19T08:00:00.000Z"))

    assert store.load().last_event_time == "2026-10-19T08:00:00.000Z"
    raw = json.loads(store.state_file.read_text(encoding="utf-8"))
    assert raw["lastEventTime"] == "2026-10-19T08:00:00.000Z"
    assert raw["instance"] == "tenant-a"
    assert "updated_at" in raw


def test_no_tmp_file_left_behind(tmp_path):
    store = CursorStore(tmp_path, "a")
    store.save(CursorState("t"))
    assert [p.name for p in tmp_path.iterdir()] == ["poll_state_a.json"]


def test_instances_are_isolated(tmp_path):
    CursorStore(tmp_path, "a").save(CursorState("2026-01-01T00:00:00.000Z"))
    assert CursorStore(tmp_path, "b").load() == CursorState()


def test_unsafe_instance_name_sanitized(tmp_path):
    store = CursorStore(tmp_path, "../etc/passwd")
    assert store.state_file.parent == tmp_path
    assert "/" not in store.state_file.name.replace("poll_state_", "")


def test_corrupt_file_treated_as_empty(tmp_path, caplog):
    store = CursorStore(tmp_path, "x")
    store.state_file.write_text("{not json", encoding="utf-8")

    assert store.load() == CursorState()
    assert "cursor_state_load_failed" in caplog.text


def test_save_failure_raises_and_keeps_old_file(tmp_path):
    store = CursorStore(tmp_path, "x")
    store.save(CursorState("old"))

    with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
        with pytest.raises(OSError):
            store.save(CursorState("new"))

    assert store.load().last_event_time == "old"
