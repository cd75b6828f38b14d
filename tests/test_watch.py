"""Tests for the data file watcher."""
from types import SimpleNamespace

from scorefollow.watch import DataFileWatcher


def test_signals_only_for_watched_paths(tmp_path):
    seen = []
    target = tmp_path / "timemaps.json"
    w = DataFileWatcher([str(target)], seen.append, debounce=0.0)
    w.on_modified(SimpleNamespace(src_path=str(tmp_path / "other.json")))
    w.on_modified(SimpleNamespace(src_path=str(target)))
    assert seen == [str(target)]


def test_atomic_save_uses_destination(tmp_path):
    seen = []
    target = tmp_path / "timemaps.json"
    w = DataFileWatcher([str(target)], seen.append, debounce=0.0)
    w.on_moved(SimpleNamespace(src_path=str(tmp_path / ".tmp123"), dest_path=str(target)))
    assert seen == [str(target)]


def test_debounce(tmp_path):
    seen = []
    target = tmp_path / "timemaps.json"
    w = DataFileWatcher([str(target)], seen.append, debounce=60.0)
    w.on_created(SimpleNamespace(src_path=str(target)))
    w.on_modified(SimpleNamespace(src_path=str(target)))
    assert len(seen) == 1
