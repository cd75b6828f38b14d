from __future__ import annotations
import os
import time
from typing import Callable, Iterable

from watchdog.events import FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

class DataFileWatcher(FileSystemEventHandler):
    """Calls on_change(path) when one of the watched score/timemap files changes."""

    def __init__(self, paths: Iterable[str], on_change: Callable[[str], None], debounce: float = 0.3):
        super().__init__()
        self.paths = {os.path.abspath(p) for p in paths}
        self.on_change = on_change
        self.debounce = debounce
        self._last_sig = {}

    def _maybe_signal(self, candidate_path: str):
        path = os.path.abspath(candidate_path)
        if path not in self.paths:
            return
        now = time.time()
        if now - self._last_sig.get(path, 0.0) > self.debounce:
            self._last_sig[path] = now
            self.on_change(path)

    def on_modified(self, event):
        self._maybe_signal(event.src_path)

    def on_created(self, event):
        self._maybe_signal(event.src_path)

    def on_moved(self, event):
        # atomic saves land on dest_path
        dest = getattr(event, "dest_path", None)
        self._maybe_signal(dest or event.src_path)

def watch_files(paths: Iterable[str], on_change: Callable[[str], None]) -> PollingObserver:
    """Start a polling observer over the directories of paths; caller stops it."""
    paths = [os.path.abspath(p) for p in paths]
    handler = DataFileWatcher(paths, on_change)
    observer = PollingObserver()
    for d in sorted({os.path.dirname(p) for p in paths}):
        observer.schedule(handler, d, recursive=False)
    observer.start()
    return observer
