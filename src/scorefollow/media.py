from __future__ import annotations
import time
from typing import Callable, List, Optional, Protocol, Sequence

from .timemap import Recording

MEDIA_KINDS = ("youtube", "video", "audio")

class Renderer(Protocol):
    """Resolves ActiveTimemap index ranges (inclusive) to visual elements."""
    def highlight(self, start: int, stop: int) -> None: ...
    def unhighlight(self, start: int, stop: int) -> None: ...

class MediaController(Protocol):
    def current_time(self) -> float: ...
    def play(self) -> None: ...
    def pause(self) -> None: ...
    def seek(self, tstamp: float) -> None: ...

def select_media_kind(recording: Recording, preference: Sequence[str]) -> Optional[str]:
    """First kind in preference order the recording provides."""
    for kind in preference:
        if kind in MEDIA_KINDS and recording.media(kind) is not None:
            return kind
    return None

class WallClockMedia:
    """
    Media clock without a decoder: time advances with the wall clock while
    playing. Listeners receive play/pause events like a media element's.
    """
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self.on_play: List[Callable[[], None]] = []
        self.on_pause: List[Callable[[], None]] = []

    @property
    def playing(self) -> bool:
        return self._started_at is not None

    def current_time(self) -> float:
        if self._started_at is None:
            return self._offset
        return self._offset + (self._clock() - self._started_at)

    def seek(self, tstamp: float):
        self._offset = max(0.0, float(tstamp))
        if self._started_at is not None:
            self._started_at = self._clock()

    def play(self):
        if self._started_at is not None:
            return
        self._started_at = self._clock()
        for cb in list(self.on_play):
            cb()

    def pause(self):
        if self._started_at is None:
            return
        self._offset = self.current_time()
        self._started_at = None
        for cb in list(self.on_pause):
            cb()
