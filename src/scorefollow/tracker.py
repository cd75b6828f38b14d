from __future__ import annotations
import logging
from typing import Callable, Optional

from .timemap import (
    ActiveTimemap, PlaybackState, TickResult,
    DEFAULT_POLL_MS, HIGHLIGHT_TOLERANCE,
)

log = logging.getLogger(__name__)

def tick(
    active: ActiveTimemap,
    current_time: float,
    state: PlaybackState,
    tolerance: float = HIGHLIGHT_TOLERANCE,
) -> TickResult:
    """
    Which events became active between the last poll and now.
    Pure; the caller stores current_time into state.last_polled_time afterwards.
    """
    if current_time - state.last_polled_time == 0 or not len(active):
        return TickResult()

    start = -1
    stop = -1
    horizon = current_time + tolerance
    for i, e in enumerate(active):
        if start < 0 and e.tstamp >= state.last_polled_time:
            start = i
        if e.tstamp <= horizon:
            stop = i
        else:
            break

    result = TickResult()
    if start >= 0 and stop >= 0 and start <= stop:
        result.highlight_range = (start, stop)
    result.ended = current_time > active.last_tstamp
    result.reached_stop = bool(state.scrub_anchor_stop) and state.scrub_anchor_stop <= current_time
    return result

class PollTask:
    """Fixed-period repeating callback. Implementations: gui.timer.QtPollTask."""

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def is_active(self) -> bool:
        raise NotImplementedError

PollTaskFactory = Callable[[int, Callable[[], None]], PollTask]

class PlaybackTracker:
    """
    Drives tick() from one poll task and forwards the outcome to the renderer
    and the media controller. At most one task runs per tracker.
    """

    def __init__(self, state: PlaybackState, renderer, media,
                 poll_task_factory: PollTaskFactory,
                 period_ms: int = DEFAULT_POLL_MS,
                 tolerance: float = HIGHLIGHT_TOLERANCE):
        self.state = state
        self.renderer = renderer
        self.media = media
        self.period_ms = int(period_ms)
        self.tolerance = float(tolerance)
        self.active: Optional[ActiveTimemap] = None
        self._factory = poll_task_factory
        self._task: Optional[PollTask] = None

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.is_active()

    def start(self):
        if self.running:
            return
        if self._task is None:
            self._task = self._factory(self.period_ms, self.poll)
        self._task.start()
        log.debug("poll task started (%d ms)", self.period_ms)

    def stop(self):
        if self._task is not None and self._task.is_active():
            self._task.stop()
            log.debug("poll task stopped")

    def poll(self):
        if not self.state.is_playing:
            self.stop()
            return
        if self.active is None:
            return
        now = float(self.media.current_time())
        result = tick(self.active, now, self.state, self.tolerance)
        self.state.last_polled_time = now

        if result.highlight_range is not None:
            a, b = result.highlight_range
            self.renderer.highlight(a, b)
            # renderer only turns off events whose note-off falls in range
            self.renderer.unhighlight(a, b)

        if result.reached_stop:
            log.info("stop anchor reached at %.3f s", now)
            self.state.scrub_anchor_stop = 0.0
            self.media.pause()
        elif result.ended:
            log.info("end of timemap reached at %.3f s, pausing", now)
            self.media.pause()
