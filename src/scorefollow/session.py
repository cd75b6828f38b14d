# src/scorefollow/session.py
from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional, Union

from .align import build_active_timemap
from .errors import LookupMiss, MissingDataError
from .loader import ScoreData, load_recordings, load_score
from .lookup import lookup, note_off_time
from .media import select_media_kind
from .options import SessionOptions
from .seek import parse_anchor, resolve_range
from .timemap import ActiveTimemap, MediaRef, PlaybackState, Recording, RepeatChoice
from .tracker import PlaybackTracker, PollTask

log = logging.getLogger(__name__)

def _qt_poll_task(period_ms: int, callback) -> PollTask:
    from .gui.timer import QtPollTask
    return QtPollTask(period_ms, callback)

class FollowSession:
    """
    One score + recording follower. Every session owns its own state, tracker
    and active timemap, so several sessions can run side by side.

    Alignment waits until both the score and the timemaps have been delivered
    (set_score / set_recordings, in any order) and then runs once.
    """

    def __init__(self, renderer, media, options: Optional[SessionOptions] = None,
                 poll_task_factory=None):
        self.renderer = renderer
        self.media = media
        self.options = options.copy() if options is not None else SessionOptions()
        self.state = PlaybackState()

        self.score: Optional[ScoreData] = None
        self.recordings: List[Recording] = []
        self.active: Optional[ActiveTimemap] = None
        self.recording_index: Optional[int] = None
        self.media_kind: Optional[str] = None
        self.audio: Optional[MediaRef] = None
        self.video: Optional[MediaRef] = None

        self.score_ready = False
        self.timemaps_ready = False
        self.initialized = False

        self.tracker = PlaybackTracker(
            self.state, renderer, media,
            poll_task_factory or _qt_poll_task,
            period_ms=self.options.poll_frequency,
            tolerance=self.options.highlight_tolerance,
        )

    # ------------------ readiness ------------------

    @property
    def ready(self) -> bool:
        return self.initialized and self.active is not None

    def set_score(self, score: ScoreData) -> bool:
        if self.initialized:
            self._activate(self.recordings, self.recording_index or 0, score=score)
            return False
        self.score = score
        self.score_ready = True
        return self._setup()

    def set_recordings(self, recordings: List[Recording]) -> bool:
        if self.initialized:
            self.reload_recordings(recordings)
            return False
        self.recordings = list(recordings)
        self.timemaps_ready = True
        return self._setup()

    def load(self, score_path: Union[str, Path], timemaps_path: Union[str, Path]) -> bool:
        """Raises MissingDataError when either file is unusable."""
        self.set_score(load_score(score_path))
        return self.set_recordings(load_recordings(timemaps_path))

    def _setup(self) -> bool:
        if not (self.score_ready and self.timemaps_ready):
            log.debug("waiting: score ready=%s timemaps ready=%s", self.score_ready, self.timemaps_ready)
            return False
        if self.initialized:
            return False
        self.select_recording(0)
        self.initialized = True
        return True

    # ------------------ recordings ------------------

    def _activate(self, recordings: List[Recording], index: Optional[int],
                  score: Optional[ScoreData] = None) -> ActiveTimemap:
        """Aligns first; the session keeps its previous data if that fails."""
        score = score if score is not None else self.score
        if score is None:
            raise MissingDataError("no score loaded")
        if not recordings:
            raise MissingDataError("no timemaps loaded")
        index = max(0, min(int(index or 0), len(recordings) - 1))
        rec = recordings[index]
        active = build_active_timemap(rec.timemap, score.events, recording_index=index)

        self.score = score
        self.recordings = list(recordings)
        self.active = active
        self.tracker.active = active
        self.recording_index = index

        self.media_kind = select_media_kind(rec, self.options.media_preference)
        if rec.video is not None:
            self.set_video(rec.video)
        else:
            self.clear_video()
        if rec.audio is not None:
            self.set_audio(rec.audio)
        else:
            self.clear_audio()
        log.info("recording %d active: %d events, media=%s", index, len(active), self.media_kind)
        return active

    def select_recording(self, index: Optional[int] = 0) -> ActiveTimemap:
        return self._activate(self.recordings, index)

    def reload_recordings(self, recordings: List[Recording]):
        if not self.initialized:
            self.set_recordings(recordings)
            return
        self._activate(recordings, self.recording_index)

    def set_audio(self, ref: MediaRef):
        self.audio = ref

    def clear_audio(self):
        self.audio = None

    def set_video(self, ref: MediaRef):
        self.video = ref

    def clear_video(self):
        self.video = None

    # ------------------ metadata ------------------

    @property
    def work_title(self) -> str:
        return self.score.title if self.score else ""

    def _recording(self, index: Optional[int]) -> Optional[Recording]:
        if index is None:
            index = self.recording_index
        if index is None or not 0 <= index < len(self.recordings):
            return None
        return self.recordings[index]

    def recording_title(self, index: Optional[int] = None) -> str:
        rec = self._recording(index)
        return rec.title if rec else ""

    def recording_title_url(self, index: Optional[int] = None) -> str:
        rec = self._recording(index)
        return rec.title_url if rec else ""

    def recording_url(self, index: Optional[int] = None) -> str:
        rec = self._recording(index)
        return rec.url if rec else ""

    # ------------------ media events ------------------

    def on_play(self):
        if not self.ready:
            log.info("play ignored: score/timemaps not ready")
            return
        self.state.is_playing = True
        now = float(self.media.current_time())
        self.state.last_polled_time = now
        newstart = self.active.first_tstamp + self.options.anticipation_time
        if newstart >= 0.0 and newstart > now:
            log.info("pushing start time ahead to %.3f s", newstart)
            self.media.seek(newstart)
            self.state.last_polled_time = newstart
        self.tracker.start()

    def on_pause(self):
        self.state.is_playing = False
        self.tracker.stop()
        if self.active is not None and len(self.active):
            self.renderer.unhighlight(0, len(self.active) - 1)

    def stop(self):
        self.media.pause()
        self.on_pause()
        self.state.reset()

    def toggle_playback(self):
        if self.state.is_playing:
            self.media.pause()
        else:
            self.media.play()

    def choose_repeat(self, choice: Union[int, RepeatChoice]):
        self.state.pending_repeat_choice = RepeatChoice(int(choice))

    # ------------------ jumping ------------------

    def play_from_qstamp(self, qstamp: float) -> bool:
        """Click on a score event. Unresolvable clicks are ignored."""
        if not self.ready:
            return False
        try:
            t = lookup(qstamp, self.active, self.state, self.media.current_time())
        except LookupMiss as e:
            log.debug("click ignored: %s", e)
            return False
        start = max(0.0, t + self.options.anticipation_time)
        self.media.pause()
        self.state.last_polled_time = start
        self.media.seek(start)
        self.media.play()
        return True

    def play_from_anchor(self, text: str) -> bool:
        """Deep link such as 'm12b3r1-m16'. Unresolvable anchors are ignored."""
        if not self.ready:
            return False
        anchors = parse_anchor(text)
        timemap = self.recordings[self.recording_index].timemap
        try:
            start, stop = resolve_range(anchors, timemap)
        except LookupMiss as e:
            log.info("anchor %r ignored: %s", text, e)
            return False
        self.media.pause()
        self.state.scrub_anchor_start = start
        self.state.scrub_anchor_stop = stop if stop is not None else 0.0
        self.state.last_polled_time = start
        self.media.seek(start)
        self.media.play()
        return True

    def note_duration(self, index: int, off_qstamp: float) -> float:
        """Seconds between an event's onset and its note-off position."""
        if self.active is None:
            return 0.0
        return note_off_time(self.active, index, off_qstamp) - self.active[index].tstamp
