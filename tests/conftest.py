"""Shared fakes for the renderer, media clock and poll task."""
import json

import pytest

from scorefollow.config import load_config
from scorefollow.options import SessionOptions
from scorefollow.timemap import ActiveEntry, ActiveTimemap, Timepoint


class FakeRenderer:
    def __init__(self):
        self.highlighted = []
        self.unhighlighted = []

    def highlight(self, start, stop):
        self.highlighted.append((start, stop))

    def unhighlight(self, start, stop):
        self.unhighlighted.append((start, stop))


class FakeMedia:
    """Media element stand-in; time only moves when a test sets it."""

    def __init__(self, t=0.0):
        self.t = t
        self.playing = False
        self.seeks = []
        self.on_play = []
        self.on_pause = []

    def current_time(self):
        return self.t

    def seek(self, tstamp):
        self.seeks.append(tstamp)
        self.t = tstamp

    def play(self):
        if self.playing:
            return
        self.playing = True
        for cb in list(self.on_play):
            cb()

    def pause(self):
        if not self.playing:
            return
        self.playing = False
        for cb in list(self.on_pause):
            cb()


class FakePollTask:
    created = []

    def __init__(self, period_ms, callback):
        self.period_ms = period_ms
        self.callback = callback
        self.active = False
        self.starts = 0
        FakePollTask.created.append(self)

    def start(self):
        self.starts += 1
        self.active = True

    def stop(self):
        self.active = False

    def is_active(self):
        return self.active

    def fire(self):
        self.callback()


@pytest.fixture(autouse=True)
def _reset_poll_tasks():
    FakePollTask.created = []
    yield


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def media():
    return FakeMedia()


@pytest.fixture
def options(tmp_path):
    """Packaged defaults only; never the developer's ~/.config file."""
    return SessionOptions(load_config(user_path=tmp_path / "absent.yaml"))


def make_active(tstamps, qstamps=None, recording_index=0):
    if qstamps is None:
        qstamps = [float(i) for i in range(len(tstamps))]
    return ActiveTimemap(
        [ActiveEntry(q, t) for q, t in zip(qstamps, tstamps)],
        recording_index=recording_index,
    )


def tp(q, t, m=0, b=0.0):
    return Timepoint(qstamp=q, tstamp=t, measure=m, beat_offset=b)


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
