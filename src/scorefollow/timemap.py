from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterator, List, Optional, Tuple

DEFAULT_POLL_MS = 20
DEFAULT_ANTICIPATION_MS = -20
HIGHLIGHT_TOLERANCE = 0.015   # seconds, absorbs poll-interval jitter

class RepeatChoice(IntEnum):
    NONE = 0
    FIRST = 1
    SECOND = 2
    THIRD = 3

# --- Loaded data (read-only once loaded) ---

@dataclass(frozen=True)
class Timepoint:
    qstamp: float          # score position in quarter notes
    tstamp: float          # seconds in the recording
    measure: int = 0
    beat_offset: float = 0.0   # 0-based beat inside the measure

@dataclass(frozen=True)
class MediaRef:
    file: str
    mime_type: Optional[str] = None

@dataclass
class Recording:
    timemap: List[Timepoint] = field(default_factory=list)
    video: Optional[MediaRef] = None
    audio: Optional[MediaRef] = None
    youtube: Optional[MediaRef] = None
    title: str = ""
    title_url: str = ""
    url: str = ""
    file: Optional[str] = None     # external timemap file, if not inlined

    def media(self, kind: str) -> Optional[MediaRef]:
        return {"youtube": self.youtube, "video": self.video, "audio": self.audio}.get(kind)

# --- Derived per recording ---

@dataclass(frozen=True)
class ActiveEntry:
    qstamp: float
    tstamp: float
    measure: Optional[int] = None       # None for interpolated entries
    beat_offset: Optional[float] = None

class ActiveTimemap:
    """Dense qstamp -> tstamp map, one entry per score event."""

    def __init__(self, entries: List[ActiveEntry], recording_index: int = 0, gaps=None):
        self.entries = list(entries)
        self.recording_index = recording_index
        self.gaps = list(gaps or [])

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ActiveEntry]:
        return iter(self.entries)

    def __getitem__(self, i) -> ActiveEntry:
        return self.entries[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, ActiveTimemap):
            return NotImplemented
        return self.entries == other.entries and self.recording_index == other.recording_index

    def __repr__(self) -> str:
        return f"ActiveTimemap(n={len(self.entries)}, recording={self.recording_index}, gaps={len(self.gaps)})"

    @property
    def qstamps(self) -> List[float]:
        return [e.qstamp for e in self.entries]

    @property
    def tstamps(self) -> List[float]:
        return [e.tstamp for e in self.entries]

    @property
    def first_tstamp(self) -> Optional[float]:
        return self.entries[0].tstamp if self.entries else None

    @property
    def last_tstamp(self) -> Optional[float]:
        return self.entries[-1].tstamp if self.entries else None

# --- Session state ---

@dataclass
class PlaybackState:
    last_polled_time: float = 0.0
    is_playing: bool = False
    pending_repeat_choice: RepeatChoice = RepeatChoice.NONE
    scrub_anchor_start: float = 0.0
    scrub_anchor_stop: float = 0.0     # 0.0 = no stop anchor

    def reset(self):
        self.last_polled_time = 0.0
        self.is_playing = False
        self.pending_repeat_choice = RepeatChoice.NONE
        self.scrub_anchor_start = 0.0
        self.scrub_anchor_stop = 0.0

@dataclass
class TickResult:
    highlight_range: Optional[Tuple[int, int]] = None   # inclusive indices
    ended: bool = False
    reached_stop: bool = False

# --- Deep-link anchors ---

@dataclass(frozen=True)
class Anchor:
    measure: int = 1
    beat: float = 1.0     # 1-based
    repeat: int = 0

@dataclass(frozen=True)
class AnchorRange:
    start: Anchor
    stop: Optional[Anchor] = None
