from __future__ import annotations
import logging
import math
import re
from typing import List, Optional, Sequence, Tuple

from .errors import LookupMiss
from .timemap import Anchor, AnchorRange, Timepoint

log = logging.getLogger(__name__)

RANGE_RE = re.compile(r"^(.*?)-([a-z].*)$")
MEASURE_RE = re.compile(r"m(\d+)")
BEAT_RE = re.compile(r"b(-?\d+\.?\d*)")
REPEAT_RE = re.compile(r"r(\d+)")

def _parse_single(text: str) -> Anchor:
    measure, beat, repeat = 1, 1.0, 0
    m = MEASURE_RE.search(text)
    if m:
        measure = int(m.group(1))
    m = BEAT_RE.search(text)
    if m:
        try:
            beat = float(m.group(1))
        except ValueError:
            pass
    m = REPEAT_RE.search(text)
    if m:
        repeat = int(m.group(1))
    return Anchor(measure=measure, beat=beat, repeat=repeat)

def parse_anchor(text: str) -> AnchorRange:
    """
    'm12b3r1-m16' -> AnchorRange(start=m12 beat 3 repeat 1, stop=m16 beat 1).
    Components that do not parse keep their defaults (m1 b1 r0).
    """
    text = (text or "").strip().lstrip("#")
    stop_text = ""
    m = RANGE_RE.match(text)
    if m:
        text, stop_text = m.group(1), m.group(2)
    start = _parse_single(text)
    stop = _parse_single(stop_text) if stop_text else None
    return AnchorRange(start=start, stop=stop)

def resolve(measure: int, beat: float, repeat: int, timemap: Sequence[Timepoint]) -> float:
    """
    Recording time of a measure/beat position (beat is 1-based).
    A position played more than once resolves to its second occurrence unless
    repeat == 1 asks for the first.
    """
    hits: List[int] = []
    for i, tp in enumerate(timemap):
        if tp.measure != measure:
            continue
        if not math.isclose(tp.beat_offset + 1, beat, abs_tol=1e-9):
            continue
        hits.append(i)
    if not hits:
        raise LookupMiss(f"no timepoint at measure {measure} beat {beat}")
    if len(hits) == 1:
        return timemap[hits[0]].tstamp
    return timemap[hits[0] if repeat == 1 else hits[1]].tstamp

def resolve_anchor(anchor: Anchor, timemap: Sequence[Timepoint]) -> float:
    return resolve(anchor.measure, anchor.beat, anchor.repeat, timemap)

def resolve_range(anchors: AnchorRange, timemap: Sequence[Timepoint]) -> Tuple[float, Optional[float]]:
    start = resolve_anchor(anchors.start, timemap)
    stop: Optional[float] = None
    if anchors.stop is not None:
        try:
            stop = resolve_anchor(anchors.stop, timemap)
        except LookupMiss:
            log.info("stop anchor %s not found, ignoring", anchors.stop)
            stop = None
        if stop is not None and stop <= start:
            log.info("stop anchor %.3f s is not after start %.3f s, ignoring", stop, start)
            stop = None
    return start, stop
