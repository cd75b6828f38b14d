from __future__ import annotations
from typing import List

from .errors import LookupMiss
from .timemap import ActiveTimemap, PlaybackState, RepeatChoice

def _candidates(qstamp: float, active: ActiveTimemap) -> List[float]:
    exact = [e.tstamp for e in active if e.qstamp == qstamp]
    if exact:
        return exact
    # only reachable with a malformed (non-dense) map
    between = []
    for i in range(len(active) - 1):
        if active[i].qstamp < qstamp < active[i + 1].qstamp:
            between.append(active[i].tstamp)
    return between

def lookup(qstamp: float, active: ActiveTimemap, state: PlaybackState, current_time: float) -> float:
    """
    Recording time for a clicked score event. A pending 1st/2nd/3rd repeat
    choice picks that occurrence and is consumed by this call; otherwise the
    occurrence nearest to the current playback time wins.
    """
    choice = state.pending_repeat_choice
    state.pending_repeat_choice = RepeatChoice.NONE

    cands = _candidates(float(qstamp), active)
    if not cands:
        raise LookupMiss(f"no recording time for qstamp {qstamp}")

    if choice != RepeatChoice.NONE:
        idx = int(choice) - 1
        return cands[idx] if idx < len(cands) else cands[0]
    if len(cands) >= 2:
        d0 = abs(current_time - cands[0])
        d1 = abs(current_time - cands[1])
        return cands[0] if d0 <= d1 else cands[1]
    return cands[0]

def note_off_time(active: ActiveTimemap, start_index: int, off_qstamp: float) -> float:
    """Time of the first entry at or after off_qstamp, searching from start_index."""
    for i in range(start_index, len(active)):
        if active[i].qstamp >= off_qstamp:
            return active[i].tstamp
    return active[start_index].tstamp
