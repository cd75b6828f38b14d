from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence

from .errors import AlignmentGapWarning, MissingDataError
from .timemap import ActiveEntry, ActiveTimemap, Timepoint
from .util.time import round_to_ms

log = logging.getLogger(__name__)

def interpolate(qstamp: float, q1: float, t1: float, q2: float, t2: float) -> float:
    """Linear qstamp -> tstamp between two known points, rounded to the ms."""
    if q2 == q1:
        return t1
    return round_to_ms(t1 + (qstamp - q1) / (q2 - q1) * (t2 - t1))

def _extrapolate_past_end(qstamp: float, timemap: Sequence[Timepoint]) -> float:
    last = timemap[-1]
    if len(timemap) < 2:
        return last.tstamp
    prev = timemap[-2]
    if prev.qstamp == last.qstamp:
        return last.tstamp
    return interpolate(qstamp, prev.qstamp, prev.tstamp, last.qstamp, last.tstamp)

def _gap(gaps: List[AlignmentGapWarning], message: str, qstamp: float, index: int):
    w = AlignmentGapWarning(message, qstamp=qstamp, index=index)
    gaps.append(w)
    log.warning("%s (qstamp=%s, event #%d)", message, qstamp, index)

def build_active_timemap(
    timemap: Sequence[Timepoint],
    score_qstamps: Iterable[float],
    recording_index: int = 0,
) -> ActiveTimemap:
    """
    Merge a sparse recording timemap with every score event.

    Walks both lists in ascending qstamp order:
      - exact match: emit the timepoint's tstamp verbatim, advance both
      - score ahead: advance the timemap cursor and retry the same event
      - score behind: interpolate between the last emitted entry and the
        cursor's timepoint (cursor stays)

    Gaps (an event before the first anchor, or events after the timemap ran
    out) get a best-effort time and an AlignmentGapWarning instead of
    stopping the alignment.
    """
    if not timemap:
        raise MissingDataError("cannot align against an empty timemap")

    qstamps = sorted({float(q) for q in score_qstamps})
    out: List[ActiveEntry] = []
    gaps: List[AlignmentGapWarning] = []
    last: Optional[ActiveEntry] = None
    cur = 0
    exhausted_reported = False

    i = 0
    while i < len(qstamps):
        q = qstamps[i]

        if cur >= len(timemap):
            if not exhausted_reported:
                _gap(gaps, "timemap exhausted before the score; extrapolating", q, i)
                exhausted_reported = True
            last = ActiveEntry(q, _extrapolate_past_end(q, timemap))
            out.append(last)
            i += 1
            continue

        tp = timemap[cur]
        if q == tp.qstamp:
            last = ActiveEntry(q, tp.tstamp, tp.measure, tp.beat_offset)
            out.append(last)
            cur += 1
            i += 1
            continue

        if q > tp.qstamp:
            cur += 1
            continue

        if last is None:
            _gap(gaps, "no starting event time before first timemap anchor", q, i)
            last = ActiveEntry(q, tp.tstamp)
        else:
            last = ActiveEntry(q, interpolate(q, last.qstamp, last.tstamp, tp.qstamp, tp.tstamp))
        out.append(last)
        i += 1

    log.debug("aligned %d score events against %d timepoints (%d gaps)",
              len(out), len(timemap), len(gaps))
    return ActiveTimemap(out, recording_index=recording_index, gaps=gaps)
