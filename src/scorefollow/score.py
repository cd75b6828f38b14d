# src/scorefollow/score.py
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional

from .util.time import decode_qstamp
from .util.xml import FA, class_tokens, get_ns, parse_markup

NOTE_CLASS_RE = re.compile(r"^note(on|off)-([\dd.]+)$")

@dataclass(frozen=True)
class ScoreEvent:
    """One notated event as rendered; timing lives in numeric fields."""
    on_qstamp: float
    off_qstamp: Optional[float] = None
    element_id: Optional[str] = None
    system: Optional[str] = None
    trill: bool = False

class ScoreEventIndex:
    """Sorted, de-duplicated score qstamps (note-ons and note-offs)."""

    def __init__(self, qstamps: Iterable[float] = ()):
        self._qstamps = tuple(sorted({float(q) for q in qstamps}))

    @classmethod
    def from_events(cls, events: Iterable[ScoreEvent]) -> "ScoreEventIndex":
        qs: List[float] = []
        for ev in events:
            qs.append(ev.on_qstamp)
            if ev.off_qstamp is not None:
                qs.append(ev.off_qstamp)
        return cls(qs)

    def __len__(self) -> int:
        return len(self._qstamps)

    def __iter__(self) -> Iterator[float]:
        return iter(self._qstamps)

    def __getitem__(self, i) -> float:
        return self._qstamps[i]

    def __repr__(self) -> str:
        return f"ScoreEventIndex(n={len(self._qstamps)})"

def analyze_svg(markup: str, system: Optional[str] = None) -> List[ScoreEvent]:
    """
    Collect note events from one rendered system. Elements are <g> groups whose
    class list carries 'noteon-<q>' and optionally 'noteoff-<q>' (q uses 'd'
    as decimal point, e.g. 'noteon-12d5').
    """
    root = parse_markup(markup)
    ns = get_ns(root)
    out: List[ScoreEvent] = []
    for g in FA(root, "g", ns):
        on_q = off_q = None
        tokens = class_tokens(g)
        for tok in tokens:
            m = NOTE_CLASS_RE.match(tok)
            if not m:
                continue
            try:
                val = decode_qstamp(m.group(2))
            except ValueError:
                continue
            if m.group(1) == "on":
                on_q = val
            else:
                off_q = val
        if on_q is None:
            continue
        out.append(ScoreEvent(
            on_qstamp=on_q,
            off_qstamp=off_q,
            element_id=g.attrib.get("id"),
            system=system,
            trill="trill" in tokens,
        ))
    return out
