# src/scorefollow/loader.py
from __future__ import annotations
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
from xml.etree import ElementTree as ET

from .errors import MissingDataError
from .score import ScoreEventIndex, analyze_svg
from .timemap import MediaRef, Recording, Timepoint
from .util.time import decode_qstamp

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

@dataclass
class SystemImage:
    id: str
    width: float = 0.0
    height: float = 0.0

@dataclass
class ScoreData:
    title: str
    movements: List[List[SystemImage]] = field(default_factory=list)
    svg: Dict[str, str] = field(default_factory=dict)
    events: ScoreEventIndex = field(default_factory=ScoreEventIndex)

# ---------- helpers ----------

def _read_json(path: Path, what: str) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MissingDataError(f"cannot read {what} file {path}: {e}") from e
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MissingDataError(f"cannot parse {what} file {path}: {e}") from e

def _scalar(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    return "" if value is None else str(value)

def _first(d: Dict[str, Any], *keys: str, default=None):
    for k in keys:
        if k in d:
            return d[k]
    return default

def _unpack_svg(raw: str) -> str:
    """SVG may be stored plain or base64 encoded."""
    text = raw.strip()
    if text.startswith("<"):
        return text
    try:
        return base64.b64decode(text, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise MissingDataError(f"svg entry is neither markup nor base64: {e}") from e

def _media_ref(value: Any, mime: Optional[str] = None) -> Optional[MediaRef]:
    if not value:
        return None
    if isinstance(value, list):
        value = value[0]
    if isinstance(value, dict):
        f = value.get("file") or value.get("src")
        return MediaRef(str(f), value.get("type", mime)) if f else None
    return MediaRef(str(value), mime)

# ---------- timepoints ----------

def parse_timepoint(raw: Dict[str, Any]) -> Timepoint:
    return Timepoint(
        qstamp=float(raw["qstamp"]),
        tstamp=float(raw["tstamp"]),
        measure=int(_first(raw, "measure", "m", default=0)),
        beat_offset=float(_first(raw, "beatOffset", "beat_offset", "moffset", default=0.0)),
    )

def parse_timemap(raw_list: Any) -> List[Timepoint]:
    if not isinstance(raw_list, list):
        raise MissingDataError("timemap must be a list of timepoints")
    out: List[Timepoint] = []
    for i, raw in enumerate(raw_list):
        try:
            out.append(parse_timepoint(raw))
        except (KeyError, TypeError, ValueError) as e:
            log.warning("skipping malformed timepoint #%d (%r): %s", i, raw, e)
    # performance order is kept: repeated passages revisit earlier qstamps
    backwards = sum(1 for a, b in zip(out, out[1:]) if b.qstamp < a.qstamp)
    if backwards:
        log.warning("timemap qstamps go backwards %d time(s); alignment may skip events", backwards)
    return out

# ---------- recordings ----------

def parse_recording(raw: Dict[str, Any], base_dir: Optional[Path] = None) -> Recording:
    if not isinstance(raw, dict):
        raise MissingDataError(f"recording entry must be an object, got {type(raw).__name__}: {raw!r}")
    if "timemap" not in raw and raw.get("file"):
        fpath = Path(raw["file"])
        if base_dir is not None and not fpath.is_absolute():
            fpath = base_dir / fpath
        loaded = _read_json(fpath, "timemap")
        if not isinstance(loaded, dict) or "timemap" not in loaded:
            raise MissingDataError(f"no timemap defined in {fpath}")
        merged = dict(raw)
        merged.update(loaded)
        raw = merged
    if "timemap" not in raw:
        raise MissingDataError("recording has neither 'timemap' nor 'file'")
    mime = raw.get("type")
    return Recording(
        timemap=parse_timemap(raw["timemap"]),
        video=_media_ref(raw.get("video")),
        audio=_media_ref(raw.get("audio"), mime),
        youtube=_media_ref(raw.get("youtube")),
        title=_scalar(raw.get("title")),
        title_url=_scalar(raw.get("title-url", raw.get("title_url"))),
        url=_scalar(raw.get("url")),
        file=raw.get("file"),
    )

def parse_recordings(data: Any, base_dir: Optional[Path] = None) -> List[Recording]:
    if isinstance(data, dict):
        data = data.get("timemaps")
    if not data:
        raise MissingDataError("no timemaps defined")
    if not isinstance(data, list):
        data = [data]
    recs = [parse_recording(r, base_dir) for r in data]
    if not any(r.timemap for r in recs):
        raise MissingDataError("timemaps contain no usable timepoints")
    return recs

def load_recordings(path: PathLike) -> List[Recording]:
    p = Path(path).expanduser().resolve()
    return parse_recordings(_read_json(p, "timemaps"), base_dir=p.parent)

# ---------- score ----------

def _parse_movements(raw: Any) -> List[List[SystemImage]]:
    if not isinstance(raw, list):
        raise MissingDataError("score must be a list of movements")
    movements: List[List[SystemImage]] = []
    for i, mv in enumerate(raw):
        if not isinstance(mv, list):
            log.warning("skipping movement #%d: expected a list of systems, got %r", i, mv)
            continue
        systems = []
        for s in mv:
            if not isinstance(s, dict):
                log.warning("skipping system %r in movement #%d: expected an object", s, i)
                continue
            try:
                systems.append(SystemImage(
                    id=str(s.get("id", "")),
                    width=float(s.get("width", 0) or 0),
                    height=float(s.get("height", 0) or 0),
                ))
            except (TypeError, ValueError) as e:
                log.warning("skipping system %r in movement #%d: %s", s, i, e)
        movements.append(systems)
    if not any(movements):
        raise MissingDataError("score contains no usable systems")
    return movements

def _parse_qstamps(raw: Any) -> List[float]:
    if not isinstance(raw, list):
        raw = [raw]
    out: List[float] = []
    for q in raw:
        try:
            out.append(decode_qstamp(q))
        except (TypeError, ValueError) as e:
            log.warning("skipping undecodable qstamp %r: %s", q, e)
    return out

def parse_score(data: Any) -> ScoreData:
    if not isinstance(data, dict) or not data.get("score"):
        raise MissingDataError("no score defined")
    movements = _parse_movements(data["score"])

    raw_svg = data.get("svg") or {}
    if not isinstance(raw_svg, dict):
        raise MissingDataError("svg must map system ids to markup")
    svg: Dict[str, str] = {}
    for k, v in raw_svg.items():
        if not isinstance(v, str):
            log.warning("skipping svg entry %r: not text", k)
            continue
        svg[str(k)] = _unpack_svg(v)

    if data.get("qstamps"):
        events = ScoreEventIndex(_parse_qstamps(data["qstamps"]))
    else:
        evs = []
        for sid, markup in svg.items():
            try:
                evs.extend(analyze_svg(markup, system=sid))
            except ET.ParseError as e:
                raise MissingDataError(f"svg for system {sid!r} is not well-formed: {e}") from e
        events = ScoreEventIndex.from_events(evs)
    if not len(events):
        raise MissingDataError("score contains no timed events")

    return ScoreData(
        title=_scalar(data.get("title")),
        movements=movements,
        svg=svg,
        events=events,
    )

def load_score(path: PathLike) -> ScoreData:
    p = Path(path).expanduser().resolve()
    return parse_score(_read_json(p, "score"))

def load_bundle(path: PathLike) -> Tuple[ScoreData, List[Recording]]:
    """Single file carrying both 'score' and 'timemaps'."""
    p = Path(path).expanduser().resolve()
    data = _read_json(p, "data")
    if not isinstance(data, dict):
        raise MissingDataError(f"{p}: expected an object with 'score' and 'timemaps'")
    score_part = data["score"] if isinstance(data.get("score"), dict) else data
    return parse_score(score_part), parse_recordings(data.get("timemaps"), base_dir=p.parent)
