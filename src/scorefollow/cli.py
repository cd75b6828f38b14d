from __future__ import annotations
import argparse, logging, pathlib, queue, sys
from typing import List, Optional, Tuple

from .align import build_active_timemap
from .config import load_config
from .errors import LookupMiss, MissingDataError
from .loader import ScoreData, load_bundle, load_recordings, load_score
from .lookup import lookup
from .options import SessionOptions
from .seek import parse_anchor, resolve_range
from .timemap import PlaybackState, Recording, RepeatChoice

class ConsoleRenderer:
    """Prints highlight changes instead of colouring notes."""

    def __init__(self, out=None):
        self.out = out or sys.stdout
        self.session = None

    def _span(self, start: int, stop: int) -> str:
        active = self.session.active if self.session else None
        if active is None:
            return f"{start}..{stop}"
        a, b = active[start], active[stop]
        return f"{start}..{stop}  q={a.qstamp:g}..{b.qstamp:g}  t={a.tstamp:.3f}..{b.tstamp:.3f}"

    def highlight(self, start: int, stop: int):
        print(f"[play] on   {self._span(start, stop)}", file=self.out)

    def unhighlight(self, start: int, stop: int):
        pass

def _existing(path_str: Optional[str], what: str) -> Optional[pathlib.Path]:
    if not path_str:
        return None
    p = pathlib.Path(path_str).expanduser().resolve()
    if not p.exists():
        print(f"[cli] ERROR: {what} not found: {p}", file=sys.stderr)
        sys.exit(1)
    return p

def _load(args) -> Tuple[Optional[ScoreData], List[Recording]]:
    data = _existing(getattr(args, "data", None), "data file")
    if data:
        return load_bundle(data)
    score_path = _existing(getattr(args, "score", None), "score file")
    tm_path = _existing(args.timemaps, "timemaps file")
    if tm_path is None:
        print("[cli] ERROR: --timemaps (or --data) is required", file=sys.stderr)
        sys.exit(1)
    score = load_score(score_path) if score_path else None
    return score, load_recordings(tm_path)

def _pick(recs: List[Recording], index: int) -> Tuple[int, Recording]:
    index = max(0, min(index, len(recs) - 1))
    return index, recs[index]

# ---------- commands ----------

def cmd_align(args, cfg) -> int:
    score, recs = _load(args)
    if score is None:
        print("[cli] ERROR: align needs --score or --data", file=sys.stderr)
        return 1
    idx, rec = _pick(recs, args.recording)
    active = build_active_timemap(rec.timemap, score.events, recording_index=idx)
    for i, e in enumerate(active):
        mark = "" if e.measure is None else f"  m{e.measure} b{e.beat_offset + 1:g}"
        print(f"{i:5d}  q={e.qstamp:<10g} t={e.tstamp:.3f}{mark}")
    print(f"[cli] recording={idx} events={len(active)} timepoints={len(rec.timemap)} gaps={len(active.gaps)}")
    return 0

def cmd_seek(args, cfg) -> int:
    _, recs = _load(args)
    idx, rec = _pick(recs, args.recording)
    try:
        start, stop = resolve_range(parse_anchor(args.anchor), rec.timemap)
    except LookupMiss as e:
        print(f"[cli] not found: {e}", file=sys.stderr)
        return 3
    print(f"[cli] start = {start:.3f}")
    if stop is not None:
        print(f"[cli] stop  = {stop:.3f}")
    return 0

def cmd_lookup(args, cfg) -> int:
    score, recs = _load(args)
    if score is None:
        print("[cli] ERROR: lookup needs --score or --data", file=sys.stderr)
        return 1
    idx, rec = _pick(recs, args.recording)
    active = build_active_timemap(rec.timemap, score.events, recording_index=idx)
    state = PlaybackState(pending_repeat_choice=RepeatChoice(args.repeat))
    try:
        t = lookup(args.qstamp, active, state, args.at)
    except LookupMiss as e:
        print(f"[cli] not found: {e}", file=sys.stderr)
        return 3
    print(f"[cli] tstamp = {t:.3f}")
    return 0

def cmd_play(args, cfg) -> int:
    from PySide6 import QtCore
    from .gui.timer import QtPollTask
    from .media import WallClockMedia
    from .session import FollowSession
    from .watch import watch_files

    score, recs = _load(args)
    if score is None:
        print("[cli] ERROR: play needs --score or --data", file=sys.stderr)
        return 1

    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication(sys.argv[:1])
    media = WallClockMedia()
    renderer = ConsoleRenderer()
    session = FollowSession(renderer, media, SessionOptions(cfg), poll_task_factory=QtPollTask)
    renderer.session = session
    media.on_play.append(session.on_play)
    media.on_pause.append(session.on_pause)
    media.on_pause.append(app.quit)

    session.set_score(score)
    session.set_recordings(recs)
    session.select_recording(args.recording)
    title = session.recording_title() or f"recording {session.recording_index}"
    print(f"[cli] {session.work_title or 'untitled'} / {title}: {len(session.active)} events")

    observer = None
    if args.watch and args.timemaps:
        changed: "queue.Queue[str]" = queue.Queue()
        observer = watch_files([args.timemaps], changed.put)

        def drain():
            path = None
            while not changed.empty():
                path = changed.get_nowait()
            if path is None:
                return
            try:
                session.reload_recordings(load_recordings(path))
                print(f"[cli] reloaded {path}")
            except MissingDataError as e:
                print(f"[cli] reload failed: {e}", file=sys.stderr)

        reload_timer = QtCore.QTimer()
        reload_timer.setInterval(500)
        reload_timer.timeout.connect(drain)
        reload_timer.start()

    if not (args.anchor and session.play_from_anchor(args.anchor)):
        if args.anchor:
            print(f"[cli] WARNING: anchor {args.anchor!r} not found, playing from start")
        media.play()

    try:
        app.exec()
    finally:
        if observer is not None:
            observer.stop(); observer.join(1)
    print(f"[cli] stopped at {media.current_time():.3f} s")
    return 0

# ---------- entry ----------

def _add_sources(p: argparse.ArgumentParser, need_score: bool = True):
    if need_score:
        p.add_argument("--score", default=None, help="Score JSON (systems, svg, qstamps)")
    p.add_argument("--timemaps", default=None, help="Timemaps JSON (list of recordings)")
    p.add_argument("--data", default=None, help="Single JSON with both 'score' and 'timemaps'")
    p.add_argument("--recording", type=int, default=0, help="Recording index (clamped)")

def main(argv=None):
    p = argparse.ArgumentParser(prog="scorefollow", description="Score / recording alignment and follow-along")
    p.add_argument("--config", default=None, help="YAML config overriding the packaged defaults")
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="command", required=True)

    pa = sub.add_parser("align", help="Print the aligned timemap for every score event")
    _add_sources(pa)
    pa.set_defaults(func=cmd_align)

    ps = sub.add_parser("seek", help="Resolve an anchor like m12b3r1-m16 to recording times")
    _add_sources(ps, need_score=False)
    ps.add_argument("anchor")
    ps.set_defaults(func=cmd_seek)

    pl = sub.add_parser("lookup", help="Recording time for a score qstamp")
    _add_sources(pl)
    pl.add_argument("qstamp", type=float)
    pl.add_argument("--at", type=float, default=0.0, help="Current playback time (s)")
    pl.add_argument("--repeat", type=int, choices=[0, 1, 2, 3], default=0, help="Ending to pick (0 = nearest)")
    pl.set_defaults(func=cmd_lookup)

    pp = sub.add_parser("play", help="Follow along in real time on the console")
    _add_sources(pp)
    pp.add_argument("--anchor", default=None, help="Start (and optional stop) anchor")
    pp.add_argument("--watch", action="store_true", help="Reload the timemaps file when it changes")
    pp.set_defaults(func=cmd_play)

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="[%(name)s] %(message)s")

    cfg = load_config(pathlib.Path(args.config) if args.config else None)
    try:
        return args.func(args, cfg)
    except MissingDataError as e:
        print(f"[cli] ERROR: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
