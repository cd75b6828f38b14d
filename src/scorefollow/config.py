# src/scorefollow/config.py
from __future__ import annotations
import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

from .timemap import DEFAULT_ANTICIPATION_MS, DEFAULT_POLL_MS, HIGHLIGHT_TOLERANCE

log = logging.getLogger(__name__)

PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path.home() / ".config" / "scorefollow" / "config.yaml"

# fallbacks for keys missing from both files
DEFAULTS: Dict[str, Any] = {
    "poll_frequency": DEFAULT_POLL_MS,
    "anticipation_time": DEFAULT_ANTICIPATION_MS,
    "highlight_tolerance": HIGHLIGHT_TOLERANCE,
    "media_preference": ["youtube", "video", "audio"],
}

def _safe_load(path: Path) -> Dict[str, Any]:
    try:
        if path.exists():
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            if isinstance(data, dict):
                return data
            log.warning("ignoring config %s: top level is not a mapping", path)
    except (OSError, yaml.YAMLError) as e:
        # a broken user file must not keep the follower from starting
        log.warning("ignoring config %s: %s", path, e)
    return {}

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Packaged defaults deep-merged with the user's overrides.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    return _deep_merge(DEFAULTS, _deep_merge(_safe_load(dpath), _safe_load(upath)))
