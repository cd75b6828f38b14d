from __future__ import annotations
import copy
from typing import Any, Dict, List, Optional

from .config import DEFAULTS, load_config

class SessionOptions:
    """
    Per-session overrides on top of the configured defaults. Clearing an
    override falls back to the default again; defaults are never modified.
    """
    def __init__(self, defaults: Optional[Dict[str, Any]] = None):
        self.defaults: Dict[str, Any] = copy.deepcopy(defaults) if defaults is not None else load_config()
        self.overrides: Dict[str, Any] = {}

    def get(self, name: str, fallback: Any = None) -> Any:
        if name in self.overrides:
            return self.overrides[name]
        return self.defaults.get(name, fallback)

    def set(self, name: str, value: Any):
        self.overrides[name] = value

    def clear(self, name: str):
        self.overrides.pop(name, None)

    def clear_all(self):
        self.overrides = {}

    def copy(self) -> "SessionOptions":
        out = SessionOptions(self.defaults)
        out.overrides = copy.deepcopy(self.overrides)
        return out

    # accessors

    @property
    def poll_frequency(self) -> int:
        return int(self.get("poll_frequency", DEFAULTS["poll_frequency"]))

    @property
    def anticipation_time(self) -> float:
        """Seconds (configured in ms)."""
        return float(self.get("anticipation_time", DEFAULTS["anticipation_time"])) / 1000.0

    @property
    def highlight_tolerance(self) -> float:
        return float(self.get("highlight_tolerance", DEFAULTS["highlight_tolerance"]))

    @property
    def media_preference(self) -> List[str]:
        pref = self.get("media_preference", DEFAULTS["media_preference"])
        return [pref] if isinstance(pref, str) else list(pref)
