from __future__ import annotations
import math
from typing import Union

def round_to_ms(seconds: float) -> float:
    """Nearest millisecond, halves away from zero."""
    ms = math.floor(abs(seconds) * 1000.0 + 0.5)
    return math.copysign(ms / 1000.0, seconds) if ms else 0.0

def decode_qstamp(text: Union[str, int, float]) -> float:
    """'12d5' -> 12.5 (markup-safe class names use 'd' for the decimal point)."""
    if isinstance(text, (int, float)):
        return float(text)
    return float(str(text).strip().replace("d", ".", 1))
