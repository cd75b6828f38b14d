from __future__ import annotations
from typing import Optional

class ScoreFollowError(Exception):
    pass

class MissingDataError(ScoreFollowError):
    """Score or timemap data absent or unparseable; alignment cannot start."""

class LookupMiss(ScoreFollowError, LookupError):
    """A seek anchor or clicked event resolved to no recording time."""

class AlignmentGapWarning(UserWarning):
    """
    Interpolation without a preceding anchor, or timemap exhausted early.
    Never raised by the aligner: logged and collected on ActiveTimemap.gaps.
    """
    def __init__(self, message: str, qstamp: Optional[float] = None, index: Optional[int] = None):
        super().__init__(message)
        self.qstamp = qstamp
        self.index = index
