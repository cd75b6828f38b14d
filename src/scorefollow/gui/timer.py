from __future__ import annotations
from typing import Callable

from PySide6 import QtCore

class QtPollTask:
    """QTimer-backed fixed-period poll; needs a running Qt event loop."""

    def __init__(self, period_ms: int, callback: Callable[[], None], parent=None):
        self._timer = QtCore.QTimer(parent)
        self._timer.setInterval(int(period_ms))
        self._timer.timeout.connect(callback)

    @property
    def interval(self) -> int:
        return self._timer.interval()

    def start(self):
        # QTimer.start() on an active timer restarts it; keep the running one
        if not self._timer.isActive():
            self._timer.start()

    def stop(self):
        self._timer.stop()

    def is_active(self) -> bool:
        return self._timer.isActive()
