# src/fibnum/progress.py
from __future__ import annotations

import sys
import time

REDRAW_EVERY = 0.05  # seconds
BAR_WIDTH = 24


class Progress:
    """Single-line sweep progress on stderr: bar, request count and the index just computed."""

    def __init__(self, total: int, *, enabled: bool = True, stream=None):
        self.total = max(1, int(total))
        self.enabled = enabled
        self.stream = stream or sys.stderr
        self._drawn_at = 0.0
        self._width = 0

    def update(self, done: int, label: str = "") -> None:
        if not self.enabled:
            return
        now = time.perf_counter()
        if done < self.total and now - self._drawn_at < REDRAW_EVERY:
            return
        self._drawn_at = now
        filled = BAR_WIDTH * min(done, self.total) // self.total
        text = f"[{'#' * filled}{'.' * (BAR_WIDTH - filled)}] {done}/{self.total}  {label[:30]}"
        self.stream.write("\r" + text.ljust(self._width))
        self.stream.flush()
        self._width = len(text)

    def done(self) -> None:
        if not self.enabled or not self._width:
            return
        self.stream.write("\r" + " " * self._width + "\r")
        self.stream.flush()
