"""Throttled progress reporting with rate and ETA estimates."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def format_time(seconds: float) -> str:
    """Format a duration as ``Ns``, ``Nm Ns`` or ``Nh Nm``."""
    seconds = max(0, int(round(seconds)))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


class ProgressReporter:
    """
    Emit periodic progress lines for a counted task.

    Updates arriving faster than ``min_interval_s`` are dropped, except the
    final one (``current == total``). Only observes: it never raises into
    the orchestrator.
    """

    def __init__(
        self,
        min_interval_s: float = 0.1,
        emit: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_s = min_interval_s
        self._emit = emit or logger.info
        self._clock = clock
        self.label = ""
        self.total = 0
        self.current = 0
        self._started_at: Optional[float] = None
        self._last_emit_at: Optional[float] = None

    def start(self, label: str, total: int) -> None:
        self.label = label
        self.total = max(0, int(total))
        self.current = 0
        self._started_at = self._clock()
        self._last_emit_at = None
        self._emit(f"{label}: 0/{self.total}")

    def update(self, current: int, message: str | None = None) -> bool:
        """
        Record progress and emit a line unless throttled.

        Returns:
            True when a line was emitted
        """
        self.current = current
        now = self._clock()
        finished = self.total and current >= self.total
        if (
            not finished
            and self._last_emit_at is not None
            and now - self._last_emit_at < self.min_interval_s
        ):
            return False
        self._last_emit_at = now
        line = self.render(now)
        if message:
            line = f"{line} {message}"
        self._emit(line)
        return True

    def increment(self, step: int = 1) -> bool:
        return self.update(self.current + step)

    @property
    def elapsed_s(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def rate(self, now: float | None = None) -> float:
        """Items per second since start."""
        if self._started_at is None:
            return 0.0
        elapsed = (now if now is not None else self._clock()) - self._started_at
        if elapsed <= 0:
            return 0.0
        return self.current / elapsed

    def eta_s(self, now: float | None = None) -> float | None:
        rate = self.rate(now)
        if rate <= 0 or not self.total:
            return None
        return max(0, self.total - self.current) / rate

    def render(self, now: float | None = None) -> str:
        pct = (self.current / self.total * 100) if self.total else 100.0
        eta = self.eta_s(now)
        eta_text = format_time(eta) if eta is not None else "--"
        return (
            f"{self.label}: {self.current}/{self.total} ({pct:.1f}%) "
            f"{self.rate(now):.1f}/s ETA {eta_text}"
        )

    def finish(self, message: str = "") -> None:
        text = message or f"{self.label} done"
        self._emit(f"{text} ({self.current}/{self.total} in {format_time(self.elapsed_s)})")
