"""
Progress reporting helpers shared by the engines.

Callers inject a ``(percent, message)`` callback; :class:`ProgressTracker`
wraps it so reported percentages never decrease and stay within 0..100.
"""

from __future__ import annotations

from typing import Callable, Optional

ProgressCallback = Callable[[int, str], None]


class ProgressTracker:
    """Clamp and forward progress updates to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self.percent = 0

    def report(self, percent: int, message: str) -> int:
        percent = max(self.percent, min(100, int(percent)))
        self.percent = percent
        if self._callback is not None:
            self._callback(percent, message)
        return percent


def as_tracker(progress: ProgressCallback | ProgressTracker | None) -> ProgressTracker:
    if isinstance(progress, ProgressTracker):
        return progress
    return ProgressTracker(progress)


__all__ = ["ProgressCallback", "ProgressTracker", "as_tracker"]
