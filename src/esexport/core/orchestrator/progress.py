"""
Aggregate progress reporting across slice cursors.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from esexport.core.cursor.sliced import SlicedScrollCursor


logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_INTERVAL = 0.5  # seconds


@dataclass(frozen=True)
class ProgressTick:
    """One aggregate progress sample."""

    current: int
    total: int
    percent: float

    def __str__(self) -> str:
        return f"Progress: [{self.current}/{self.total}] {self.percent:.0f}%"


class ReporterState(str, Enum):
    WAITING = "waiting"
    REPORTING = "reporting"
    STOPPED = "stopped"


def aggregate_progress(cursors: Sequence[SlicedScrollCursor]) -> ProgressTick | None:
    """Sum retrieved/total over every cursor.

    Returns:
        The aggregate tick, or None while any cursor has no total yet
    """
    current = 0
    total = 0

    for cursor in cursors:
        counts = cursor.progress()
        if counts is None:
            return None
        total += counts[0]
        current += counts[1]

    percent = (current / total) * 100.0 if total > 0 else 0.0
    return ProgressTick(current=current, total=total, percent=percent)


class ProgressReporter:
    """Poll cursors on a background thread and emit aggregate ticks.

    Ticks are skipped until every cursor has received its first response.
    Stopping emits one last tick at 100% if an aggregate was ever computed.
    """

    def __init__(
        self,
        cursors: Sequence[SlicedScrollCursor],
        on_progress: Callable[[ProgressTick], None] | None = None,
        interval: float = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.cursors = list(cursors)
        self.on_progress = on_progress
        self.interval = interval

        self.state = ReporterState.WAITING
        self.last_tick: ProgressTick | None = None

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name="esexport-progress",
            daemon=True,
        )
        self._thread.start()

    def poll(self) -> ProgressTick | None:
        """Take one sample and emit it if every total is known."""
        tick = aggregate_progress(self.cursors)
        if tick is None:
            return None

        if self.state is ReporterState.WAITING:
            self.state = ReporterState.REPORTING

        self.last_tick = tick
        self._emit(tick)
        return tick

    def stop(self) -> ProgressTick | None:
        """Stop polling and emit the completion tick.

        Returns:
            The final 100% tick, or None if no aggregate was ever computed
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

        if self.state is ReporterState.STOPPED:
            return None

        # Pick up totals that arrived after the last poll
        tick = aggregate_progress(self.cursors) or self.last_tick
        self.state = ReporterState.STOPPED

        if tick is None:
            return None

        final = ProgressTick(current=tick.current, total=tick.total, percent=100.0)
        self.last_tick = final
        self._emit(final)
        return final

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll()

    def _emit(self, tick: ProgressTick) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(tick)
        except Exception:
            logger.exception("Progress callback failed")

    def __enter__(self) -> "ProgressReporter":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
