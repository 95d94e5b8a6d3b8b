"""
Export runner orchestrator.

Coordinates a sliced export: one cursor per slice, each drained on its own
worker thread into a shared sink, while a reporter thread aggregates
progress across every slice.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from esexport.core.backends.base import SearchBackend
from esexport.core.cursor.sliced import SlicedScrollCursor
from esexport.core.logging import get_contextual_logger
from esexport.core.sinks import Sink

from .progress import DEFAULT_PROGRESS_INTERVAL, ProgressReporter, ProgressTick


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PartitionStatus(str, Enum):
    """Outcome of one slice."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PartitionResult:
    """Result of draining a single slice."""

    index: int
    status: PartitionStatus = PartitionStatus.PENDING
    documents: int = 0
    total: int | None = None
    error: Exception | None = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is PartitionStatus.COMPLETED

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "status": self.status.value,
            "documents": self.documents,
            "total": self.total,
            "error": self.error_message,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class ExportResult:
    """Aggregated results of an export."""

    partitions: list[PartitionResult] = field(default_factory=list)
    final_progress: ProgressTick | None = None

    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return all(p.ok for p in self.partitions)

    @property
    def failed(self) -> list[PartitionResult]:
        return [p for p in self.partitions if not p.ok]

    @property
    def documents(self) -> int:
        return sum(p.documents for p in self.partitions)

    @property
    def duration_seconds(self) -> float | None:
        """Get export duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "documents": self.documents,
            "duration_seconds": self.duration_seconds,
            "partitions": [p.to_dict() for p in self.partitions],
        }


class ExportRunner:
    """Orchestrates a parallel sliced export.

    Coordinates:
    - Cursor creation (fails fast before any request on a bad slice setup)
    - One worker thread per slice
    - Progress aggregation on a reporter thread
    - Per-slice error collection
    """

    def __init__(
        self,
        backend: SearchBackend,
        *,
        partition_count: int = 1,
        partition_field: str | None = None,
        query: Mapping[str, Any] | None = None,
        progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
        on_progress: Callable[[ProgressTick], None] | None = None,
        trace: bool = False,
    ) -> None:
        """Initialize the runner and create every cursor.

        Args:
            backend: Backend shared by every slice
            partition_count: Number of slices (0 or 1 exports unsliced)
            partition_field: Field used to compute the slices
            query: Search body shared by every slice
            progress_interval: Seconds between progress samples
            on_progress: Callback receiving aggregate progress ticks
            trace: Log queries, totals and timings at debug level

        Raises:
            InvalidPartition: If a slice index is out of range
            MalformedQuery: If the query cannot take a slice clause
        """
        self.backend = backend
        self.partition_count = partition_count
        self.progress_interval = progress_interval
        self.on_progress = on_progress
        self.trace = trace

        self.cursors = [
            SlicedScrollCursor(
                backend,
                index,
                partition_count,
                partition_field,
                query if query is not None else {},
                trace=trace,
            )
            for index in range(max(partition_count, 1))
        ]

    def run(self, sink: Sink) -> ExportResult:
        """Drain every slice into the sink and wait for all of them.

        A failing slice does not stop the others; its error is recorded in
        its PartitionResult.

        Args:
            sink: Destination for exported batches, shared by every slice

        Returns:
            ExportResult with one entry per slice
        """
        result = ExportResult()
        started = time.monotonic()

        logger.info(
            f"Exporting with {len(self.cursors)} slice(s)",
            extra={"partitions": len(self.cursors)},
        )

        reporter = ProgressReporter(
            self.cursors,
            on_progress=self.on_progress,
            interval=self.progress_interval,
        )

        with reporter:
            with ThreadPoolExecutor(
                max_workers=len(self.cursors),
                thread_name_prefix="esexport-slice",
            ) as executor:
                futures = [executor.submit(self._drain, cursor, sink) for cursor in self.cursors]
                result.partitions = [future.result() for future in futures]

        result.final_progress = reporter.last_tick
        result.finished_at = _utcnow()

        if self.trace:
            logger.debug(f"esexport took {time.monotonic() - started:.3f}s")

        failed = result.failed
        if failed:
            logger.warning(
                f"Export finished with {len(failed)} failed slice(s): "
                + ", ".join(str(p.index) for p in failed)
            )
        else:
            logger.info(f"Export finished: {result.documents} documents")

        return result

    def _drain(self, cursor: SlicedScrollCursor, sink: Sink) -> PartitionResult:
        """Pull batches from one cursor into the sink until it is exhausted."""
        log = get_contextual_logger("orchestrator", partition=cursor.slice_index)
        partition = PartitionResult(index=cursor.slice_index)
        started = time.monotonic()

        try:
            for hits in cursor:
                sink.accept(hits)
                partition.documents += len(hits)
            partition.status = PartitionStatus.COMPLETED
        except Exception as e:
            partition.status = PartitionStatus.FAILED
            partition.error = e
            log.error(f"Error processing cursor {cursor.slice_index}: {e}")
        finally:
            partition.total = cursor.total
            partition.duration_seconds = time.monotonic() - started

        if self.trace:
            log.debug(f"Cursor {cursor.slice_index} took {partition.duration_seconds:.3f}s")

        return partition


def run_export(
    backend: SearchBackend,
    partition_count: int,
    partition_field: str | None,
    query: Mapping[str, Any] | None,
    sink: Sink,
    *,
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL,
    on_progress: Callable[[ProgressTick], None] | None = None,
    trace: bool = False,
) -> ExportResult:
    """Convenience function to run a sliced export.

    Raises:
        InvalidPartition: If a slice index is out of range
        MalformedQuery: If the query cannot take a slice clause
    """
    runner = ExportRunner(
        backend,
        partition_count=partition_count,
        partition_field=partition_field,
        query=query,
        progress_interval=progress_interval,
        on_progress=on_progress,
        trace=trace,
    )
    return runner.run(sink)
