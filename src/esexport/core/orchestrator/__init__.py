"""Orchestrator - slice workers, progress aggregation, per-slice results."""

from .progress import ProgressReporter, ProgressTick, ReporterState, aggregate_progress
from .runner import ExportResult, ExportRunner, PartitionResult, PartitionStatus, run_export

__all__ = [
    "ExportRunner",
    "ExportResult",
    "PartitionResult",
    "PartitionStatus",
    "run_export",
    "ProgressReporter",
    "ProgressTick",
    "ReporterState",
    "aggregate_progress",
]
