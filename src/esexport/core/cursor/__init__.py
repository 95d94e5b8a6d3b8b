"""Cursors - per-slice search and scroll iteration."""

from .sliced import (
    CursorState,
    Done,
    Failed,
    InProgress,
    InvalidPartition,
    MalformedQuery,
    NotStarted,
    SlicedScrollCursor,
)

__all__ = [
    "SlicedScrollCursor",
    "CursorState",
    "NotStarted",
    "InProgress",
    "Done",
    "Failed",
    "InvalidPartition",
    "MalformedQuery",
]
