"""
Sliced scroll cursor.

Iterates one slice of a query to exhaustion: an initial search followed by
scroll requests until every matching document of the slice was returned.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union

from esexport.core.backends.base import Hit, SearchBackend
from esexport.core.logging import get_contextual_logger, json_dumps


class InvalidPartition(ValueError):
    """Slice index is out of range for the slice count."""

    def __init__(self, slice_index: int, slice_count: int):
        super().__init__(
            f"Slice id must be lower than the slice max (id: {slice_index}, max: {slice_count})"
        )
        self.slice_index = slice_index
        self.slice_count = slice_count


class MalformedQuery(ValueError):
    """Query could not be parsed or merged with the slice clause."""
    pass


# =============================================================================
# Cursor state
# =============================================================================


@dataclass(frozen=True)
class NotStarted:
    """No response received yet."""


@dataclass(frozen=True)
class InProgress:
    total: int
    retrieved: int


@dataclass(frozen=True)
class Done:
    total: int
    retrieved: int


@dataclass(frozen=True)
class Failed:
    """A request failed; the cursor will not contact the backend again."""

    previous: Union[NotStarted, InProgress]
    error: Exception


CursorState = Union[NotStarted, InProgress, Done, Failed]


def _counts(state: CursorState) -> tuple[int, int] | None:
    if isinstance(state, Failed):
        state = state.previous
    if isinstance(state, (InProgress, Done)):
        return state.total, state.retrieved
    return None


# =============================================================================
# Cursor
# =============================================================================


class SlicedScrollCursor:
    """Search and scroll the documents of one slice.

    The cursor state is an immutable object replaced in a single assignment
    on every response, so other threads may read ``progress()`` without a
    lock and always see a matching ``(total, retrieved)`` pair.

    A failed request is terminal: the error is kept and re-raised by every
    later ``next()`` call without another backend request.
    """

    def __init__(
        self,
        backend: SearchBackend,
        slice_index: int,
        slice_count: int,
        slice_field: str | None = None,
        base_query: Mapping[str, Any] | None = None,
        *,
        trace: bool = False,
    ) -> None:
        """Initialize the cursor.

        Args:
            backend: Backend used to search and scroll
            slice_index: Index of this slice (0-based)
            slice_count: Number of slices; 0 or 1 disables slicing
            slice_field: Field used to compute the slices (backend default if empty)
            base_query: Search body shared by every slice
            trace: Log the outgoing query and slice total

        Raises:
            InvalidPartition: If slice_count >= 2 and slice_index >= slice_count
            MalformedQuery: If the query cannot take a slice clause
        """
        if slice_count >= 2 and slice_index >= slice_count:
            raise InvalidPartition(slice_index, slice_count)

        if base_query is None:
            base_query = {}
        if not isinstance(base_query, Mapping):
            raise MalformedQuery(
                f"Query must be a JSON object, got {type(base_query).__name__}"
            )
        if slice_count > 1 and "slice" in base_query:
            raise MalformedQuery("Query already defines a slice clause")

        self.backend = backend
        self.slice_index = slice_index
        self.slice_count = slice_count
        self.slice_field = slice_field or None
        self.trace = trace

        self._base_query = dict(base_query)
        self._state: CursorState = NotStarted()
        self._scroll_id: str | None = None
        self._log = get_contextual_logger("cursor", partition=slice_index)

    # -------------------------------------------------------------------------
    # State accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def total(self) -> int | None:
        counts = _counts(self._state)
        return counts[0] if counts else None

    @property
    def retrieved(self) -> int | None:
        counts = _counts(self._state)
        return counts[1] if counts else None

    @property
    def scroll_id(self) -> str | None:
        return self._scroll_id

    @property
    def exhausted(self) -> bool:
        return isinstance(self._state, Done)

    @property
    def failed(self) -> bool:
        return isinstance(self._state, Failed)

    def progress(self) -> tuple[int, int] | None:
        """Atomic ``(total, retrieved)`` snapshot, None before the first response."""
        return _counts(self._state)

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def search_query(self) -> dict[str, Any]:
        """Build the search body for this slice.

        The base query is copied, never modified. The slice clause is only
        added when there is more than one slice.
        """
        query = dict(self._base_query)

        if self.slice_count > 1:
            slice_clause: dict[str, Any] = {"id": self.slice_index, "max": self.slice_count}
            if self.slice_field:
                slice_clause["field"] = self.slice_field
            query["slice"] = slice_clause

        return query

    def next(self) -> list[Hit]:
        """Return the next batch of hits.

        Returns:
            The next batch, or an empty list once the slice is exhausted

        Raises:
            BackendError: If the request failed (also on every later call)
        """
        state = self._state

        if isinstance(state, Failed):
            raise state.error
        if isinstance(state, Done):
            return []

        try:
            if isinstance(state, NotStarted):
                return self._search()
            return self._scroll(state)
        except Exception as e:
            self._state = Failed(previous=state, error=e)
            raise

    def __iter__(self) -> Iterator[list[Hit]]:
        """Yield batches until the slice is exhausted."""
        while True:
            hits = self.next()
            if not hits:
                return
            yield hits

    def _search(self) -> list[Hit]:
        query = self.search_query()

        if self.trace:
            self._log.debug(f"Slice {self.slice_index} query: {json_dumps(query)}")

        started = time.monotonic()
        response = self.backend.search(query)

        total = response.total
        retrieved = len(response.hits)
        self._scroll_id = response.scroll_id

        if retrieved >= total:
            self._state = Done(total=total, retrieved=retrieved)
        else:
            self._state = InProgress(total=total, retrieved=retrieved)

        if self.trace:
            self._log.debug(
                f"Slice {self.slice_index} total: {total} "
                f"(search took {time.monotonic() - started:.3f}s)"
            )

        return response.hits

    def _scroll(self, state: InProgress) -> list[Hit]:
        response = self.backend.scroll(self._scroll_id or "")

        retrieved = state.retrieved + len(response.hits)
        self._scroll_id = response.scroll_id

        if retrieved >= state.total:
            self._state = Done(total=state.total, retrieved=retrieved)
        elif not response.hits:
            self._log.warning(
                f"Scroll returned no hits with {retrieved}/{state.total} retrieved, "
                "ending slice early"
            )
            self._state = Done(total=state.total, retrieved=retrieved)
        else:
            self._state = InProgress(total=state.total, retrieved=retrieved)

        return response.hits

    def __repr__(self) -> str:
        return (
            f"SlicedScrollCursor(slice={self.slice_index}/{self.slice_count}, "
            f"state={self._state!r})"
        )
