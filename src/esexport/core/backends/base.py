"""
Backend base classes and data structures.

Defines the search/scroll contract every export backend must honour.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Hit:
    """A single document returned by a search or scroll request."""

    id: str
    source: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the backend's document shape (``_source`` omitted when empty)."""
        data: dict[str, Any] = {"_id": self.id}
        if self.source:
            data["_source"] = self.source
        return data


@dataclass
class ShardStats:
    """The ``_shards`` block of a response."""

    total: int = 0
    successful: int = 0
    failed: int = 0

    @property
    def complete(self) -> bool:
        """Every shard answered and none failed."""
        return self.failed == 0 and self.successful == self.total


@dataclass
class SearchResponse:
    """Result of a search or scroll request."""

    scroll_id: str
    hits: list[Hit] = field(default_factory=list)

    # Total matches for the query; only meaningful on the initial search
    total: int = 0

    shards: ShardStats = field(default_factory=ShardStats)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResponse":
        """Build a response from a decoded JSON body.

        Accepts both the legacy integer ``hits.total`` and the
        ``{"value": n, "relation": ...}`` object form.

        Raises:
            ValueError: If the body does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

        hits_block = data.get("hits") or {}
        total = hits_block.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        hits = [
            Hit(id=str(raw.get("_id", "")), source=raw.get("_source"))
            for raw in hits_block.get("hits") or []
        ]

        shards_block = data.get("_shards") or {}
        shards = ShardStats(
            total=int(shards_block.get("total", 0)),
            successful=int(shards_block.get("successful", 0)),
            failed=int(shards_block.get("failed", 0)),
        )

        return cls(
            scroll_id=str(data.get("_scroll_id", "")),
            hits=hits,
            total=int(total),
            shards=shards,
        )


class SearchBackend(ABC):
    """Abstract base class for export backends.

    A backend runs the initial (optionally sliced) search and the follow-up
    scroll requests. Implementations must be safe to call from several
    threads at once, one per slice.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        pass

    @abstractmethod
    def search(self, body: dict[str, Any]) -> SearchResponse:
        """Run the initial search for a query.

        Args:
            body: Search request body, slice clause included

        Returns:
            SearchResponse with the first batch of hits

        Raises:
            BackendError: On transport failure or incomplete response
        """
        pass

    @abstractmethod
    def scroll(self, scroll_id: str) -> SearchResponse:
        """Fetch the next batch for an open scroll context.

        Args:
            scroll_id: Scroll id from the previous response

        Returns:
            SearchResponse with the next batch of hits

        Raises:
            BackendError: On transport failure or incomplete response
        """
        pass

    def close(self) -> None:
        """Release backend resources."""
        pass

    def __enter__(self) -> "SearchBackend":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class BackendError(Exception):
    """Base exception for backend errors."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class TransportError(BackendError):
    """Request failed or the backend answered with an error status."""
    pass


class ResponseDecodeError(TransportError):
    """Response body could not be decoded."""
    pass


class IncompleteShardResponse(BackendError):
    """Response was assembled from a subset of shards."""

    def __init__(self, shards: ShardStats, url: str | None = None):
        super().__init__(
            f"Response incomplete (shards response: [total: {shards.total}, "
            f"successful: {shards.successful}, failed: {shards.failed}])",
            url=url,
        )
        self.shards = shards


def validate_shards(response: SearchResponse, url: str | None = None) -> SearchResponse:
    """Reject responses that did not come from every shard.

    Partial results cannot be trusted for completeness, so a response with
    any failed or missing shard is an error rather than a short batch.

    Raises:
        IncompleteShardResponse: If any shard failed or did not answer
    """
    if not response.shards.complete:
        raise IncompleteShardResponse(response.shards, url=url)
    return response
