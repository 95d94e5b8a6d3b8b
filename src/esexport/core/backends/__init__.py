"""Backend implementations for searching and scrolling documents."""

from .base import (
    BackendError,
    Hit,
    IncompleteShardResponse,
    ResponseDecodeError,
    SearchBackend,
    SearchResponse,
    ShardStats,
    TransportError,
    validate_shards,
)
from .http_backend import ElasticsearchBackend

__all__ = [
    # Base classes
    "SearchBackend",
    "SearchResponse",
    "Hit",
    "ShardStats",
    "validate_shards",
    # Errors
    "BackendError",
    "TransportError",
    "ResponseDecodeError",
    "IncompleteShardResponse",
    # Elasticsearch backend
    "ElasticsearchBackend",
]
