"""
Elasticsearch backend implementation using httpx.

Provides blocking search/scroll calls with:
- Index, document type and routing aware search URLs
- Scroll context TTL handling
- Shard completeness validation
- A pooled client shared by every slice thread
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
import orjson

from .base import (
    SearchBackend,
    SearchResponse,
    ResponseDecodeError,
    TransportError,
    validate_shards,
)


logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost:9200"
DEFAULT_SEARCH_CONTEXT_TTL = "1m"


class ElasticsearchBackend(SearchBackend):
    """Search backend talking to Elasticsearch over HTTP.

    The underlying ``httpx.Client`` is thread-safe, so one backend instance
    is shared by every slice worker.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        index: str = "",
        doc_type: str = "",
        routing: str = "",
        search_context_ttl: str = DEFAULT_SEARCH_CONTEXT_TTL,
        timeout: float = 30.0,
        max_connections: int = 20,
        client: httpx.Client | None = None,
    ):
        """Initialize the backend.

        Args:
            host: Elasticsearch base URL
            index: Index to search (empty searches every index)
            doc_type: Document type appended to the search URL
            routing: Routing value passed to the search
            search_context_ttl: How long the scroll context is kept alive
            timeout: Request timeout in seconds
            max_connections: Connection pool size
            client: Pre-built HTTP client (mainly for tests)

        Raises:
            ValueError: If host is not an absolute http(s) URL
        """
        try:
            url = httpx.URL(host)
        except httpx.InvalidURL as e:
            raise ValueError(f"Invalid host URL: {host!r}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"Invalid host URL: {host!r}")

        self.host = host.rstrip("/")
        self.index = index
        self.doc_type = doc_type
        self.routing = routing
        self.search_context_ttl = search_context_ttl
        self.timeout = timeout

        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json"},
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
        )

    @property
    def name(self) -> str:
        return "elasticsearch"

    @property
    def search_url(self) -> str:
        """URL used for the initial search."""
        path = self.host

        if self.index:
            path += f"/{self.index}"
        elif self.doc_type:
            path += "/*"

        if self.doc_type:
            path += f"/{self.doc_type}"

        return path + "/_search"

    @property
    def search_params(self) -> dict[str, str]:
        """Query string parameters for the initial search."""
        params: dict[str, str] = {}
        if self.routing:
            params["routing"] = self.routing
        if self.search_context_ttl:
            params["scroll"] = self.search_context_ttl
        return params

    @property
    def scroll_url(self) -> str:
        return f"{self.host}/_search/scroll"

    def search(self, body: dict[str, Any]) -> SearchResponse:
        return self._post(self.search_url, body, params=self.search_params)

    def scroll(self, scroll_id: str) -> SearchResponse:
        body = {"scroll": self.search_context_ttl, "scroll_id": scroll_id}
        return self._post(self.scroll_url, body)

    def _post(
        self,
        url: str,
        body: dict[str, Any],
        params: dict[str, str] | None = None,
    ) -> SearchResponse:
        """POST a JSON body and decode a validated search response."""
        try:
            response = self._client.post(
                url,
                content=orjson.dumps(body),
                params=params or None,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise TransportError(
                f"Request to {url} failed: {e}",
                url=url,
                cause=e,
            ) from e

        if response.status_code != httpx.codes.OK:
            logger.error(f"Bad response content: {response.text}")
            raise TransportError(
                f"Unexpected response received: {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            search_response = SearchResponse.from_dict(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
            raise ResponseDecodeError(
                f"Error decoding response: {e}",
                url=url,
                status_code=response.status_code,
                cause=e,
            ) from e

        return validate_shards(search_response, url=url)

    def close(self) -> None:
        """Close the HTTP client if this backend created it."""
        if self._owns_client and not self._client.is_closed:
            self._client.close()
