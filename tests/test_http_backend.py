"""
Tests for the Elasticsearch HTTP backend.
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from esexport.core.backends import (
    ElasticsearchBackend,
    IncompleteShardResponse,
    ResponseDecodeError,
    SearchResponse,
    TransportError,
)


def es_body(hits=None, total=0, scroll_id="scroll-1", shards=(1, 1, 0)):
    return {
        "_scroll_id": scroll_id,
        "hits": {
            "total": total,
            "hits": hits or [],
        },
        "_shards": {"total": shards[0], "successful": shards[1], "failed": shards[2]},
    }


def http_response(status_code=200, body=None, content=None):
    response = MagicMock()
    response.status_code = status_code
    response.content = content if content is not None else json.dumps(body or {}).encode()
    response.text = response.content.decode()
    return response


@pytest.fixture
def client():
    client = MagicMock()
    client.post.return_value = http_response(body=es_body())
    return client


def posted_json(client):
    return json.loads(client.post.call_args.kwargs["content"])


class TestConstruction:
    """Tests for backend construction."""

    @pytest.mark.parametrize("host", ["invalid-url", "localhost:9200", "ftp://host"])
    def test_invalid_host(self, host):
        with pytest.raises(ValueError):
            ElasticsearchBackend(host=host, client=MagicMock())

    def test_defaults(self, client):
        backend = ElasticsearchBackend(client=client)

        assert backend.host == "http://localhost:9200"
        assert backend.search_context_ttl == "1m"
        assert backend.name == "elasticsearch"


class TestSearchUrl:
    """Tests for search URL construction."""

    @pytest.mark.parametrize(
        "index,doc_type,expected",
        [
            ("", "", "http://localhost:9200/_search"),
            ("my_index", "", "http://localhost:9200/my_index/_search"),
            ("", "my_type", "http://localhost:9200/*/my_type/_search"),
            ("my_index", "my_type", "http://localhost:9200/my_index/my_type/_search"),
        ],
    )
    def test_paths(self, client, index, doc_type, expected):
        backend = ElasticsearchBackend(
            "http://localhost:9200", index=index, doc_type=doc_type, client=client
        )

        backend.search({})

        assert client.post.call_args.args[0] == expected

    def test_trailing_slash_on_host(self, client):
        backend = ElasticsearchBackend("http://localhost:9200/", index="i", client=client)

        assert backend.search_url == "http://localhost:9200/i/_search"

    def test_params(self, client):
        backend = ElasticsearchBackend(
            routing="user-1", search_context_ttl="5m", client=client
        )

        backend.search({})

        assert client.post.call_args.kwargs["params"] == {"routing": "user-1", "scroll": "5m"}

    def test_no_params(self, client):
        backend = ElasticsearchBackend(search_context_ttl="", client=client)

        backend.search({})

        assert client.post.call_args.kwargs["params"] is None


class TestRequests:
    """Tests for search and scroll request bodies."""

    def test_search_body(self, client):
        backend = ElasticsearchBackend(client=client)
        body = {"size": 10, "slice": {"id": 0, "max": 2}}

        backend.search(body)

        assert posted_json(client) == body

    def test_scroll_request(self, client):
        backend = ElasticsearchBackend(search_context_ttl="2m", client=client)

        backend.scroll("abc")

        assert client.post.call_args.args[0] == "http://localhost:9200/_search/scroll"
        assert posted_json(client) == {"scroll": "2m", "scroll_id": "abc"}

    def test_decodes_response(self, client):
        client.post.return_value = http_response(body=es_body(
            hits=[{"_id": "1", "_source": {"a": 1}}, {"_id": "2"}],
            total=10,
            scroll_id="next",
        ))
        backend = ElasticsearchBackend(client=client)

        response = backend.search({})

        assert response.scroll_id == "next"
        assert response.total == 10
        assert [h.id for h in response.hits] == ["1", "2"]
        assert response.hits[0].source == {"a": 1}
        assert response.hits[1].source is None


class TestErrors:
    """Tests for error handling."""

    def test_transport_failure(self, client):
        client.post.side_effect = httpx.ConnectError("connection refused")
        backend = ElasticsearchBackend(client=client)

        with pytest.raises(TransportError) as exc_info:
            backend.search({})

        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    def test_bad_status(self, client, caplog):
        client.post.return_value = http_response(status_code=500, content=b"oops")
        backend = ElasticsearchBackend(client=client)

        with caplog.at_level("ERROR", logger="esexport"):
            with pytest.raises(TransportError) as exc_info:
                backend.scroll("abc")

        assert exc_info.value.status_code == 500
        assert str(exc_info.value) == "Unexpected response received: 500"
        assert "Bad response content: oops" in caplog.text

    def test_invalid_json(self, client):
        client.post.return_value = http_response(content=b"{not json")
        backend = ElasticsearchBackend(client=client)

        with pytest.raises(ResponseDecodeError):
            backend.search({})

    def test_non_object_json(self, client):
        client.post.return_value = http_response(content=b"[1, 2]")
        backend = ElasticsearchBackend(client=client)

        with pytest.raises(ResponseDecodeError):
            backend.search({})

    @pytest.mark.parametrize("shards", [(2, 1, 1), (2, 1, 0), (3, 3, 1)])
    def test_incomplete_shards(self, client, shards):
        client.post.return_value = http_response(body=es_body(shards=shards))
        backend = ElasticsearchBackend(client=client)

        with pytest.raises(IncompleteShardResponse) as exc_info:
            backend.search({})

        assert str(exc_info.value) == (
            f"Response incomplete (shards response: [total: {shards[0]}, "
            f"successful: {shards[1]}, failed: {shards[2]}])"
        )

    def test_incomplete_shards_is_not_transport_error(self, client):
        client.post.return_value = http_response(body=es_body(shards=(2, 1, 1)))
        backend = ElasticsearchBackend(client=client)

        with pytest.raises(IncompleteShardResponse) as exc_info:
            backend.scroll("abc")

        assert not isinstance(exc_info.value, TransportError)


class TestSearchResponse:
    """Tests for response decoding."""

    def test_object_total(self):
        data = es_body(total=0)
        data["hits"]["total"] = {"value": 42, "relation": "eq"}

        assert SearchResponse.from_dict(data).total == 42

    def test_missing_blocks(self):
        response = SearchResponse.from_dict({"_scroll_id": "x"})

        assert response.hits == []
        assert response.total == 0
        assert response.shards.complete


class TestClose:
    """Tests for client lifecycle."""

    def test_does_not_close_injected_client(self, client):
        ElasticsearchBackend(client=client).close()

        client.close.assert_not_called()

    def test_closes_own_client(self):
        backend = ElasticsearchBackend()

        backend.close()

        assert backend._client.is_closed
