"""
Pytest configuration and fixtures.
"""

import sys
import threading
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from esexport.core.backends.base import Hit, SearchBackend, SearchResponse, ShardStats


def make_response(ids, total=0, scroll_id="scroll", shards=None):
    """Build a SearchResponse with one hit per id."""
    return SearchResponse(
        scroll_id=scroll_id,
        hits=[Hit(id=str(doc_id), source={"n": doc_id}) for doc_id in ids],
        total=total,
        shards=shards or ShardStats(total=1, successful=1, failed=0),
    )


class FakeBackend(SearchBackend):
    """In-memory backend scripted per slice.

    ``script`` maps a slice id to the list of responses (or exceptions) the
    search and following scrolls return, in order. Scroll ids are routed back
    to their slice as ``"<slice>:<n>"``.
    """

    def __init__(self, script):
        self.script = {k: list(v) for k, v in script.items()}
        self.search_calls = []
        self.scroll_calls = []
        self._lock = threading.Lock()

    @property
    def name(self):
        return "fake"

    def search(self, body):
        slice_id = body.get("slice", {}).get("id", 0)
        with self._lock:
            self.search_calls.append(body)
        return self._next(slice_id, 0)

    def scroll(self, scroll_id):
        slice_id, n = scroll_id.split(":")
        with self._lock:
            self.scroll_calls.append(scroll_id)
        return self._next(int(slice_id), int(n) + 1)

    def _next(self, slice_id, n):
        with self._lock:
            item = self.script[slice_id].pop(0)
        if isinstance(item, Exception):
            raise item
        item.scroll_id = f"{slice_id}:{n}"
        return item


class ListSink:
    """Sink collecting batches in memory."""

    def __init__(self):
        self.batches = []
        self._lock = threading.Lock()

    def accept(self, hits):
        with self._lock:
            self.batches.append(list(hits))

    def close(self):
        pass

    @property
    def ids(self):
        return [hit.id for batch in self.batches for hit in batch]


@pytest.fixture
def list_sink():
    return ListSink()


@pytest.fixture
def sample_query():
    return {"size": 1, "query": {"term": {"field": "value"}}}
