"""
Output sinks for exported hits.

A sink is shared by every slice worker, so implementations must accept
batches from several threads at once.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import IO, Protocol, Sequence

import orjson

from esexport.core.backends.base import Hit


class Sink(Protocol):
    """Consumer of exported batches."""

    def accept(self, hits: Sequence[Hit]) -> None:
        ...

    def close(self) -> None:
        ...


class NullSink:
    """Discard every batch; only counts what went through."""

    def __init__(self) -> None:
        self.count = 0
        self._lock = threading.Lock()

    def accept(self, hits: Sequence[Hit]) -> None:
        with self._lock:
            self.count += len(hits)

    def close(self) -> None:
        pass


class JsonLinesSink:
    """Write one JSON document per line.

    Each line is serialized up front and written under a lock, so lines from
    different slices interleave but never tear.
    """

    def __init__(self, target: Path | str | IO[bytes]) -> None:
        """Open the sink.

        Args:
            target: File path (created or truncated) or a binary stream
        """
        if isinstance(target, (str, Path)):
            self.path: Path | None = Path(target)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream: IO[bytes] = open(self.path, "wb")
            self._owns_stream = True
        else:
            self.path = None
            self._stream = target
            self._owns_stream = False

        self.count = 0
        self._lock = threading.Lock()

    def accept(self, hits: Sequence[Hit]) -> None:
        for hit in hits:
            line = orjson.dumps(hit.to_dict()) + b"\n"
            with self._lock:
                self._stream.write(line)
                self.count += 1

    def close(self) -> None:
        with self._lock:
            if self._owns_stream:
                self._stream.close()
            else:
                self._stream.flush()

    def __enter__(self) -> "JsonLinesSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
