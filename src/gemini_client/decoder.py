"""Incremental decoder for streamed ``streamGenerateContent`` responses.

The endpoint streams one top-level JSON array whose elements are response
fragments. The array is only closed when the stream ends, so the decoder
re-parses the accumulated text with a synthetic ``]`` after every chunk.
A failed parse means the current fragment is still incomplete; the
decoder waits for more bytes. A successful parse merges the newest
fragment into the running snapshot.

Usage::

    decoder = StreamDecoder()
    async for snapshot in decoder.decode_stream(response.aiter_bytes()):
        print(snapshot.merged["candidates"][0]["content"]["parts"][0]["text"])

The decoder does not interpret fields. Block detection and text
accumulation belong to the caller.
"""

import codecs
import copy
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("gemini_client.decoder")


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Merged view of a stream after one successful parse.

    ``merged`` is the shallow merge of every emitted fragment so far. Its
    top-level keys only ever grow. ``fragments`` are the array elements
    completed since the previous snapshot, in arrival order.
    """

    merged: dict[str, Any]
    fragments: tuple[dict[str, Any], ...]


class StreamDecoder:
    """Turns byte chunks of a growing JSON array into ``Snapshot`` values.

    One decoder per response. Not reusable across streams.
    """

    __slots__ = ("_buffer", "_decoder", "_merged", "_seen", "_snapshots")

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._merged: dict[str, Any] = {}
        self._seen = 0
        self._snapshots = 0

    @property
    def snapshot_count(self) -> int:
        """Number of snapshots emitted so far."""
        return self._snapshots

    @property
    def text(self) -> str:
        """Decoded text received so far, including the unclosed array.

        Invalid UTF-8 bytes appear as U+FFFD. Useful for logging a stream
        that never produced a snapshot.
        """
        return self._buffer

    def feed(self, chunk: bytes) -> Snapshot | None:
        """Consume one chunk. Returns a snapshot when a new fragment completed."""
        # Trailing bytes of a split code point stay in the incremental decoder;
        # invalid bytes become U+FFFD
        self._buffer += self._decoder.decode(chunk)

        try:
            parsed = json.loads(self._buffer + "]")
        except json.JSONDecodeError:
            parsed = self._parse_closed()
            if parsed is None:
                logger.debug("Stream fragment incomplete (%d chars buffered)", len(self._buffer))
                return None

        if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
            logger.debug("Stream buffer parsed to a non-array value, waiting for more data")
            return None

        if len(parsed) <= self._seen:
            return None

        fresh = tuple(parsed[self._seen :])
        self._seen = len(parsed)
        self._merged = {**self._merged, **parsed[-1]}
        self._snapshots += 1
        logger.debug("Snapshot %d emitted (%d new fragments)", self._snapshots, len(fresh))
        return Snapshot(merged=copy.deepcopy(self._merged), fragments=fresh)

    def _parse_closed(self) -> Any:
        # The chunk carrying the server's own "]" may also finish the last fragment
        if not self._buffer.rstrip().endswith("]"):
            return None
        try:
            return json.loads(self._buffer)
        except json.JSONDecodeError:
            return None

    async def decode_stream(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[Snapshot]:
        """Yield snapshots as chunks arrive.

        Each snapshot is yielded before the next chunk is read, so a
        consumer that raises stops the stream. End of input ends
        decoding; nothing is flushed.
        """
        async for chunk in chunks:
            snapshot = self.feed(chunk)
            if snapshot is not None:
                yield snapshot
