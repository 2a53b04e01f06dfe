"""Incremental parser for the ``data: <json>\\n\\n`` chat stream.

A frame may be split across any number of reads, including in the middle of
a multi-byte UTF-8 sequence. Bytes are decoded incrementally and appended to
a text buffer; every complete blank-line-delimited segment is a candidate
frame and the trailing remainder waits for the next read.
"""

import codecs
import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator

from pydantic import ValidationError

from fpl_chat.models.chat import StreamEvent
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

FRAME_DELIMITER = "\n\n"
DATA_PREFIX = "data: "


class FrameDecoder:
    """Reassembles stream events from arbitrary byte chunks.

    One decoder serves one response body; create a new one per stream.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last complete frame."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Append a chunk and return the events completed by it, in order."""
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def close(self) -> list[StreamEvent]:
        """Signal end of stream.

        Flushes the byte decoder; an unterminated trailing frame is discarded
        since the stream may have been cut mid-frame.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        events = self._drain()
        if self._buffer.strip():
            logger.debug(f"Discarding unterminated frame at end of stream: {self._buffer[:80]!r}")
        self._buffer = ""
        return events

    def _drain(self) -> list[StreamEvent]:
        *frames, self._buffer = self._buffer.split(FRAME_DELIMITER)
        events = []
        for frame in frames:
            event = parse_frame(frame)
            if event is not None:
                events.append(event)
        return events


def parse_frame(frame: str) -> StreamEvent | None:
    """Parse one delimited frame; None for comments, keepalives and malformed data."""
    if not frame.startswith(DATA_PREFIX):
        return None

    payload = frame[len(DATA_PREFIX) :]
    try:
        return StreamEvent.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.debug(f"Dropping malformed frame ({type(e).__name__}): {payload[:80]!r}")
        return None


def parse_stream(chunks: Iterable[bytes]) -> Iterator[StreamEvent]:
    """Lazily yield the events carried by a sequence of byte chunks."""
    decoder = FrameDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
    yield from decoder.close()


async def aparse_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Async counterpart of :func:`parse_stream` for network response bodies."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.close():
        yield event
