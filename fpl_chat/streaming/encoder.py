"""Server side of the chat stream framing."""

import json
from collections.abc import AsyncIterable, AsyncIterator

from fpl_chat.models.chat import StreamEvent
from fpl_chat.streaming.parser import DATA_PREFIX, FRAME_DELIMITER


def encode_event(event: StreamEvent) -> bytes:
    """Frame one event as ``data: <json>`` followed by a blank line."""
    payload = json.dumps(event.to_wire(), ensure_ascii=False, separators=(",", ":"))
    return f"{DATA_PREFIX}{payload}{FRAME_DELIMITER}".encode()


async def encode_stream(events: AsyncIterable[StreamEvent]) -> AsyncIterator[bytes]:
    """Frame every event of an async event source."""
    async for event in events:
        yield encode_event(event)
