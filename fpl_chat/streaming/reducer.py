"""Conversation state machine: fold stream events into the message list.

``apply_event`` is a pure function. Every event targets the last message of
the conversation, which must be an assistant message; otherwise the event is
ignored. Only the last message is replaced; earlier messages are shared with
the input list. Events arriving after ``done`` or ``error`` are still applied.
"""

from collections.abc import Callable, Sequence

from fpl_chat.models.chat import Message, StreamEvent, StreamEventType, ToolCall, ToolCallStatus
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

Conversation = Sequence[Message]
EventHandler = Callable[[Message, StreamEvent], Message]

UNKNOWN_ERROR = "Unknown error"


def error_text(content: str | None) -> str:
    """User-facing text for an in-band error event."""
    return f"Error: {content or UNKNOWN_ERROR}"


def _text_delta(message: Message, event: StreamEvent) -> Message:
    return message.model_copy(update={"content": message.content + (event.content or "")})


def _thinking_delta(message: Message, event: StreamEvent) -> Message:
    return message.model_copy(update={"thinking": (message.thinking or "") + (event.content or "")})


def _tool_use_start(message: Message, event: StreamEvent) -> Message:
    if event.tool_call is None:
        logger.debug("tool_use_start without a tool call payload, ignoring")
        return message

    tool_call = ToolCall(
        id=event.tool_call.id,
        name=event.tool_call.name,
        input={},
        status=ToolCallStatus.RUNNING,
    )
    return message.model_copy(update={"tool_calls": [*message.tool_calls, tool_call]})


def _tool_use_end(message: Message, event: StreamEvent) -> Message:
    payload = event.tool_call
    if payload is None or not any(tc.id == payload.id for tc in message.tool_calls):
        logger.debug(f"tool_use_end for unknown tool call {payload.id if payload else None}, ignoring")
        return message

    tool_calls = [
        tc.model_copy(
            update={
                "input": payload.input or {},
                "result": payload.result,
                "error": payload.error,
                "status": ToolCallStatus.ERROR if payload.error else ToolCallStatus.COMPLETED,
            }
        )
        if tc.id == payload.id
        else tc
        for tc in message.tool_calls
    ]
    return message.model_copy(update={"tool_calls": tool_calls})


def _error(message: Message, event: StreamEvent) -> Message:
    return message.model_copy(update={"content": error_text(event.content), "is_streaming": False})


def _done(message: Message, event: StreamEvent) -> Message:
    return message.model_copy(update={"is_streaming": False})


EVENT_HANDLERS: dict[StreamEventType, EventHandler] = {
    StreamEventType.TEXT_DELTA: _text_delta,
    StreamEventType.THINKING_DELTA: _thinking_delta,
    StreamEventType.TOOL_USE_START: _tool_use_start,
    StreamEventType.TOOL_USE_END: _tool_use_end,
    StreamEventType.ERROR: _error,
    StreamEventType.DONE: _done,
}


def apply_event(conversation: Conversation, event: StreamEvent) -> Conversation:
    """Return the conversation after applying ``event``.

    The input is returned as-is when the event does not change anything.
    """
    if not conversation or conversation[-1].role != "assistant":
        logger.debug(f"Ignoring {event.type} event: last message is not an assistant message")
        return conversation

    last = conversation[-1]
    updated = EVENT_HANDLERS[event.type](last, event)
    if updated is last:
        return conversation

    return [*conversation[:-1], updated]


def apply_events(conversation: Conversation, events: Sequence[StreamEvent]) -> Conversation:
    """Fold a sequence of events in order."""
    for event in events:
        conversation = apply_event(conversation, event)
    return conversation
