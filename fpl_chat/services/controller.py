"""Request controller: single-flight sends, cancellation and snapshot publishing."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

import httpx

from fpl_chat.clients.chat_api import ChatAPIClient
from fpl_chat.exceptions import ChatTransportError
from fpl_chat.models.chat import Message
from fpl_chat.models.conversation import ChatRequest, ChatRequestMessage
from fpl_chat.services.history import HistoryConfig, HistoryStore
from fpl_chat.services.storage import InMemoryKeyValueStore, KeyValueStore
from fpl_chat.streaming.parser import aparse_stream
from fpl_chat.streaming.reducer import apply_event
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

TRANSPORT_ERROR_PREFIX = "Sorry, something went wrong."


class ConversationStatus(StrEnum):
    IDLE = "idle"
    SENDING = "sending"
    IDLE_WITH_ERROR = "idle_with_error"


@dataclass(frozen=True)
class ConversationSnapshot:
    """Immutable view of a conversation published after every change."""

    conversation_id: str
    messages: tuple[Message, ...]
    status: ConversationStatus


Subscriber = Callable[[ConversationSnapshot], None]


@dataclass
class _ConversationState:
    conversation_id: str
    history: HistoryStore
    messages: list[Message] = field(default_factory=list)
    status: ConversationStatus = ConversationStatus.IDLE
    task: asyncio.Task | None = None
    placeholder_id: str | None = None
    subscribers: list[Subscriber] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    save_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class ChatController:
    """Owns every conversation and is the only writer of its message list.

    At most one request is in flight per conversation; a new ``send`` cancels
    the previous one before starting.
    """

    def __init__(
        self,
        transport: ChatAPIClient | None = None,
        storage: KeyValueStore | None = None,
        manager_id: int | None = None,
        show_thinking: bool = False,
        api_key: str | None = None,
        history_config: HistoryConfig | None = None,
    ):
        """Initialize request controller.

        Args:
            transport: Client for the chat endpoint
            storage: Key-value store for conversation history
            manager_id: Connected FPL manager, forwarded with every request
            show_thinking: Ask the server to stream extended thinking
            api_key: Anthropic API key forwarded to the server
            history_config: Limits for persisted history
        """
        self.transport = transport or ChatAPIClient()
        self.storage = storage or InMemoryKeyValueStore()
        self.manager_id = manager_id
        self.show_thinking = show_thinking
        self.api_key = api_key
        self.history_config = history_config or HistoryConfig()
        self._conversations: dict[str, _ConversationState] = {}

    def _get_state(self, conversation_id: str) -> _ConversationState:
        state = self._conversations.get(conversation_id)
        if state is None:
            history = HistoryStore(self.storage, conversation_id, self.history_config)
            state = _ConversationState(conversation_id=conversation_id, history=history, messages=history.load())
            self._conversations[conversation_id] = state
            if state.messages:
                logger.info(f"Restored {len(state.messages)} messages for conversation {conversation_id}")
        return state

    def snapshot(self, conversation_id: str) -> ConversationSnapshot:
        state = self._get_state(conversation_id)
        return ConversationSnapshot(conversation_id, tuple(state.messages), state.status)

    def subscribe(self, conversation_id: str, callback: Subscriber) -> Callable[[], None]:
        """Register a snapshot callback; returns a function that unregisters it."""
        state = self._get_state(conversation_id)
        state.subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in state.subscribers:
                state.subscribers.remove(callback)

        return unsubscribe

    def is_sending(self, conversation_id: str) -> bool:
        return self._get_state(conversation_id).status == ConversationStatus.SENDING

    async def send(self, conversation_id: str, text: str) -> None:
        """Send a user message and wait until the response settles or is superseded.

        Blank input is ignored.
        """
        text = text.strip()
        if not text:
            return

        state = self._get_state(conversation_id)
        async with state.lock:
            await self._cancel_in_flight(state)

            user_message = Message.user(text)
            placeholder = Message.assistant_placeholder()
            request = self._build_request([*state.messages, user_message])

            state.messages = [*state.messages, user_message, placeholder]
            state.placeholder_id = placeholder.id
            state.status = ConversationStatus.SENDING
            self._publish(state)

            task = asyncio.create_task(self._run(state, request))
            state.task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            await self._cancel_task(state, task)
            raise

    async def cancel(self, conversation_id: str) -> None:
        """Cancel the request in flight at the time of the call, if any.

        A send that starts while this call waits is not affected.
        """
        state = self._get_state(conversation_id)
        await self._cancel_task(state, state.task)

    async def reset(self, conversation_id: str) -> None:
        """Cancel, empty the conversation and delete its stored history."""
        state = self._get_state(conversation_id)
        async with state.lock:
            await self._cancel_in_flight(state)
            state.messages = []
            state.status = ConversationStatus.IDLE
            self._publish(state)
            async with state.save_lock:
                await asyncio.to_thread(state.history.clear)

    async def _run(self, state: _ConversationState, request: ChatRequest) -> None:
        try:
            async with self.transport.stream_chat(request) as chunks:
                async for event in aparse_stream(chunks):
                    state.messages = list(apply_event(state.messages, event))
                    self._publish(state)
        except asyncio.CancelledError:
            logger.info(f"Chat request for conversation {state.conversation_id} cancelled")
            raise
        except (ChatTransportError, httpx.HTTPError) as e:
            logger.warning(f"Chat request for conversation {state.conversation_id} failed: {e}")
            await self._fail(state, e)
            return
        except Exception as e:
            logger.error(f"Unexpected error while streaming chat response: {e}", exc_info=True)
            await self._fail(state, e)
            return

        self._update_placeholder(state, lambda m: m.model_copy(update={"is_streaming": False}))
        await self._finish(state, ConversationStatus.IDLE)

    async def _cancel_in_flight(self, state: _ConversationState) -> None:
        await self._cancel_task(state, state.task)

    async def _cancel_task(self, state: _ConversationState, task: asyncio.Task | None) -> None:
        if task is None or task.done():
            return

        task.cancel()
        await asyncio.wait({task})
        # Another waiter may have settled this task and started a newer one meanwhile.
        if task.cancelled() and state.task is task:
            self._settle_cancelled(state)
            await self._finish(state, ConversationStatus.IDLE)

    def _settle_cancelled(self, state: _ConversationState) -> None:
        """Drop an untouched placeholder; keep partial content but stop it streaming."""
        placeholder = self._placeholder(state)
        if placeholder is None or not placeholder.is_streaming:
            return
        if placeholder.has_content:
            self._update_placeholder(state, lambda m: m.model_copy(update={"is_streaming": False}))
        else:
            state.messages = [m for m in state.messages if m.id != placeholder.id]

    async def _fail(self, state: _ConversationState, error: Exception) -> None:
        content = f"{TRANSPORT_ERROR_PREFIX} {error}".strip()
        self._update_placeholder(state, lambda m: m.model_copy(update={"content": content, "is_streaming": False}))
        await self._finish(state, ConversationStatus.IDLE_WITH_ERROR)

    async def _finish(self, state: _ConversationState, status: ConversationStatus) -> None:
        state.task = None
        state.placeholder_id = None
        state.status = status
        self._publish(state)
        # Stores may touch the disk; saves are written in the order they were issued.
        messages = state.messages
        async with state.save_lock:
            await asyncio.to_thread(state.history.save, messages)

    def _placeholder(self, state: _ConversationState) -> Message | None:
        return next((m for m in state.messages if m.id == state.placeholder_id), None)

    def _update_placeholder(self, state: _ConversationState, update: Callable[[Message], Message]) -> None:
        state.messages = [update(m) if m.id == state.placeholder_id else m for m in state.messages]

    def _build_request(self, messages: list[Message]) -> ChatRequest:
        return ChatRequest(
            messages=[ChatRequestMessage(role=m.role, content=m.content) for m in messages if m.content],
            manager_id=self.manager_id,
            show_thinking=self.show_thinking or None,
            api_key=self.api_key,
        )

    def _publish(self, state: _ConversationState) -> None:
        snapshot = ConversationSnapshot(state.conversation_id, tuple(state.messages), state.status)
        for subscriber in list(state.subscribers):
            try:
                subscriber(snapshot)
            except Exception as e:
                logger.error(f"Snapshot subscriber failed: {e}", exc_info=True)
