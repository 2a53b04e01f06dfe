"""Server-side chat service: the streaming tool-use loop behind ``POST /api/chat``."""

import json
from collections.abc import AsyncIterator, Callable

from fpl_chat.clients.anthropic import AnthropicClient, AnthropicConfig
from fpl_chat.clients.fpl import FPLClient, get_fpl_client
from fpl_chat.exceptions import FPLChatError
from fpl_chat.models.chat import StreamEvent
from fpl_chat.models.conversation import ChatRequest
from fpl_chat.models.llm import ContentBlock, LLMMessage, LLMResponse, LLMUsage, ToolResultBlock
from fpl_chat.services.prompts import build_chat_system_prompt
from fpl_chat.services.scoring import ScoringEngine
from fpl_chat.tools.base import is_error_result
from fpl_chat.tools.context import create_tool_context
from fpl_chat.tools.dispatcher import ToolDispatcher
from fpl_chat.tools.registry import ToolsRegistry, get_tools_registry
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[str], AnthropicClient]

FINAL_STOP_REASONS = ("end_turn", "stop_sequence")


class ChatService:
    """Runs one chat request against the model and the FPL tools, as stream events."""

    def __init__(
        self,
        registry: ToolsRegistry | None = None,
        fpl_client: FPLClient | None = None,
        client_factory: ClientFactory | None = None,
        scoring: ScoringEngine | None = None,
        config: AnthropicConfig | None = None,
    ):
        """Initialize chat service.

        Args:
            registry: Tool catalogue (defaults to the global registry)
            fpl_client: FPL API client (defaults to the global instance)
            client_factory: Builds a model client for an API key
            scoring: Scoring engine handed to the tools
            config: Model configuration
        """
        self.registry = registry or get_tools_registry()
        self.dispatcher = ToolDispatcher(self.registry)
        self.fpl_client = fpl_client or get_fpl_client()
        self.config = config or AnthropicConfig()
        self.client_factory = client_factory or (lambda api_key: AnthropicClient(api_key, self.config))
        self.scoring = scoring

    def validate_request(self, request: ChatRequest, api_key: str) -> None:
        """Check the newest user message against the per-message token limit.

        Raises:
            ValueError: If the message exceeds the token limit
        """
        latest = next((m for m in reversed(request.messages) if m.role == "user"), None)
        if latest is not None:
            self.client_factory(api_key).validate_message_tokens(latest.content)

    async def stream_chat(self, request: ChatRequest, api_key: str) -> AsyncIterator[StreamEvent]:
        """Yield the events of one request, ending in ``done`` or a single ``error``."""
        try:
            async for event in self._run(request, api_key):
                yield event
        except Exception as e:
            logger.error(f"Chat request failed: {e}", exc_info=True)
            yield StreamEvent.failure(str(e) or "Unknown error")
            return

        yield StreamEvent.done()

    async def _run(self, request: ChatRequest, api_key: str) -> AsyncIterator[StreamEvent]:
        client = self.client_factory(api_key)
        context = await create_tool_context(self.fpl_client, request.manager_id, self.scoring)
        system_prompt = build_chat_system_prompt(bool(request.manager_id))
        tools = self.registry.get_tool_definitions()

        messages = client.truncate_conversation(
            [LLMMessage(role=m.role, content=m.content) for m in request.messages],
            system_prompt,
            tools,
        )
        logger.info(
            f"Starting chat with {len(messages)} messages, {len(tools)} tools, "
            f"max_turns: {self.config.max_turns}"
        )

        usage = LLMUsage()
        for turn in range(1, self.config.max_turns + 1):
            logger.debug(f"Chat loop turn {turn}/{self.config.max_turns}")

            response: LLMResponse | None = None
            async for item in client.stream_turn(messages, system_prompt, tools, bool(request.show_thinking)):
                if isinstance(item, LLMResponse):
                    response = item
                else:
                    yield item

            if response is None:
                raise FPLChatError("No response received from Claude")

            usage.input_tokens += response.usage.input_tokens
            usage.output_tokens += response.usage.output_tokens

            tool_uses = response.tool_uses
            if not tool_uses:
                break

            logger.info(f"Model wants to use {len(tool_uses)} tools")
            results = await self.dispatcher.execute_many([(t.name, t.input) for t in tool_uses], context)

            tool_results: list[ContentBlock] = []
            for tool_use, result in zip(tool_uses, results, strict=True):
                if is_error_result(result):
                    yield StreamEvent.tool_end(tool_use.id, tool_use.name, tool_use.input, error=result["error"])
                    tool_results.append(
                        ToolResultBlock(tool_use_id=tool_use.id, content=json.dumps(result), is_error=True)
                    )
                else:
                    yield StreamEvent.tool_end(tool_use.id, tool_use.name, tool_use.input, result=result)
                    tool_results.append(
                        ToolResultBlock(tool_use_id=tool_use.id, content=json.dumps(result, indent=2, default=str))
                    )

            messages = [
                *messages,
                LLMMessage(role="assistant", content=response.content),
                LLMMessage(role="user", content=tool_results),
            ]

            if response.stop_reason in FINAL_STOP_REASONS:
                break
        else:
            logger.warning(f"Chat loop reached max turns ({self.config.max_turns})")

        logger.info(f"Chat completed - tokens in: {usage.input_tokens}, out: {usage.output_tokens}")


_chat_service: ChatService | None = None


def get_chat_service() -> ChatService:
    """Get or create chat service instance."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
