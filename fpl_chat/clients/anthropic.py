"""Anthropic API client: streamed turns, token estimation and truncation."""

import os
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import tiktoken
from anthropic import AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock

from fpl_chat.models.chat import StreamEvent
from fpl_chat.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMResponse,
    LLMUsage,
    RedactedThinkingBlock,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

BLOCK_TYPES: dict[str, type[ContentBlock]] = {
    "text": TextBlock,
    "thinking": ThinkingBlock,
    "redacted_thinking": RedactedThinkingBlock,
    "tool_use": ToolUseBlock,
}


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    thinking_budget_tokens: int = 5000
    max_retries: int = 3
    max_turns: int = 10

    # Token limits for validation and truncation
    max_message_tokens: int = 8000  # Maximum tokens per individual user message
    max_conversation_tokens: int = 200000  # Claude 4 Sonnet default context window
    token_headroom: int = 10000  # Reserve tokens for response and tool results


class AnthropicClient:
    """Low-level Anthropic API client used by the chat tool loop."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            config: Client configuration
        """
        anthropic_api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig()
        self.client = AsyncAnthropic(api_key=self.api_key, max_retries=self.config.max_retries)

        # Initialize tokenizer for token estimation
        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def stream_turn(
        self,
        messages: list[LLMMessage],
        system_prompt: str,
        tools: list[dict[str, Any]] | None = None,
        show_thinking: bool = False,
    ) -> AsyncIterator[StreamEvent | LLMResponse]:
        """Stream one model turn.

        Yields ``tool_use_start``, ``text_delta`` and ``thinking_delta`` events as
        they arrive, then a single ``LLMResponse`` with the complete content.
        """
        request_params: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": system_prompt,
            "messages": [_to_api_message(msg) for msg in messages],
        }
        if tools:
            request_params["tools"] = tools
        if show_thinking:
            # The thinking budget is counted inside max_tokens.
            request_params["max_tokens"] = self.config.max_tokens + self.config.thinking_budget_tokens
            request_params["thinking"] = {"type": "enabled", "budget_tokens": self.config.thinking_budget_tokens}

        logger.debug(f"Streaming turn with {len(messages)} messages, {len(tools) if tools else 0} tools")

        async with self.client.messages.stream(**request_params) as stream:
            async for event in stream:
                if event.type == "content_block_start":
                    block = event.content_block
                    if block.type == "tool_use":
                        yield StreamEvent.tool_start(block.id, block.name)
                elif event.type == "content_block_delta":
                    delta = event.delta
                    if delta.type == "text_delta":
                        yield StreamEvent.text(delta.text)
                    elif delta.type == "thinking_delta":
                        yield StreamEvent.thinking(delta.thinking)

            response = await stream.get_final_message()

        logger.debug(
            f"Turn complete - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        yield LLMResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            model=response.model,
            usage=LLMUsage(
                input_tokens=response.usage.input_tokens if response.usage else 0,
                output_tokens=response.usage.output_tokens if response.usage else 0,
            ),
        )

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            block_dict = block.model_dump()
            block_type = BLOCK_TYPES.get(block_dict.get("type"))
            if block_type is None:
                logger.warning(f"Unknown content block type: {block_dict.get('type')}")
                continue
            converted_blocks.append(block_type.model_validate(block_dict))

        return converted_blocks

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def validate_message_tokens(self, message: str) -> None:
        """Validate that a message doesn't exceed token limits.

        Raises:
            ValueError: If message exceeds token limit
        """
        token_count = self.estimate_message_tokens(message)
        if token_count > self.config.max_message_tokens:
            raise ValueError(
                f"Message exceeds token limit: {token_count} tokens > {self.config.max_message_tokens} limit"
            )

    def truncate_conversation(
        self, messages: list[LLMMessage], system_prompt: str, tools: list[dict[str, Any]] | None = None
    ) -> list[LLMMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The result always starts with a user message.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Tool catalogue sent with the request

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)
        if tools:
            tool_content = "".join(tool["name"] + tool["description"] + str(tool["input_schema"]) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        truncated_messages: list[LLMMessage] = []
        current_tokens = 0

        for message in reversed(messages):
            message_tokens = self.estimate_message_tokens(_message_text(message))
            if current_tokens + message_tokens > available_tokens:
                # Stop adding messages if we exceed the limit
                break
            truncated_messages.insert(0, message)
            current_tokens += message_tokens

        while truncated_messages and truncated_messages[0].role != "user":
            truncated_messages.pop(0)

        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages


def _message_text(message: LLMMessage) -> str:
    if isinstance(message.content, str):
        return message.content
    parts = []
    for block in message.content:
        if isinstance(block, TextBlock):
            parts.append(block.text)
        elif isinstance(block, ThinkingBlock):
            parts.append(block.thinking)
        elif isinstance(block, ToolResultBlock):
            parts.append(block.content)
        elif isinstance(block, ToolUseBlock):
            parts.append(str(block.input))
    return "".join(parts)


def _to_api_message(message: LLMMessage) -> dict[str, Any]:
    if isinstance(message.content, str):
        return {"role": message.role, "content": message.content}
    return {"role": message.role, "content": [block.model_dump() for block in message.content]}
