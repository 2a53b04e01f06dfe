#!/usr/bin/env python3
"""Interactive chat CLI for the FPL chat service."""

import argparse
import asyncio
import os

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from fpl_chat.clients.chat_api import ChatAPIClient
from fpl_chat.models.chat import Message, ToolCallStatus
from fpl_chat.services.controller import ChatController, ConversationSnapshot
from fpl_chat.services.storage import FileKeyValueStore
from fpl_chat.utils.logging import LogConfig, setup_logging

CONVERSATION_ID = "cli"
DEFAULT_HISTORY_DIR = "~/.fpl-chat"

TOOL_ICONS = {
    ToolCallStatus.PENDING: "…",
    ToolCallStatus.RUNNING: "⏳",
    ToolCallStatus.COMPLETED: "✅",
    ToolCallStatus.ERROR: "❌",
}


def render_message(message: Message, show_thinking: bool = False) -> Panel:
    """Render one message as a panel; assistant messages show tool activity."""
    if message.role == "user":
        return Panel(Text(message.content), title="[bold cyan]You[/bold cyan]", border_style="cyan")

    parts = []
    if show_thinking and message.thinking:
        parts.append(Text(message.thinking, style="dim italic"))
    for tool_call in message.tool_calls:
        line = f"{TOOL_ICONS[tool_call.status]} {tool_call.name}"
        if tool_call.error:
            line += f": {tool_call.error}"
        parts.append(Text(line, style="yellow"))
    if message.content:
        parts.append(Markdown(message.content))
    elif message.is_streaming:
        parts.append(Text("💭 Thinking...", style="dim"))

    return Panel(
        Group(*parts),
        title="[bold green]⚽ FPL Assistant[/bold green]",
        border_style="green",
        padding=(1, 2),
    )


class ChatCLI:
    """Interactive chat interface built on the request controller."""

    def __init__(
        self,
        base_url: str,
        history_dir: str = DEFAULT_HISTORY_DIR,
        manager_id: int | None = None,
        show_thinking: bool = False,
    ):
        """Initialize chat CLI."""
        self.console = Console()
        self.show_thinking = show_thinking
        self.transport = ChatAPIClient(base_url)
        self.controller = ChatController(
            transport=self.transport,
            storage=FileKeyValueStore(history_dir),
            manager_id=manager_id,
            show_thinking=show_thinking,
            api_key=os.getenv("ANTHROPIC_API_KEY"),
        )

    async def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]⚽ FPL Chat Assistant[/bold blue]\n"
                "Ask about players, fixtures, captains, transfers and chips.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        if not await self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.transport.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to FPL chat service[/green]\n")

        history = self.controller.snapshot(CONVERSATION_ID).messages
        if history:
            self.console.print(f"[dim]Restored {len(history)} messages[/dim]")
            for message in history[-4:]:
                self.console.print(render_message(message, self.show_thinking))

        try:
            while True:
                user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    await self.controller.reset(CONVERSATION_ID)
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                await self._send_message(user_input)
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            await self.transport.aclose()

    async def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = await self.transport.http.get("/health")
            return response.status_code == 200
        except Exception:
            return False

    async def _send_message(self, text: str) -> None:
        """Send a message and live-render the assistant reply as it streams."""
        with Live(console=self.console, refresh_per_second=12) as live:

            def on_snapshot(snapshot: ConversationSnapshot) -> None:
                if snapshot.messages and snapshot.messages[-1].role == "assistant":
                    live.update(render_message(snapshot.messages[-1], self.show_thinking))

            unsubscribe = self.controller.subscribe(CONVERSATION_ID, on_snapshot)
            try:
                await self.controller.send(CONVERSATION_ID, text)
            finally:
                unsubscribe()

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Clear the conversation and its saved history
• /quit or /exit - Exit the chat

[bold]Example Questions:[/bold]
1. "Who should I captain this week?"
2. "Compare Salah and Palmer"
3. "Best midfielders under £8m with good fixtures"
4. "When should I use my Bench Boost?"

[bold]Tips:[/bold]
• Pass --manager-id to get advice on your own squad
• Pass --thinking to see the assistant's reasoning
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    parser = argparse.ArgumentParser(description="Chat with the FPL assistant")
    parser.add_argument("base_url", nargs="?", default=os.getenv("FPL_CHAT_URL", "http://localhost:8000"))
    parser.add_argument("--manager-id", type=int, default=None, help="Your FPL manager ID")
    parser.add_argument("--thinking", action="store_true", help="Stream extended thinking")
    parser.add_argument("--history-dir", default=DEFAULT_HISTORY_DIR, help="Where chat history is saved")
    args = parser.parse_args()

    setup_logging(LogConfig(level=os.getenv("LOG_LEVEL", "INFO"), log_file=f"{args.history_dir}/chat_cli.log"))

    chat = ChatCLI(args.base_url, args.history_dir, args.manager_id, args.thinking)
    try:
        asyncio.run(chat.start())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
