"""Console chat platform -- renders bot output to a terminal instead of Slack."""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from ..messaging.events import SlackMessage
from ..util.result import Result


class ConsolePlatform:
    """A :class:`ChatPlatform` with no network behind it.

    Threads are kept in memory so follow-up questions in one CLI session
    see the earlier turns as context.
    """

    def __init__(self, bot_name: str, console: Console | None = None) -> None:
        self.bot_name = bot_name.lower()
        self.user_id = f"U{self.bot_name.upper()}123456"
        self.console = console or Console()
        self._threads: dict[str, list[SlackMessage]] = {}
        self.sent: list[tuple[str, str, str]] = []

    def record(self, thread_ts: str, message: SlackMessage) -> None:
        self._threads.setdefault(thread_ts, []).append(message)

    async def send_message(self, channel: str, thread_ts: str, text: str) -> Result:
        self.sent.append((channel, thread_ts, text))
        self.record(thread_ts, SlackMessage(
            user=self.user_id,
            text=text,
            ts=f"{thread_ts}.r{len(self.sent)}",
            thread_ts=thread_ts,
            bot_id=f"B{self.bot_name.upper()}",
        ))
        self.console.print(Panel(
            Markdown(text), title=f"[bold cyan]{self.bot_name}[/bold cyan]", title_align="left",
        ))
        return Result.ok()

    async def add_reaction(self, channel: str, ts: str, name: str) -> Result:
        self.console.print(f"[dim]{self.bot_name} reacted :{name}:[/dim]")
        return Result.ok()

    async def fetch_thread_messages(self, channel: str, thread_ts: str, limit: int) -> list[SlackMessage]:
        return list(self._threads.get(thread_ts, []))[-limit:]

    async def resolve_self_identity(self) -> str:
        return self.user_id

    async def resolve_bot_info(self, bot_id: str) -> dict[str, str]:
        return {"name": self.bot_name, "user_id": self.user_id, "app_id": ""}
