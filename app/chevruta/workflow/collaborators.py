"""External collaborator contracts and the dependency bundle handed to nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..config.settings import Timeouts
from ..messaging.events import SlackMessage
from ..util.result import Result


class ChatPlatform(Protocol):
    """The chat surface a bot is bound to (one credential per instance)."""

    async def send_message(self, channel: str, thread_ts: str, text: str) -> Result: ...

    async def add_reaction(self, channel: str, ts: str, name: str) -> Result: ...

    async def fetch_thread_messages(
        self, channel: str, thread_ts: str, limit: int,
    ) -> list[SlackMessage]: ...

    async def resolve_self_identity(self) -> str: ...

    async def resolve_bot_info(self, bot_id: str) -> dict[str, str]: ...


class ReasoningService(Protocol):
    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str: ...

    async def rewrite(self, text: str, rules: str) -> str: ...

    async def suggest_reaction(self, text: str) -> str: ...


class ResearchAgent(Protocol):
    """A multi-step tool-using agent; returns the final answer text."""

    async def run(self, messages: list[dict[str, Any]]) -> str: ...


@dataclass
class Collaborators:
    platform: ChatPlatform
    reasoning: ReasoningService
    timeouts: Timeouts = field(default_factory=Timeouts)
    debug: bool = False
    research: ResearchAgent | None = None
