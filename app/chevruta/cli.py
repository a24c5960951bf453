"""Interactive CLI -- talk to the bots from a terminal, no Slack needed."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console

from . import __version__
from .config import settings as config
from .messaging.events import SlackMessage
from .registries.bots import BotRegistry, discover_bots
from .services.claude import ClaudeService
from .services.console import ConsolePlatform
from .services.research import SefariaResearchAgent
from .workflow.collaborators import Collaborators, ResearchAgent
from .workflow.graph import WorkflowEngine
from .workflow.state import BotContext
from .workflow.variants import workflow_factory_for

console = Console()

CLI_CHANNEL = "CLI"
CLI_USER = "UCLIUSER"
_HISTORY_PATH = Path.home() / ".chevruta_history"


class CliSession:
    """Holds one console platform and engine per bot, plus the open thread."""

    def __init__(
        self,
        registry: BotRegistry,
        reasoning: ClaudeService,
        settings: config.Settings,
        research: ResearchAgent | None = None,
    ) -> None:
        self.registry = registry
        self.platforms: dict[str, ConsolePlatform] = {}
        self.engines: dict[str, WorkflowEngine] = {}
        for identity in registry.all():
            platform = ConsolePlatform(identity.name, console)
            self.platforms[identity.name] = platform
            self.engines[identity.name] = identity.workflow_factory(Collaborators(
                platform=platform,
                reasoning=reasoning,
                timeouts=settings.timeouts,
                debug=settings.debug,
                research=research,
            ))
        default = registry.default()
        self.current = default.name if default else ""
        self.thread_ts: str | None = None

    def use(self, name: str) -> bool:
        name = name.strip().lower()
        if not self.registry.has(name):
            return False
        self.current = name
        self.thread_ts = None
        return True

    def build_event(self, text: str) -> dict[str, str]:
        platform = self.platforms[self.current]
        ts = f"{time.time():.6f}"
        if self.thread_ts is None:
            self.thread_ts = ts
        event = {
            "type": "message",
            "channel": CLI_CHANNEL,
            "user": CLI_USER,
            "text": f"<@{platform.user_id}> {text}",
            "ts": ts,
            "thread_ts": self.thread_ts,
        }
        platform.record(self.thread_ts, SlackMessage(
            user=CLI_USER, text=event["text"], ts=ts, thread_ts=self.thread_ts,
        ))
        return event

    async def ask(self, text: str) -> None:
        platform = self.platforms[self.current]
        event = self.build_event(text)
        with console.status(f"[dim]{self.current} is thinking...[/dim]"):
            state = await self.engines[self.current].run(
                event, BotContext(name=self.current, user_id=platform.user_id),
            )
        if state.get("error_occurred"):
            console.print(f"[red]error:[/red] {state.get('error')}")
        elif not state.get("should_process"):
            console.print("[dim]no response[/dim]")


async def _main() -> None:
    settings = config.reset_cfg()
    registry = BotRegistry()
    discover_bots(registry, settings.environ(), workflow_factory_for)

    console.print(
        f"[bold green]chevruta[/bold green] v{__version__}\n"
        "Commands: [bold]/bots[/bold], [bold]/use <name>[/bold], [bold]/quit[/bold]\n"
    )
    if not settings.anthropic_api_key:
        console.print("[yellow]ANTHROPIC_API_KEY is not set; answers will fail.[/yellow]")

    reasoning = ClaudeService(
        settings.anthropic_api_key,
        mcp_url=settings.sefaria_mcp_url,
        reasoning_model=settings.reasoning_model,
        rewrite_model=settings.rewrite_model,
        reaction_model=settings.reaction_model,
    )
    research = None
    if settings.sefaria_mcp_url and settings.anthropic_api_key:
        research = SefariaResearchAgent(
            settings.anthropic_api_key, settings.sefaria_mcp_url, model=settings.reasoning_model,
        )
    session = CliSession(registry, reasoning, settings, research)
    prompt_session: PromptSession[str] = PromptSession(history=FileHistory(str(_HISTORY_PATH)))

    try:
        while True:
            try:
                user_input = await asyncio.to_thread(
                    prompt_session.prompt, HTML(f"<b>{session.current} &gt;</b> "),
                )
            except (EOFError, KeyboardInterrupt):
                break

            text = user_input.strip()
            if not text:
                continue
            lowered = text.lower()
            if lowered in ("/quit", "/exit"):
                break
            if lowered == "/bots":
                for identity in registry.all():
                    marker = "*" if identity.name == session.current else " "
                    console.print(f" {marker} [bold]{identity.name}[/bold]  [dim]{identity.description}[/dim]")
                continue
            if lowered.startswith("/use"):
                name = text[4:].strip()
                if session.use(name):
                    console.print(f"[dim]-- now talking to {session.current} --[/dim]")
                else:
                    console.print(f"[red]unknown bot:[/red] {name or '(none)'}; try /bots")
                continue

            console.print()
            await session.ask(text)
            console.print()
    finally:
        await reasoning.close()
        console.print("[dim]Goodbye.[/dim]")


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
