"""aiohttp application -- Slack webhooks, health, and lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from ..config import settings as config
from ..config.settings import Settings
from ..messaging.bot import BotDispatcher
from ..messaging.router import EventRouter
from ..registries.bots import BotIdentity, BotRegistry, discover_bots
from ..services.claude import ClaudeService
from ..services.console import ConsolePlatform
from ..services.research import SefariaResearchAgent
from ..services.slack import SlackClients
from ..workflow.collaborators import ChatPlatform, Collaborators, ReasoningService, ResearchAgent
from ..workflow.variants import workflow_factory_for
from .events_endpoint import EventsEndpoint

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-check log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


class AppFactory:
    """Builds the aiohttp application with all dependencies wired.

    *platform_for*, *reasoning* and *research* replace the Slack and
    Anthropic clients, which is how tests run the full stack offline.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        platform_for: Callable[[BotIdentity], ChatPlatform] | None = None,
        reasoning: ReasoningService | None = None,
        research: ResearchAgent | None = None,
    ) -> None:
        self.settings = settings or config.cfg
        self._platform_override = platform_for
        self._reasoning_override = reasoning
        self._research = research
        self._consoles: dict[str, ConsolePlatform] = {}

    async def build(self) -> web.Application:
        self._init_core()

        app = web.Application()
        app["registry"] = self.registry
        app["dispatcher"] = self.dispatcher

        self._register_routes(app)
        self._register_lifecycle(app)
        return app

    def _init_core(self) -> None:
        s = self.settings
        self.registry = BotRegistry()
        discover_bots(self.registry, s.environ(), workflow_factory_for)

        self._slack = SlackClients(timeout=s.timeouts.slack)
        self._claude: ClaudeService | None = None
        if self._reasoning_override is not None:
            self._reasoning = self._reasoning_override
        else:
            if not s.anthropic_api_key:
                logger.warning("ANTHROPIC_API_KEY is missing; reasoning calls will fail")
            self._claude = ClaudeService(
                s.anthropic_api_key,
                mcp_url=s.sefaria_mcp_url,
                reasoning_model=s.reasoning_model,
                rewrite_model=s.rewrite_model,
                reaction_model=s.reaction_model,
            )
            self._reasoning = self._claude

        if self._research is None and s.sefaria_mcp_url and s.anthropic_api_key:
            self._research = SefariaResearchAgent(
                s.anthropic_api_key, s.sefaria_mcp_url, model=s.reasoning_model,
            )

        self.router = EventRouter(
            self.registry, self._platform_for, identity_timeout=s.timeouts.identity,
        )
        self.dispatcher = BotDispatcher(
            self.registry,
            self.router,
            self._collaborators_for,
            identity_timeout=s.timeouts.identity,
        )
        logger.info(
            "Registered %d bot(s): %s", self.registry.count(), ", ".join(self.registry.list()),
        )

    def _platform_for(self, identity: BotIdentity) -> ChatPlatform:
        if self._platform_override is not None:
            return self._platform_override(identity)
        if identity.is_placeholder:
            console = self._consoles.get(identity.name)
            if console is None:
                console = self._consoles[identity.name] = ConsolePlatform(identity.name)
            return console
        return self._slack.for_token(identity.credential_token)

    def _collaborators_for(self, identity: BotIdentity) -> Collaborators:
        return Collaborators(
            platform=self._platform_for(identity),
            reasoning=self._reasoning,
            timeouts=self.settings.timeouts,
            debug=self.settings.debug,
            research=self._research,
        )

    def _register_routes(self, app: web.Application) -> None:
        EventsEndpoint(self.dispatcher).register(app.router)
        app.router.add_get("/health", self._health)

    async def _health(self, _req: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "bots": [b.to_dict() for b in self.registry.all()],
            "botCount": self.registry.count(),
        })

    def _register_lifecycle(self, app: web.Application) -> None:
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)

    async def _on_startup(self, app: web.Application) -> None:
        await self._slack.start()
        app["warmup_task"] = asyncio.create_task(self.dispatcher.warm_user_ids())

    async def _on_cleanup(self, app: web.Application) -> None:
        task = app.get("warmup_task")
        if task and not task.done():
            task.cancel()
        await self.dispatcher.drain()
        await self._slack.close()
        if self._claude is not None:
            await self._claude.close()


async def create_app() -> web.Application:
    factory = AppFactory()
    return await factory.build()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    cfg = config.reset_cfg()
    logging.getLogger().setLevel(logging.DEBUG if cfg.debug else logging.INFO)
    logger.info("Starting Slack events server on port %d ...", cfg.port)
    web.run_app(create_app(), host="0.0.0.0", port=cfg.port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
