"""Event dispatch -- gate, route, and run workflows in the background.

The webhook must answer Slack within seconds, so accepted events are
handed to a background task and processing continues after the HTTP
response has gone out.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..errors import ValidationFailure
from ..workflow.state import BotContext
from .dedup import DeduplicationCache
from .events import SlackMessageEvent, is_handshake, is_message_callback, parse_event
from .router import EventRouter

if TYPE_CHECKING:
    from ..registries.bots import BotIdentity, BotRegistry
    from ..workflow.collaborators import Collaborators
    from ..workflow.graph import WorkflowEngine

logger = logging.getLogger(__name__)

CHALLENGE = "challenge"
UNKNOWN_BOT = "unknown_bot"
IGNORED = "ignored"
INVALID = "invalid"
DUPLICATE = "duplicate"
ACCEPTED = "accepted"


@dataclass(frozen=True)
class DispatchResult:
    status: str
    bot: str | None = None
    challenge: str | None = None
    available: list[str] = field(default_factory=list)


class BotDispatcher:
    """Entry point for inbound payloads; never raises to its caller."""

    def __init__(
        self,
        registry: BotRegistry,
        router: EventRouter,
        collaborators_for: Callable[[BotIdentity], Collaborators],
        dedup: DeduplicationCache | None = None,
        identity_timeout: float = 5.0,
    ) -> None:
        self._registry = registry
        self._router = router
        self._collaborators_for = collaborators_for
        self.dedup = dedup or DeduplicationCache()
        self._identity_timeout = identity_timeout
        self._engines: dict[str, WorkflowEngine] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def engine_for(self, identity: BotIdentity) -> WorkflowEngine:
        engine = self._engines.get(identity.name)
        if engine is None:
            engine = identity.workflow_factory(self._collaborators_for(identity))
            self._engines[identity.name] = engine
        return engine

    async def route_and_handle(
        self, payload: dict[str, Any], bot_name: str | None = None,
    ) -> DispatchResult:
        if not isinstance(payload, dict):
            return DispatchResult(IGNORED)
        if is_handshake(payload):
            logger.info("[dispatch] URL verification handshake")
            return DispatchResult(
                CHALLENGE, bot=self._router.default_bot(), challenge=str(payload.get("challenge", "")),
            )

        explicit = None
        if bot_name is not None:
            explicit = self._router.explicit(bot_name)
            if explicit is None:
                logger.warning("[dispatch] Unknown bot %r", bot_name)
                return DispatchResult(UNKNOWN_BOT, available=self._registry.list())

        if not is_message_callback(payload):
            return DispatchResult(IGNORED, bot=explicit)

        try:
            event = parse_event(payload["event"])
        except ValidationFailure as exc:
            logger.warning("[events] %s", exc)
            return DispatchResult(INVALID, bot=explicit)

        if not self.dedup.check_and_mark(event.dedup_key):
            logger.info("[dedup] Skipping duplicate event %s", event.dedup_key)
            return DispatchResult(DUPLICATE, bot=explicit)

        task = asyncio.create_task(self._handle(payload, event, explicit))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return DispatchResult(ACCEPTED, bot=explicit)

    async def drain(self) -> None:
        """Wait for every in-flight workflow to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def warm_user_ids(self) -> None:
        """Resolve each registered bot's own user id ahead of traffic."""
        for identity in self._registry.all():
            platform = self.engine_for(identity).nodes.platform
            user_id = await self._router.user_ids.resolve(identity, platform, self._identity_timeout)
            logger.info("[dispatch] %s user id: %s", identity.name, user_id or "(unresolved)")

    async def _handle(
        self, payload: dict[str, Any], event: SlackMessageEvent, explicit: str | None,
    ) -> None:
        try:
            name = explicit or await self._router.route(payload)
            identity = self._registry.get(name) if name else None
            if identity is None:
                logger.error("[dispatch] No bot available for event %s", event.dedup_key)
                return
            engine = self.engine_for(identity)
            platform = engine.nodes.platform
            user_id = await self._router.user_ids.resolve(identity, platform, self._identity_timeout)
            logger.info("[dispatch] %s handling %s", identity.name, event.dedup_key)
            await engine.run(event, BotContext(name=identity.name, user_id=user_id))
        except Exception:
            logger.exception("[dispatch] Unexpected failure handling %s", event.dedup_key)
