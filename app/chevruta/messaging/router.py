"""Event routing -- decide which registered bot handles an inbound event."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..util.async_helpers import bounded
from .events import MESSAGE_EVENT, is_handshake

if TYPE_CHECKING:
    from ..registries.bots import BotIdentity, BotRegistry
    from ..workflow.collaborators import ChatPlatform

logger = logging.getLogger(__name__)

PlatformFor = Callable[["BotIdentity"], "ChatPlatform"]

BOT_INFO_CACHE_SIZE = 256
MISS_CACHE_SIZE = 256
MISS_TTL = 300.0


class BotUserIdCache:
    """Bot name -> Slack user id.  The first stored value for a name wins."""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> str | None:
        with self._lock:
            return self._ids.get(name)

    def set(self, name: str, user_id: str) -> str:
        with self._lock:
            return self._ids.setdefault(name, user_id)

    def names_for(self, user_id: str) -> list[str]:
        with self._lock:
            return [n for n, uid in self._ids.items() if uid == user_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)

    async def resolve(self, identity: BotIdentity, platform: ChatPlatform, timeout: float) -> str | None:
        """Cached user id for *identity*, looked up once via ``auth.test``."""
        cached = self.get(identity.name)
        if cached:
            return cached
        try:
            user_id = await bounded(platform.resolve_self_identity(), timeout, "auth.test")
        except Exception as exc:
            logger.warning("[router] Could not resolve user id for %s: %s", identity.name, exc)
            return None
        if not user_id:
            return None
        return self.set(identity.name, user_id)


class EventRouter:
    """Maps an event to exactly one bot name; falls back to the default bot.

    ``bots.info`` answers are kept in a bounded LRU.  Failed lookups are
    remembered for *miss_ttl* seconds so a noisy unknown bot costs one
    round of calls, not one per event.
    """

    def __init__(
        self,
        registry: BotRegistry,
        platform_for: PlatformFor,
        user_ids: BotUserIdCache | None = None,
        identity_timeout: float = 5.0,
        miss_ttl: float = MISS_TTL,
    ) -> None:
        self._registry = registry
        self._platform_for = platform_for
        self.user_ids = user_ids or BotUserIdCache()
        self._identity_timeout = identity_timeout
        self._miss_ttl = miss_ttl
        self._bot_info: OrderedDict[str, dict[str, str]] = OrderedDict()
        self._misses: OrderedDict[str, float] = OrderedDict()
        self._info_lock = threading.Lock()

    def default_bot(self) -> str | None:
        identity = self._registry.default()
        return identity.name if identity else None

    def explicit(self, name: str) -> str | None:
        name = name.lower()
        return name if self._registry.has(name) else None

    async def route(self, payload: dict[str, Any]) -> str | None:
        default = self.default_bot()
        if is_handshake(payload):
            return default

        event = payload.get("event")
        if not isinstance(event, dict) or event.get("type") != MESSAGE_EVENT:
            return default

        user = event.get("user")
        if user:
            names = self.user_ids.names_for(user)
            if len(names) == 1:
                logger.debug("[router] Sender %s is bot %s (cached)", user, names[0])
                return names[0]

        bot_id = event.get("bot_id")
        if not bot_id:
            return default

        name = await self._identify_bot(bot_id)
        if name and self._registry.has(name):
            logger.info("[router] bot_id %s -> %s", bot_id, name)
            return name
        logger.info("[router] Could not map bot_id %s to a registered bot; using %s", bot_id, default)
        return default

    async def _identify_bot(self, bot_id: str) -> str | None:
        with self._info_lock:
            info = self._bot_info.get(bot_id)
            if info is not None:
                self._bot_info.move_to_end(bot_id)
            elif self._recent_miss(bot_id):
                logger.debug("[router] bot_id %s failed lookup recently; skipping", bot_id)
                return None
        if info is None:
            info = await self._lookup_bot_info(bot_id)
            with self._info_lock:
                if info is None:
                    _remember(self._misses, bot_id, time.monotonic(), MISS_CACHE_SIZE)
                    return None
                self._misses.pop(bot_id, None)
                info = self._bot_info.setdefault(bot_id, info)
                _remember(self._bot_info, bot_id, info, BOT_INFO_CACHE_SIZE)
        name = (info.get("name") or "").lower()
        if name and info.get("user_id") and self._registry.has(name):
            self.user_ids.set(name, info["user_id"])
        return name or None

    def _recent_miss(self, bot_id: str) -> bool:
        failed_at = self._misses.get(bot_id)
        if failed_at is None:
            return False
        if time.monotonic() - failed_at < self._miss_ttl:
            return True
        del self._misses[bot_id]
        return False

    async def _lookup_bot_info(self, bot_id: str) -> dict[str, str] | None:
        for identity in self._registry.all():
            if identity.is_placeholder:
                continue
            platform = self._platform_for(identity)
            try:
                return await bounded(
                    platform.resolve_bot_info(bot_id), self._identity_timeout, "bots.info",
                )
            except Exception as exc:
                logger.debug("[router] bots.info via %s failed: %s", identity.name, exc)
        logger.warning("[router] Could not retrieve bot info for %s", bot_id)
        return None


def _remember(cache: OrderedDict, key: str, value: object, limit: int) -> None:
    """Insert or refresh *key*, evicting the oldest entries past *limit*."""
    cache[key] = value
    cache.move_to_end(key)
    while len(cache) > limit:
        cache.popitem(last=False)
