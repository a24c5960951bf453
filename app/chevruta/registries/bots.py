"""Bot registry -- discover, register, and look up configured bot identities."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config.settings import (
    DEFAULT_BOT_NAME,
    LEGACY_SECRET_KEY,
    LEGACY_TOKEN_KEY,
    PLACEHOLDER_SECRET,
    PLACEHOLDER_TOKEN,
    SECRET_SUFFIX,
    TOKEN_SUFFIX,
)

if TYPE_CHECKING:
    from ..workflow.collaborators import Collaborators
    from ..workflow.graph import WorkflowEngine

logger = logging.getLogger(__name__)

WorkflowFactory = Callable[["Collaborators"], "WorkflowEngine"]


@dataclass(frozen=True)
class BotIdentity:
    name: str
    credential_token: str = field(repr=False)
    verification_secret: str = field(repr=False)
    workflow_factory: WorkflowFactory = field(repr=False)
    description: str = ""

    def __post_init__(self) -> None:
        name = self.name.strip().lower()
        if not name:
            raise ValueError("bot name must not be empty")
        object.__setattr__(self, "name", name)

    @property
    def is_placeholder(self) -> bool:
        return self.credential_token == PLACEHOLDER_TOKEN

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description}


class BotRegistry:
    """Insertion-ordered name -> identity map, safe for concurrent use.

    Re-registering a name replaces the entry in place and keeps its
    original position in :meth:`list`.
    """

    def __init__(self) -> None:
        self._bots: dict[str, BotIdentity] = {}
        self._lock = threading.Lock()

    def register(self, identity: BotIdentity) -> None:
        with self._lock:
            replaced = identity.name in self._bots
            self._bots[identity.name] = identity
        logger.info(
            "[registry] %s bot: %s", "Replaced" if replaced else "Registered", identity.name,
        )

    def get(self, name: str) -> BotIdentity | None:
        with self._lock:
            return self._bots.get(name.lower())

    def has(self, name: str) -> bool:
        with self._lock:
            return name.lower() in self._bots

    def list(self) -> list[str]:
        with self._lock:
            return list(self._bots)

    def all(self) -> list[BotIdentity]:
        with self._lock:
            return list(self._bots.values())

    def count(self) -> int:
        with self._lock:
            return len(self._bots)

    def default(self) -> BotIdentity | None:
        """The legacy-named bot when present, else the first registered."""
        with self._lock:
            if DEFAULT_BOT_NAME in self._bots:
                return self._bots[DEFAULT_BOT_NAME]
            return next(iter(self._bots.values()), None)


def _paired_names(environ: Mapping[str, str]) -> list[str]:
    names: list[str] = []
    upper = {k.upper(): v for k, v in environ.items()}
    for key in upper:
        if not key.endswith(TOKEN_SUFFIX) or not upper[key]:
            continue
        prefix = key[: -len(TOKEN_SUFFIX)]
        if not prefix or not upper.get(prefix + SECRET_SUFFIX):
            continue
        name = prefix.lower()
        if name not in names:
            names.append(name)
    return sorted(names)


def discover_bots(
    registry: BotRegistry,
    environ: Mapping[str, str],
    factory_for: Callable[[str], WorkflowFactory],
) -> list[str]:
    """Register every bot configured in *environ* and return their names.

    Scans for ``<NAME>_SLACK_TOKEN`` / ``<NAME>_SIGNING_SECRET`` pairs.  With
    none present the unqualified legacy pair registers the default bot; with
    that absent too a placeholder identity keeps the pipeline usable offline.
    """
    upper = {k.upper(): v for k, v in environ.items()}
    names = _paired_names(environ)
    registered: list[str] = []

    for name in names:
        key = name.upper()
        registry.register(BotIdentity(
            name=name,
            credential_token=upper[key + TOKEN_SUFFIX],
            verification_secret=upper[key + SECRET_SUFFIX],
            workflow_factory=factory_for(name),
            description=f"{name} bot",
        ))
        registered.append(name)

    if registered:
        logger.info("[registry] Discovered %d bot(s): %s", len(registered), ", ".join(registered))
        return registered

    token = upper.get(LEGACY_TOKEN_KEY, "")
    secret = upper.get(LEGACY_SECRET_KEY, "")
    if token and secret:
        logger.info("[registry] No per-bot keys; using legacy credentials for %s", DEFAULT_BOT_NAME)
        registry.register(BotIdentity(
            name=DEFAULT_BOT_NAME,
            credential_token=token,
            verification_secret=secret,
            workflow_factory=factory_for(DEFAULT_BOT_NAME),
            description="Main scholarly assistant (legacy config)",
        ))
        return [DEFAULT_BOT_NAME]

    logger.warning("[registry] No Slack credentials configured; registering placeholder bot")
    registry.register(BotIdentity(
        name=DEFAULT_BOT_NAME,
        credential_token=PLACEHOLDER_TOKEN,
        verification_secret=PLACEHOLDER_SECRET,
        workflow_factory=factory_for(DEFAULT_BOT_NAME),
        description="Test bot for offline mode",
    ))
    return [DEFAULT_BOT_NAME]
