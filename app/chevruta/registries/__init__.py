"""Bot identity registry."""

from .bots import BotIdentity, BotRegistry, discover_bots

__all__ = [
    "BotIdentity",
    "BotRegistry",
    "discover_bots",
]
