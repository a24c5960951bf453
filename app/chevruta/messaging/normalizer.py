"""Two-tier output normalizer -- rewriting service first, regex fallback second."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..errors import NormalizationFailure
from ..util.async_helpers import bounded
from .formatting import SLACK_FORMAT_RULES, basic_slack_format_conversion, needs_slack_formatting

logger = logging.getLogger(__name__)

Rewriter = Callable[[str, str], Awaitable[str]]


@dataclass(frozen=True, slots=True)
class Normalized:
    needs_normalization: bool
    text: str
    tier: str = "none"


class OutputNormalizer:
    """Guarantees text handed to Slack is free of unsupported markup.

    Clean input is returned untouched.  Otherwise the *rewriter* (an
    external rewriting call taking ``(text, rules)``) is tried under
    *timeout*; on failure, empty output, or output that still carries
    defects, the deterministic regex conversion runs instead or on top.
    """

    def __init__(self, rewriter: Rewriter | None = None, timeout: float = 60.0) -> None:
        self._rewriter = rewriter
        self._timeout = timeout

    async def normalize(self, text: str) -> Normalized:
        if not needs_slack_formatting(text):
            return Normalized(needs_normalization=False, text=text)

        rewritten = await self._try_rewriter(text)
        if rewritten is not None and not needs_slack_formatting(rewritten):
            return Normalized(needs_normalization=True, text=rewritten, tier="rewriter")

        source = rewritten if rewritten is not None else text
        try:
            converted = basic_slack_format_conversion(source)
        except Exception as exc:
            raise NormalizationFailure(f"both tiers failed ({exc})") from exc
        if needs_slack_formatting(converted):
            raise NormalizationFailure("markup defects remain after conversion")
        tier = "rewriter+fallback" if rewritten is not None else "fallback"
        return Normalized(needs_normalization=True, text=converted, tier=tier)

    async def _try_rewriter(self, text: str) -> str | None:
        if self._rewriter is None:
            return None
        try:
            out = await bounded(self._rewriter(text, SLACK_FORMAT_RULES), self._timeout, "rewrite")
        except Exception as exc:
            logger.warning("[normalize] Rewriter failed, using regex fallback: %s", exc)
            return None
        if not out or not out.strip():
            logger.warning("[normalize] Rewriter returned empty output, using regex fallback")
            return None
        return out
