"""Application settings -- reads from environment and ``.env`` file.

All configuration is consolidated here.  Components never import ``cfg``
themselves; the entry points read it once and pass the relevant pieces
down through constructors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from dotenv import dotenv_values

DEFAULT_BOT_NAME = "bina"
TOKEN_SUFFIX = "_SLACK_TOKEN"
SECRET_SUFFIX = "_SIGNING_SECRET"
LEGACY_TOKEN_KEY = "SLACK_BOT_TOKEN"
LEGACY_SECRET_KEY = "SLACK_SIGNING_SECRET"
PLACEHOLDER_TOKEN = "cli-test-token"
PLACEHOLDER_SECRET = "cli-test-secret"

_TRUTHY = frozenset({"1", "true", "yes"})


@dataclass(frozen=True)
class Timeouts:
    """Upper bounds (seconds) for every call that leaves the process."""

    slack: float = 10.0
    identity: float = 5.0
    reasoning: float = 120.0
    rewrite: float = 60.0
    reaction: float = 5.0


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    _DOTENV_ENV: ClassVar[str] = "DOTENV_PATH"

    def __init__(self, dotenv_path: str | Path | None = None) -> None:
        self.dotenv_path = Path(dotenv_path or os.getenv(self._DOTENV_ENV) or ".env")
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        self._file: dict[str, str] = {}
        if self.dotenv_path.is_file():
            self._file = {k: v for k, v in dotenv_values(self.dotenv_path).items() if v is not None}
        e = self._read

        self.anthropic_api_key: str = e("ANTHROPIC_API_KEY")
        self.sefaria_mcp_url: str = e("SEFARIA_MCP_URL")
        self.reasoning_model: str = e("REASONING_MODEL") or "claude-sonnet-4-5-20250929"
        self.rewrite_model: str = e("REWRITE_MODEL") or "claude-haiku-4-5-20251001"
        self.reaction_model: str = e("REACTION_MODEL") or "claude-3-5-haiku-latest"

        self.port: int = int(e("PORT") or "3001")
        self.debug: bool = e("DEBUG").lower() in _TRUTHY

        self.timeouts = Timeouts(
            slack=float(e("SLACK_TIMEOUT") or Timeouts.slack),
            identity=float(e("IDENTITY_TIMEOUT") or Timeouts.identity),
            reasoning=float(e("REASONING_TIMEOUT") or Timeouts.reasoning),
            rewrite=float(e("REWRITE_TIMEOUT") or Timeouts.rewrite),
            reaction=float(e("REACTION_TIMEOUT") or Timeouts.reaction),
        )

    def environ(self) -> dict[str, str]:
        """The full key namespace scanned by bot discovery."""
        merged = dict(os.environ)
        merged.update(self._file)
        return merged

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return self._file.get(key) or os.getenv(key, "")


# Module-level instance for the process entry points
cfg = Settings()


def reset_cfg() -> Settings:
    global cfg
    cfg = Settings()
    return cfg
