"""Shared pytest fixtures for app.chevruta tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from app.chevruta.config.settings import Timeouts
from app.chevruta.util.result import Result
from app.chevruta.workflow.collaborators import Collaborators

BOT_USER_ID = "UBINA0001"

_ENV_KEYS = (
    "ANTHROPIC_API_KEY",
    "SEFARIA_MCP_URL",
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "DEBUG",
    "PORT",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in list(os.environ):
        if key.endswith(("_SLACK_TOKEN", "_SIGNING_SECRET")) or key in _ENV_KEYS:
            monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_cfg(_isolate_env: Path):
    from app.chevruta.config.settings import reset_cfg

    reset_cfg()
    yield
    reset_cfg()


@pytest.fixture()
def fake_platform() -> AsyncMock:
    platform = AsyncMock()
    platform.send_message.return_value = Result.ok(value="1700000000.000900")
    platform.add_reaction.return_value = Result.ok()
    platform.fetch_thread_messages.return_value = []
    platform.resolve_self_identity.return_value = BOT_USER_ID
    platform.resolve_bot_info.return_value = {"name": "bina", "user_id": BOT_USER_ID, "app_id": "A1"}
    return platform


@pytest.fixture()
def fake_reasoning() -> AsyncMock:
    reasoning = AsyncMock()
    reasoning.complete.return_value = "Shabbat begins at sundown."
    reasoning.rewrite.side_effect = RuntimeError("rewriter offline")
    reasoning.suggest_reaction.return_value = "candle"
    return reasoning


@pytest.fixture()
def fast_timeouts() -> Timeouts:
    return Timeouts(slack=1.0, identity=0.5, reasoning=1.0, rewrite=0.5, reaction=0.5)


@pytest.fixture()
def collaborators(
    fake_platform: AsyncMock, fake_reasoning: AsyncMock, fast_timeouts: Timeouts,
) -> Collaborators:
    return Collaborators(platform=fake_platform, reasoning=fake_reasoning, timeouts=fast_timeouts)


@pytest.fixture()
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory for raw Slack ``message`` event dicts that mention the bot."""

    def _make(**overrides: Any) -> dict[str, Any]:
        event: dict[str, Any] = {
            "type": "message",
            "channel": "C123",
            "user": "U999",
            "text": f"<@{BOT_USER_ID}> when does Shabbat begin?",
            "ts": "1700000000.000100",
        }
        event.update(overrides)
        return {k: v for k, v in event.items() if v is not None}

    return _make


@pytest.fixture()
def make_payload(make_event: Callable[..., dict[str, Any]]) -> Callable[..., dict[str, Any]]:
    def _make(**overrides: Any) -> dict[str, Any]:
        return {"type": "event_callback", "event": make_event(**overrides)}

    return _make
