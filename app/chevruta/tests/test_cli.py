"""Tests for the interactive CLI session and console platform."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from rich.console import Console

from app.chevruta.cli import CLI_CHANNEL, CliSession
from app.chevruta.config.settings import Settings
from app.chevruta.registries.bots import BotRegistry, discover_bots
from app.chevruta.services.console import ConsolePlatform
from app.chevruta.workflow.variants import workflow_factory_for


def _session(fake_reasoning: AsyncMock, tmp_path: Path) -> CliSession:
    registry = BotRegistry()
    env = {
        "BINA_SLACK_TOKEN": "t", "BINA_SIGNING_SECRET": "s",
        "BINAH_SLACK_TOKEN": "t", "BINAH_SIGNING_SECRET": "s",
    }
    discover_bots(registry, env, workflow_factory_for)
    session = CliSession(registry, fake_reasoning, Settings(tmp_path / "none.env"))
    for platform in session.platforms.values():
        platform.console = Console(file=io.StringIO())
    return session


class TestConsolePlatform:
    @pytest.mark.asyncio
    async def test_threads_kept_in_memory(self) -> None:
        platform = ConsolePlatform("Bina", Console(file=io.StringIO()))
        assert await platform.resolve_self_identity() == "UBINA123456"
        assert await platform.send_message("CLI", "1.0", "first")
        assert await platform.send_message("CLI", "1.0", "second")
        history = await platform.fetch_thread_messages("CLI", "1.0", 1)
        assert [m.text for m in history] == ["second"]
        assert history[0].from_bot
        assert platform.sent == [("CLI", "1.0", "first"), ("CLI", "1.0", "second")]

    @pytest.mark.asyncio
    async def test_bot_info(self) -> None:
        platform = ConsolePlatform("binah", Console(file=io.StringIO()))
        info = await platform.resolve_bot_info("B1")
        assert info["name"] == "binah"


class TestCliSession:
    def test_default_bot(self, fake_reasoning: AsyncMock, tmp_path: Path) -> None:
        assert _session(fake_reasoning, tmp_path).current == "bina"

    def test_use(self, fake_reasoning: AsyncMock, tmp_path: Path) -> None:
        session = _session(fake_reasoning, tmp_path)
        session.thread_ts = "1.0"
        assert session.use(" BINAH ")
        assert session.current == "binah"
        assert session.thread_ts is None
        assert not session.use("ghost")
        assert session.current == "binah"

    def test_build_event_opens_thread(self, fake_reasoning: AsyncMock, tmp_path: Path) -> None:
        session = _session(fake_reasoning, tmp_path)
        first = session.build_event("what is havdalah?")
        second = session.build_event("and kiddush?")
        assert first["channel"] == CLI_CHANNEL
        assert first["text"] == "<@UBINA123456> what is havdalah?"
        assert first["thread_ts"] == first["ts"]
        assert second["thread_ts"] == first["ts"]

    @pytest.mark.asyncio
    async def test_ask_answers_in_thread(self, fake_reasoning: AsyncMock, tmp_path: Path) -> None:
        session = _session(fake_reasoning, tmp_path)
        await session.ask("when does Shabbat begin?")
        platform = session.platforms["bina"]
        assert platform.sent[-1][2] == "Shabbat begins at sundown."

        await session.ask("and when does it end?")
        messages = fake_reasoning.complete.await_args.args[0]
        assert [m["role"] for m in messages] == ["user", "assistant", "user"]
