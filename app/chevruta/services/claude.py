"""Anthropic Messages API client over aiohttp."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import ClientSession, ClientTimeout

from ..errors import ClaudeApiError
from ..workflow.prompts import REACTION_PROMPT

logger = logging.getLogger(__name__)

ANTHROPIC_API_BASE = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
MCP_BETA = "mcp-client-2025-04-04"
MCP_SERVER_NAME = "sefaria"

DEFAULT_MAX_TOKENS = 8000
REWRITE_MAX_TOKENS = 12000
REACTION_MAX_TOKENS = 10


class ClaudeService:
    """Implements :class:`~app.chevruta.workflow.collaborators.ReasoningService`."""

    def __init__(
        self,
        api_key: str,
        *,
        mcp_url: str = "",
        reasoning_model: str,
        rewrite_model: str,
        reaction_model: str,
        base_url: str = ANTHROPIC_API_BASE,
        session: ClientSession | None = None,
    ) -> None:
        self._api_key = api_key
        self._mcp_url = mcp_url
        self.reasoning_model = reasoning_model
        self.rewrite_model = rewrite_model
        self.reaction_model = reaction_model
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        body: dict[str, Any] = {
            "model": self.reasoning_model,
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
            "temperature": 0.7,
            "messages": messages,
        }
        if system:
            body["system"] = system
        beta = None
        if self._mcp_url:
            body["mcp_servers"] = [{"type": "url", "url": self._mcp_url, "name": MCP_SERVER_NAME}]
            beta = MCP_BETA
        logger.info("[claude] complete: model=%s turns=%d mcp=%s",
                    self.reasoning_model, len(messages), bool(self._mcp_url))
        data = await self._post(body, beta=beta)
        return _join_text(data)

    async def rewrite(self, text: str, rules: str) -> str:
        body = {
            "model": self.rewrite_model,
            "max_tokens": REWRITE_MAX_TOKENS,
            "temperature": 0,
            "messages": [{
                "role": "user",
                "content": f"{rules}\n\nResponse to convert (convert everything, do not truncate):\n{text}",
            }],
        }
        return _join_text(await self._post(body))

    async def suggest_reaction(self, text: str) -> str:
        body = {
            "model": self.reaction_model,
            "max_tokens": REACTION_MAX_TOKENS,
            "temperature": 0.7,
            "system": REACTION_PROMPT,
            "messages": [{
                "role": "user",
                "content": (
                    "Return just a single valid Slack emoji name (without colons) "
                    f'that relates to the topic of this question: "{text[:200]}"'
                ),
            }],
        }
        return _join_text(await self._post(body)).strip()

    async def _post(self, body: dict[str, Any], *, beta: str | None = None) -> dict[str, Any]:
        if self._session is None or self._session.closed:
            self._session = ClientSession()
            self._owns_session = True
        headers = {
            "x-api-key": self._api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        if beta:
            headers["anthropic-beta"] = beta
        async with self._session.post(
            f"{self._base_url}/v1/messages", json=body, headers=headers,
            timeout=ClientTimeout(total=None),
        ) as resp:
            data = await resp.json(content_type=None)
            if resp.status >= 400:
                raise ClaudeApiError(resp.status, _error_message(data))
        return data


def _join_text(data: dict[str, Any]) -> str:
    blocks = data.get("content") or []
    tools = sum(1 for b in blocks if b.get("type") == "mcp_tool_use")
    if tools:
        logger.info("[claude] Response used %d MCP tool call(s)", tools)
    return "".join(b.get("text", "") for b in blocks if b.get("type") == "text")


def _error_message(data: Any) -> str:
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict):
            return err.get("message") or err.get("type") or "unknown error"
    return "unknown error"
