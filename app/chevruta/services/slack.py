"""Slack Web API client over aiohttp -- one instance per bot token."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from ..errors import SlackApiError
from ..messaging.events import SlackMessage
from ..util.result import Result

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api"
REPLIES_PAGE_SIZE = 200


class SlackClient:
    """Implements :class:`~app.chevruta.workflow.collaborators.ChatPlatform`.

    Side-effect calls (posting, reacting) return a :class:`Result`;
    read calls raise :class:`SlackApiError` or the underlying aiohttp
    error.
    """

    def __init__(
        self,
        token: str,
        session: ClientSession,
        *,
        base_url: str = SLACK_API_BASE,
        timeout: float = 10.0,
    ) -> None:
        self._token = token
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = ClientTimeout(total=timeout)

    async def send_message(self, channel: str, thread_ts: str, text: str) -> Result:
        try:
            data = await self._call("chat.postMessage", json={
                "channel": channel,
                "thread_ts": thread_ts,
                "text": text,
                "mrkdwn": True,
            })
        except (SlackApiError, ClientError, TimeoutError) as exc:
            logger.error("[slack] chat.postMessage failed: %s", exc)
            return Result.fail(str(exc))
        return Result.ok(value=data.get("ts"))

    async def add_reaction(self, channel: str, ts: str, name: str) -> Result:
        try:
            await self._call("reactions.add", json={
                "channel": channel,
                "timestamp": ts,
                "name": name,
            })
        except SlackApiError as exc:
            if exc.error == "already_reacted":
                return Result.ok("already_reacted")
            return Result.fail(str(exc))
        except (ClientError, TimeoutError) as exc:
            return Result.fail(str(exc))
        return Result.ok()

    async def fetch_thread_messages(
        self, channel: str, thread_ts: str, limit: int,
    ) -> list[SlackMessage]:
        """The *limit* most recent messages of a thread, oldest first.

        ``conversations.replies`` pages from the thread root forward, so
        every page is read and the tail is kept.
        """
        params = {"channel": channel, "ts": thread_ts, "limit": str(REPLIES_PAGE_SIZE)}
        raw: list[dict[str, Any]] = []
        while True:
            data = await self._call("conversations.replies", params=params)
            raw.extend(data.get("messages", []))
            cursor = (data.get("response_metadata") or {}).get("next_cursor")
            if not data.get("has_more") or not cursor:
                break
            params = {**params, "cursor": cursor}
        messages = [SlackMessage.model_validate(m) for m in raw[-limit:]] if limit > 0 else []
        logger.debug("[slack] conversations.replies -> %d of %d message(s)", len(messages), len(raw))
        return messages

    async def resolve_self_identity(self) -> str:
        data = await self._call("auth.test", json={})
        user_id = data.get("user_id")
        if not user_id:
            raise SlackApiError("auth.test", "missing user_id")
        return user_id

    async def resolve_bot_info(self, bot_id: str) -> dict[str, str]:
        data = await self._call("bots.info", params={"bot": bot_id})
        bot = data.get("bot") or {}
        return {
            "name": bot.get("name", ""),
            "user_id": bot.get("user_id", ""),
            "app_id": bot.get("app_id", ""),
        }

    async def _call(
        self,
        method: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{method}"
        headers = {"Authorization": f"Bearer {self._token}"}
        if params is not None:
            request = self._session.get(url, params=params, headers=headers, timeout=self._timeout)
        else:
            request = self._session.post(url, json=json or {}, headers=headers, timeout=self._timeout)
        async with request as resp:
            if resp.status >= 400:
                raise SlackApiError(method, f"HTTP {resp.status}")
            data = await resp.json(content_type=None)
        if not isinstance(data, dict) or not data.get("ok"):
            error = data.get("error", "unknown_error") if isinstance(data, dict) else "bad_response"
            raise SlackApiError(method, error)
        return data


class SlackClients:
    """Hands out one :class:`SlackClient` per token over a shared session."""

    def __init__(self, *, base_url: str = SLACK_API_BASE, timeout: float = 10.0) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._session: ClientSession | None = None
        self._clients: dict[str, SlackClient] = {}

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = ClientSession()

    def for_token(self, token: str) -> SlackClient:
        if self._session is None:
            raise RuntimeError("SlackClients.start() has not been called")
        client = self._clients.get(token)
        if client is None:
            client = SlackClient(
                token, self._session, base_url=self._base_url, timeout=self._timeout,
            )
            self._clients[token] = client
        return client

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._clients.clear()
