"""Slack Events API endpoints -- POST /slack/events[/{bot_name}]."""

from __future__ import annotations

import json
import logging

from aiohttp import web

from ..messaging.bot import CHALLENGE, UNKNOWN_BOT, BotDispatcher

logger = logging.getLogger(__name__)


class EventsEndpoint:
    """Answers Slack immediately; the workflow runs in the background."""

    def __init__(self, dispatcher: BotDispatcher) -> None:
        self._dispatcher = dispatcher

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/slack/events", self.handle)
        router.add_post("/slack/events/{bot_name}", self.handle)

    async def handle(self, req: web.Request) -> web.Response:
        bot_name = req.match_info.get("bot_name")
        raw_body = await req.read()
        try:
            body = json.loads(raw_body)
        except ValueError as exc:
            logger.warning("[events] Invalid JSON body from %s: %s", req.remote, exc)
            return web.json_response(
                {"status": "error", "message": f"Invalid JSON: {exc}"}, status=400,
            )

        result = await self._dispatcher.route_and_handle(body, bot_name)
        logger.info(
            "[events] %s %s -> %s (bot=%s)",
            req.method, req.path, result.status, result.bot or "-",
        )

        if result.status == CHALLENGE:
            return web.json_response({"challenge": result.challenge})
        if result.status == UNKNOWN_BOT:
            return web.json_response(
                {"error": f"Bot '{bot_name}' not found", "availableBots": result.available},
                status=404,
            )
        return web.Response(text="OK")
