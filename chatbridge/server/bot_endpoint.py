"""Bot Framework endpoint -- POST /api/messages."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web
from botbuilder.schema import Activity

if TYPE_CHECKING:
    from botbuilder.core import ActivityHandler, BotFrameworkAdapter

logger = logging.getLogger(__name__)


class BotEndpoint:
    """Hands incoming activities to the adapter.

    *credentials_configured* is decided by the bootstrap; without app
    credentials every POST is refused with 503.
    """

    def __init__(
        self,
        adapter: BotFrameworkAdapter,
        bot: ActivityHandler,
        *,
        credentials_configured: bool,
    ) -> None:
        self.adapter = adapter
        self._bot = bot
        self._configured = credentials_configured

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/messages", self.handle)
        router.add_get("/api/messages", self._get_messages)

    async def _get_messages(self, _req: web.Request) -> web.Response:
        """GET /api/messages -- probe for the bot endpoint."""
        return web.json_response({
            "status": "ok",
            "endpoint": "/api/messages",
            "method": "POST required",
            "bot_configured": self._configured,
        })

    async def handle(self, req: web.Request) -> web.Response:
        logger.debug(
            "[bot] POST /api/messages from %s | content-type=%s content-length=%s",
            req.remote,
            req.headers.get("Content-Type", "?"),
            req.headers.get("Content-Length", "?"),
        )

        if not self._configured:
            logger.warning("[bot] Rejected: bot credentials not configured")
            return web.json_response(
                {"status": "error", "message": "Bot credentials not configured"},
                status=503,
            )

        raw_body = await req.read()
        try:
            body = json.loads(raw_body)
        except ValueError as exc:
            logger.error("[bot] Failed to parse JSON body: %s | raw=%s", exc, raw_body[:500])
            return web.json_response(
                {"status": "error", "message": f"Invalid JSON: {exc}"},
                status=400,
            )
        if not isinstance(body, dict):
            return web.json_response(
                {"status": "error", "message": "Activity must be a JSON object"},
                status=400,
            )

        channel = body.get("channelId", "?")
        activity_type = body.get("type", "?")
        from_id = (body.get("from") or {}).get("id", "?")
        auth_header = req.headers.get("Authorization", "")
        logger.info("[bot] Activity: type=%s channel=%s from=%s", activity_type, channel, from_id)

        try:
            activity = Activity().deserialize(body)
            response = await self.adapter.process_activity(activity, auth_header, self._bot.on_turn)
        except PermissionError as exc:
            logger.warning("[bot] Authentication failed (401): %s", exc)
            return web.Response(status=401, text=str(exc))
        except Exception as exc:
            logger.exception(
                "[bot] Error processing activity: %s (type=%s channel=%s from=%s)",
                exc, activity_type, channel, from_id,
            )
            return web.json_response(
                {"status": "error", "message": f"Processing failed: {exc}"},
                status=500,
            )

        if response:
            return web.json_response(response.body, status=response.status)
        return web.Response(status=200)
