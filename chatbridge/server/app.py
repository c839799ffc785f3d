"""Webhook server -- app factory and entry point for the Bot Framework transport."""

from __future__ import annotations

import logging

import aiohttp
from aiohttp import web
from aiohttp.abc import AbstractAccessLogger
from botbuilder.core import BotFrameworkAdapter, BotFrameworkAdapterSettings, TurnContext
from botbuilder.schema import Activity, ActivityTypes

from .. import __version__
from ..config.settings import cfg
from ..engine.ports import CommandEngine
from ..transports.botframework import BridgeBot
from .bot_endpoint import BotEndpoint

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-probe log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


def create_adapter(app_id: str = "", app_password: str = "", tenant_id: str = "") -> BotFrameworkAdapter:
    settings = BotFrameworkAdapterSettings(
        app_id=app_id or None,
        app_password=app_password or None,
        channel_auth_tenant=tenant_id or None,
    )
    adapter = BotFrameworkAdapter(settings)

    async def on_error(context: TurnContext, error: Exception) -> None:
        logger.error("Bot turn error: %s", error, exc_info=error)
        activity = Activity(type=ActivityTypes.message, text="An error occurred.")
        if (context.activity.channel_id or "").lower() == "telegram":
            activity.text_format = "plain"
        try:
            await context.send_activity(activity)
        except Exception as exc:
            logger.warning("Could not report turn error to the channel: %s", exc)

    adapter.on_turn_error = on_error
    return adapter


async def _health(_req: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


async def create_app(engine: CommandEngine) -> web.Application:
    """Build the aiohttp app: ``/api/messages`` and ``/health``.

    One ``ClientSession`` is shared by every attachment download and closed on
    cleanup, after in-flight replies have finished.
    """
    adapter = create_adapter(cfg.bot_app_id, cfg.bot_app_password, cfg.bot_app_tenant_id)
    session = aiohttp.ClientSession()
    bot = BridgeBot(
        engine,
        adapter,
        session,
        app_id=cfg.bot_app_id,
        max_attachment_bytes=cfg.max_attachment_bytes,
        inline_limit=cfg.inline_text_limit,
        docs_url=cfg.docs_url,
    )

    app = web.Application()
    app["bot"] = bot
    app["http_session"] = session

    BotEndpoint(
        adapter, bot, credentials_configured=bool(cfg.bot_app_id and cfg.bot_app_password),
    ).register(app.router)
    app.router.add_get("/health", _health)
    app.on_cleanup.append(_on_cleanup)
    return app


async def _on_cleanup(app: web.Application) -> None:
    bot: BridgeBot = app["bot"]
    if len(bot.tasks):
        logger.info("Waiting for %d in-flight message(s) ...", len(bot.tasks))
    await bot.tasks.drain()
    await app["http_session"].close()


def run(engine: CommandEngine) -> None:
    port = cfg.bot_port
    logger.info("Starting Bot Framework webhook on port %d ...", port)
    if not (cfg.bot_app_id and cfg.bot_app_password):
        logger.warning("BOT_APP_ID / BOT_APP_PASSWORD not set; /api/messages will answer 503")
    web.run_app(create_app(engine), host="0.0.0.0", port=port, access_log_class=QuietAccessLogger)
