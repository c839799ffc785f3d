"""Command-line entry point -- pick a transport and start bridging."""

from __future__ import annotations

import argparse
import asyncio
import logging

from . import __version__
from .config.settings import cfg
from .engine.loader import EngineLoadError, load_engine

logger = logging.getLogger(__name__)


def _run_discord(engine, parser: argparse.ArgumentParser) -> None:
    if not cfg.discord_token:
        parser.error("DISCORD_TOKEN is not set")
    from .transports.discord_bot import DiscordBot

    bot = DiscordBot(
        engine,
        max_attachment_bytes=cfg.max_attachment_bytes,
        inline_limit=cfg.inline_text_limit,
        docs_url=cfg.docs_url,
    )
    bot.run(cfg.discord_token, log_handler=None)


def _run_telegram(engine, parser: argparse.ArgumentParser) -> None:
    if not cfg.telegram_bot_token:
        parser.error("TELEGRAM_BOT_TOKEN is not set")
    from .transports.telegram_bot import TelegramBot

    TelegramBot(
        cfg.telegram_bot_token,
        engine,
        max_attachment_bytes=cfg.max_attachment_bytes,
        inline_limit=cfg.inline_text_limit,
        docs_url=cfg.docs_url,
    ).run()


def _run_botframework(engine, parser: argparse.ArgumentParser) -> None:
    from .server.app import run

    run(engine)


def _run_console(engine, parser: argparse.ArgumentParser) -> None:
    from .transports.console import run_console

    cfg.ensure_dirs()
    try:
        asyncio.run(run_console(
            engine,
            outgoing_dir=cfg.outgoing_dir,
            history_path=cfg.cli_history_path,
            max_attachment_bytes=cfg.max_attachment_bytes,
            inline_limit=cfg.inline_text_limit,
            docs_url=cfg.docs_url,
        ))
    except KeyboardInterrupt:
        pass


_RUNNERS = {
    "discord": _run_discord,
    "telegram": _run_telegram,
    "botframework": _run_botframework,
    "console": _run_console,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatbridge",
        description="Bridge chat messages to a command engine.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--engine",
        help="engine to load as module:attr (default: $CHATBRIDGE_ENGINE)",
    )
    parser.add_argument("--log-level", help="logging level (default: $LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="transport", metavar="TRANSPORT", required=True)
    sub.add_parser("discord", help="run as a Discord bot (DISCORD_TOKEN)")
    sub.add_parser("telegram", help="run as a Telegram bot (TELEGRAM_BOT_TOKEN)")
    sub.add_parser("botframework", help="serve the Bot Framework webhook on BOT_PORT")
    sub.add_parser("console", help="interactive local console")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or cfg.log_level).upper(),
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )

    try:
        engine = load_engine(args.engine or cfg.engine_path)
    except EngineLoadError as exc:
        raise SystemExit(f"chatbridge: {exc}") from exc

    logger.info("Starting %s transport (chatbridge %s)", args.transport, __version__)
    _RUNNERS[args.transport](engine, parser)


if __name__ == "__main__":
    main()
