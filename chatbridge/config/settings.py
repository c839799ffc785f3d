"""Application settings -- reads from environment and ``.env`` file.

All configuration is consolidated here. Only the entry point reads ``cfg``;
the message pipeline receives the values it needs as plain parameters.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
DEFAULT_INLINE_TEXT_LIMIT = 1024


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    _DATA_DIR_ENV: ClassVar[str] = "CHATBRIDGE_DATA_DIR"

    def __init__(self) -> None:
        # Resolve .env path: explicit DOTENV_PATH > data_dir/.env > CWD/.env
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        e = self._read

        self.engine_path: str = e("CHATBRIDGE_ENGINE")
        self.docs_url: str = e("DOCS_URL")
        self.log_level: str = (e("LOG_LEVEL") or "INFO").upper()

        self.max_attachment_bytes: int = self._int("MAX_ATTACHMENT_BYTES", DEFAULT_MAX_ATTACHMENT_BYTES)
        self.inline_text_limit: int = self._int("INLINE_TEXT_LIMIT", DEFAULT_INLINE_TEXT_LIMIT)

        self.discord_token: str = e("DISCORD_TOKEN")
        self.telegram_bot_token: str = e("TELEGRAM_BOT_TOKEN")

        self.bot_app_id: str = e("BOT_APP_ID")
        self.bot_app_password: str = e("BOT_APP_PASSWORD")
        self.bot_app_tenant_id: str = e("BOT_APP_TENANT_ID")
        self.bot_port: int = self._int("BOT_PORT", 3978)

    # -- derived paths -----------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".chatbridge")))

    @property
    def outgoing_dir(self) -> Path:
        return self.data_dir / "outgoing"

    @property
    def cli_history_path(self) -> Path:
        return self.data_dir / ".cli_history"

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def _int(self, key: str, default: int) -> int:
        raw = self._read(key)
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer %s=%r; using %d", key, raw, default)
            return default
        if value <= 0:
            logger.warning("Ignoring non-positive %s=%d; using %d", key, value, default)
            return default
        return value

    def ensure_dirs(self) -> None:
        for d in (self.data_dir, self.outgoing_dir):
            d.mkdir(parents=True, exist_ok=True)


# Module-level singleton
cfg = Settings()


def _reset_cfg() -> None:
    global cfg
    cfg = Settings()


register_singleton(_reset_cfg)
