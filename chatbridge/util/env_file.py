"""Read-only access to a ``KEY=value`` style ``.env`` file."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class EnvFile:
    """Parses a ``.env`` file lazily on every read.

    Blank lines and ``#`` comments are ignored, a leading ``export`` is
    tolerated and matching single or double quotes around a value are removed.
    A missing file behaves like an empty one.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read(self, key: str) -> str:
        return self.read_all().get(key, "")

    def read_all(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            logger.warning("Failed to read %s: %s", self.path, exc)
            return {}

        values: dict[str, str] = {}
        for line in raw.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            key, _, value = line.partition("=")
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
                value = value[1:-1]
            values[key.strip()] = value
        return values
