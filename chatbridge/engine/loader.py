"""Build the command engine from a ``module:attribute`` path."""

from __future__ import annotations

import importlib
import logging

from .ports import CommandEngine

logger = logging.getLogger(__name__)


class EngineLoadError(ValueError):
    """Raised when the configured engine path cannot be turned into an engine."""


def load_engine(path: str) -> CommandEngine:
    """Import *path* and return a :class:`CommandEngine`.

    *path* is ``package.module:attr`` (``package.module.attr`` is accepted
    too). A class or factory is called without arguments; an object that
    already implements the engine interface is used as is.
    """
    path = (path or "").strip()
    if not path:
        raise EngineLoadError("No command engine configured (set CHATBRIDGE_ENGINE)")

    if ":" in path:
        module_path, _, attr_name = path.partition(":")
    else:
        module_path, _, attr_name = path.rpartition(".")
    if not module_path or not attr_name:
        raise EngineLoadError(f"Invalid engine path {path!r}; expected 'module:attr'")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise EngineLoadError(f"Cannot import engine module {module_path!r}: {exc}") from exc

    try:
        target = getattr(module, attr_name)
    except AttributeError as exc:
        raise EngineLoadError(f"Module {module_path!r} has no attribute {attr_name!r}") from exc

    if isinstance(target, type) or not isinstance(target, CommandEngine):
        if not callable(target):
            raise EngineLoadError(f"{path!r} is neither an engine nor an engine factory")
        try:
            engine = target()
        except Exception as exc:
            raise EngineLoadError(f"Engine factory {path!r} failed: {exc}") from exc
    else:
        engine = target
    if not isinstance(engine, CommandEngine):
        raise EngineLoadError(
            f"{path!r} does not provide get_commands()/run_commands()"
        )

    logger.info("Loaded command engine %s from %s", type(engine).__name__, path)
    return engine
