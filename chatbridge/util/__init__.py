"""Shared utilities."""

from .async_helpers import BackgroundTasks, run_sync
from .env_file import EnvFile
from .result import Result
from .singletons import register_singleton, reset_all_singletons

__all__ = [
    "BackgroundTasks",
    "EnvFile",
    "Result",
    "register_singleton",
    "reset_all_singletons",
    "run_sync",
]
