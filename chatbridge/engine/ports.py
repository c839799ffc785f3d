"""Interface of the external command engine.

The engine resolves tokens into commands and runs them. It is shared by every
in-flight message, so implementations must tolerate concurrent calls from
worker threads.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from .types import ExecutionResult, InputStream, Token, UserContext

CommandDescriptor = Any


@runtime_checkable
class CommandEngine(Protocol):
    def get_commands(
        self,
        tokens: Sequence[Token],
        streams: Sequence[InputStream],
    ) -> list[CommandDescriptor]: ...

    def run_commands(
        self,
        commands: list[CommandDescriptor],
        streams: list[InputStream],
        user: UserContext | None = None,
    ) -> ExecutionResult: ...
