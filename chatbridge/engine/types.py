"""Data exchanged with the command engine.

Everything here is created and discarded within a single pipeline run;
nothing is shared between messages.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Union

DEFAULT_MEDIA_TYPE = "application/octet-stream"
TEXT_MEDIA_TYPE = "text/plain"


@dataclass(frozen=True, slots=True)
class Token:
    """One lexical token; *raw* keeps the quotes, *data* does not."""

    data: str
    raw: str
    media_type: str = TEXT_MEDIA_TYPE


@dataclass
class InputStream:
    """A typed in-memory payload handed to the engine.

    The engine owns it for the duration of one run and may consume or
    truncate ``data`` in place.
    """

    data: bytes
    media_type: str = DEFAULT_MEDIA_TYPE
    name: str = ""

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True, slots=True)
class UserContext:
    username: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.username is None


@dataclass(frozen=True, slots=True)
class Comment:
    text: str


@dataclass(frozen=True, slots=True)
class Data:
    data: bytes
    media_type: str = DEFAULT_MEDIA_TYPE
    file_name: str = ""


# Engines may emit block kinds this bridge does not know; they are kept as
# ``Any`` and rendered as a placeholder.
Block = Union[Comment, Data, Any]


@dataclass
class Output:
    """Blocks emitted for one resolved command, in order."""

    blocks: list[Block] = field(default_factory=list)
    title: str = ""


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Success or partial-failure outcome of ``run_commands``.

    Both variants carry the same ordered outputs. The tag only matters for
    logging; rendering treats them identically.

    Examples::

        result = ExecutionResult.ok([Output([Comment("42")])])
        result = ExecutionResult.fail([Output([Comment("Sorry, that failed")])])
    """

    success: bool
    outputs: tuple[Output, ...] = ()

    @classmethod
    def ok(cls, outputs: Sequence[Output] = ()) -> ExecutionResult:
        return cls(success=True, outputs=tuple(outputs))

    @classmethod
    def fail(cls, outputs: Sequence[Output] = ()) -> ExecutionResult:
        return cls(success=False, outputs=tuple(outputs))

    def __bool__(self) -> bool:
        return self.success

    @property
    def block_count(self) -> int:
        return sum(len(o.blocks) for o in self.outputs)
