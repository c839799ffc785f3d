"""Outcome of handling one inbound message."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """``success`` plus a short human-readable ``message``.

    The pipeline reports the final state name on success and the transport's
    error text on failure; ``value`` carries the finished run either way::

        result = await pipeline.handle(message)
        ok, reason = result
        if not ok:
            logger.warning("gave up after %d send(s): %s", result.value.sent, reason)
    """

    success: bool
    message: str = ""
    value: T | None = field(default=None, repr=False)

    @classmethod
    def ok(cls, message: str = "", *, value: T | None = None) -> Result[T]:
        return cls(True, message, value)

    @classmethod
    def fail(cls, message: str = "", *, value: T | None = None) -> Result[T]:
        return cls(False, message, value)

    def __bool__(self) -> bool:
        return self.success

    def __iter__(self) -> Iterator[bool | str]:
        return iter((self.success, self.message))

    def __repr__(self) -> str:
        return f"Result({'OK' if self.success else 'FAIL'}, {self.message!r})"
