"""Transport-agnostic inbound and outbound message representations."""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from ..engine.types import UserContext

FetchFn = Callable[[], Awaitable[bytes]]


@dataclass(frozen=True)
class Sender:
    address: str
    display_name: str | None = None

    def user_context(self) -> UserContext:
        """Some transports report the address as the display name; treat that as anonymous."""
        name = (self.display_name or "").strip()
        if not name or name == self.address:
            return UserContext()
        return UserContext(username=name)


@dataclass(frozen=True)
class RawAttachment:
    """An attachment as the transport announced it, not yet downloaded.

    *content_type* and *size* come from the sender and may be missing or wrong.
    """

    fetch: FetchFn
    content_type: str | None = None
    size: int | None = None
    name: str = ""


@dataclass(frozen=True)
class InboundMessage:
    """One chat message as the transport received it.

    *mention_pattern* overrides the transport's self-mention pattern for this
    message, for platforms that report mentions per message.
    """

    sender: Sender
    text: str
    attachments: tuple[RawAttachment, ...] = ()
    is_direct: bool = False
    mentioned: bool = False
    mention_pattern: re.Pattern[str] | None = field(default=None, repr=False)
    reply_to: Any = field(default=None, repr=False)

    @property
    def addressed(self) -> bool:
        """True when the bot should answer: a DM, or an explicit mention."""
        return self.is_direct or self.mentioned

    @property
    def declared_attachment_bytes(self) -> int:
        return sum(a.size or 0 for a in self.attachments)


@dataclass(frozen=True)
class OutgoingFile:
    """*named* is true when the engine chose the file name itself."""

    data: bytes
    name: str
    media_type: str
    named: bool = False


@dataclass(frozen=True)
class Hint:
    """Supplementary note a transport may render richly (e.g. an embed)."""

    title: str
    text: str

    def as_text(self) -> str:
        return f"{self.title}: {self.text}"


@dataclass
class OutgoingMessage:
    text: str | None = None
    files: list[OutgoingFile] = field(default_factory=list)
    reply_to: Any = field(default=None, repr=False)
    hint: Hint | None = None

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.files and self.hint is None
