"""Transport interface consumed by the message pipeline."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..messaging.models import OutgoingMessage


class TransportError(Exception):
    """The chat platform rejected or failed to deliver an outgoing message.

    Covers network failures, payloads over the platform's limits and rate
    limiting. The pipeline never retries.
    """


@dataclass(frozen=True)
class TransportCapabilities:
    """What a transport can put into a single send call.

    *supports_combined_send* -- text and several attachments fit into one
    message; otherwise every rendered block is sent on its own.
    *inline_limit* -- longest decoded text (in characters) rendered inline
    instead of as an attachment.
    *markdown* -- the platform renders fenced code blocks.
    """

    supports_combined_send: bool
    max_text_length: int
    max_attachments: int = 10
    inline_limit: int = 1024
    markdown: bool = True


@runtime_checkable
class Transport(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def capabilities(self) -> TransportCapabilities: ...

    @property
    def mention_pattern(self) -> re.Pattern[str] | None: ...

    async def send(self, message: OutgoingMessage) -> None: ...
