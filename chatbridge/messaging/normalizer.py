"""Turns an inbound chat message into engine input."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

from ..engine.types import InputStream
from ..media.classify import parse_media_type
from .models import InboundMessage, RawAttachment

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


class AttachmentTooLarge(Exception):
    def __init__(self, total: int, limit: int) -> None:
        super().__init__(f"attachments total {total} bytes, limit is {limit}")
        self.total = total
        self.limit = limit


@dataclass
class NormalizedInput:
    text: str
    streams: list[InputStream] = field(default_factory=list)


class InputNormalizer:
    """Removes self-mention markup and downloads attachments.

    The cumulative attachment size is checked twice: against the sizes the
    transport declared (before any download) and against the bytes actually
    received, since not every platform declares sizes. A fetcher may raise
    :class:`AttachmentTooLarge` itself to stop a download early.
    """

    def __init__(
        self,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        mention_pattern: re.Pattern[str] | None = None,
    ) -> None:
        self.max_attachment_bytes = max_attachment_bytes
        self.mention_pattern = mention_pattern

    def clean_text(self, text: str) -> str:
        if self.mention_pattern is None:
            return text
        return self.mention_pattern.sub("", text)

    async def normalize(self, message: InboundMessage) -> NormalizedInput:
        declared = message.declared_attachment_bytes
        if declared > self.max_attachment_bytes:
            raise AttachmentTooLarge(declared, self.max_attachment_bytes)

        text = self.clean_text(message.text)
        streams = await self._download(message.attachments)

        received = sum(s.size for s in streams)
        if received > self.max_attachment_bytes:
            raise AttachmentTooLarge(received, self.max_attachment_bytes)
        return NormalizedInput(text=text, streams=streams)

    async def _download(self, attachments: tuple[RawAttachment, ...]) -> list[InputStream]:
        if not attachments:
            return []
        payloads = await asyncio.gather(
            *(att.fetch() for att in attachments), return_exceptions=True,
        )
        streams: list[InputStream] = []
        for att, payload in zip(attachments, payloads):
            if isinstance(payload, BaseException):
                if isinstance(payload, AttachmentTooLarge) or not isinstance(payload, Exception):
                    raise payload
                logger.warning(
                    "Dropping attachment %r (%s): %s",
                    att.name or "?", att.content_type or "unknown type", payload,
                )
                continue
            streams.append(InputStream(
                data=bytes(payload),
                media_type=parse_media_type(att.content_type),
                name=att.name,
            ))
        return streams
