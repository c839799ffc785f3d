"""Renders engine outputs into transport messages.

Rendering happens in two passes. :func:`classify` maps every block, in
emission order, to exactly one :class:`RenderUnit` (a piece of text or a
file). :func:`render` then packs those units into as few
:class:`OutgoingMessage` objects as the transport's capabilities allow.

Each ``Data`` block is measured on its own when deciding between inline text
and an attachment; neighbouring blocks never count towards that limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..engine.types import Comment, Data, Output
from ..media.classify import file_extension
from ..transports.base import TransportCapabilities
from .formatting import code_block
from .models import Hint, OutgoingFile, OutgoingMessage

logger = logging.getLogger(__name__)

PLACEHOLDER = "[unimplemented]"
DEFAULT_FILE_BASENAME = "data"
OVERFLOW_FILE_NAME = "message.txt"


@dataclass(frozen=True)
class RenderUnit:
    text: str | None = None
    file: OutgoingFile | None = None

    @property
    def is_text(self) -> bool:
        return self.file is None


def default_file_name(media_type: str) -> str:
    return f"{DEFAULT_FILE_BASENAME}.{file_extension(media_type)}"


def _decode(data: bytes) -> str | None:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


def classify_block(block: Any, caps: TransportCapabilities) -> RenderUnit:
    if isinstance(block, Comment):
        return RenderUnit(text=block.text)

    if isinstance(block, Data):
        text = _decode(block.data)
        if text is not None and len(text) <= caps.inline_limit:
            return RenderUnit(text=code_block(text) if caps.markdown else text)
        name = block.file_name or default_file_name(block.media_type)
        return RenderUnit(file=OutgoingFile(
            data=block.data, name=name, media_type=block.media_type, named=bool(block.file_name),
        ))

    logger.debug("Unsupported block kind %s", type(block).__name__)
    return RenderUnit(text=PLACEHOLDER)


def classify(outputs: Iterable[Output], caps: TransportCapabilities) -> list[RenderUnit]:
    return [classify_block(block, caps) for output in outputs for block in output.blocks]


def _overflow_file(text: str) -> OutgoingFile:
    return OutgoingFile(data=text.encode("utf-8"), name=OVERFLOW_FILE_NAME, media_type="text/plain")


def _fit_text(text: str | None, caps: TransportCapabilities) -> tuple[str | None, list[OutgoingFile]]:
    """Move text that is too long for one message into an attachment."""
    if text and len(text) > caps.max_text_length:
        return None, [_overflow_file(text)]
    return text, []


def _combined(units: list[RenderUnit], caps: TransportCapabilities) -> list[OutgoingMessage]:
    texts = [u.text for u in units if u.is_text and u.text is not None]
    text, files = _fit_text("\n".join(texts) if texts else None, caps)
    files.extend(u.file for u in units if u.file is not None)

    per_message = max(1, caps.max_attachments)
    messages = [OutgoingMessage(text=text, files=files[:per_message])]
    for start in range(per_message, len(files), per_message):
        messages.append(OutgoingMessage(files=files[start:start + per_message]))
    return messages


def _one_per_unit(units: list[RenderUnit], caps: TransportCapabilities) -> list[OutgoingMessage]:
    messages: list[OutgoingMessage] = []
    for unit in units:
        if unit.file is not None:
            messages.append(OutgoingMessage(files=[unit.file]))
            continue
        text, files = _fit_text(unit.text, caps)
        messages.append(OutgoingMessage(text=text, files=files))
    return messages


def render(
    outputs: Iterable[Output],
    caps: TransportCapabilities,
    *,
    reply_to: Any = None,
    hint: Hint | None = None,
) -> list[OutgoingMessage]:
    """Render *outputs* for a transport with *caps*.

    Returns an empty list when the engine produced no blocks. *reply_to* and
    *hint* are attached to the first message only.
    """
    units = classify(outputs, caps)
    if not units:
        return []

    if caps.supports_combined_send:
        messages = _combined(units, caps)
    else:
        messages = _one_per_unit(units, caps)

    messages = [m for m in messages if not m.is_empty]
    if messages:
        messages[0].reply_to = reply_to
        messages[0].hint = hint
    return messages


def render_notice(
    text: str,
    caps: TransportCapabilities,
    *,
    reply_to: Any = None,
    hint: Hint | None = None,
) -> OutgoingMessage:
    """A fixed user-facing notice (oversize input, not understood)."""
    fitted, files = _fit_text(text, caps)
    return OutgoingMessage(text=fitted, files=files, reply_to=reply_to, hint=hint)
