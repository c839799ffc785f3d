"""Telegram transport -- one Telegram message per rendered block.

The Bot API cannot mix text and several documents in one message, so the
pipeline renders every block on its own and sends them in emission order.
"""

from __future__ import annotations

import logging
import re

from telegram import Message, Update
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from ..engine.ports import CommandEngine
from ..media.classify import essence
from ..messaging.formatting import strip_markdown
from ..messaging.models import InboundMessage, OutgoingFile, OutgoingMessage, RawAttachment, Sender
from ..messaging.pipeline import MessagePipeline
from .base import TransportCapabilities, TransportError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
_PHOTO_TYPES = frozenset({"image/jpeg", "image/png"})
MAX_PHOTO_BYTES = 10 * 1024 * 1024


def mention_pattern_for(username: str) -> re.Pattern[str]:
    return re.compile(rf"@{re.escape(username)}\b", re.IGNORECASE)


class TelegramTransport:
    name = "telegram"

    def __init__(self, inline_limit: int = 1024) -> None:
        self._caps = TransportCapabilities(
            supports_combined_send=False,
            max_text_length=MAX_MESSAGE_LENGTH,
            max_attachments=1,
            inline_limit=inline_limit,
            markdown=False,
        )
        self._mention_pattern: re.Pattern[str] | None = None

    @property
    def capabilities(self) -> TransportCapabilities:
        return self._caps

    @property
    def mention_pattern(self) -> re.Pattern[str] | None:
        return self._mention_pattern

    def bind_username(self, username: str | None) -> None:
        self._mention_pattern = mention_pattern_for(username) if username else None

    async def send(self, message: OutgoingMessage) -> None:
        source: Message | None = message.reply_to
        if source is None:
            raise TransportError("telegram replies need the originating message")

        try:
            if message.text:
                await source.reply_text(message.text)
            if message.hint is not None:
                await source.reply_text(strip_markdown(message.hint.as_text()))
            for f in message.files:
                await self._send_file(source, f)
        except TelegramError as exc:
            raise TransportError(f"telegram send failed: {exc}") from exc

    @staticmethod
    async def _send_file(source: Message, f: OutgoingFile) -> None:
        if essence(f.media_type) in _PHOTO_TYPES and not f.named and len(f.data) <= MAX_PHOTO_BYTES:
            await source.reply_photo(photo=f.data, filename=f.name)
        else:
            await source.reply_document(document=f.data, filename=f.name)


def _fetcher(media):
    async def fetch() -> bytes:
        tg_file = await media.get_file()
        return bytes(await tg_file.download_as_bytearray())
    return fetch


def _attachments(message: Message) -> tuple[RawAttachment, ...]:
    found = []
    if message.photo:
        # Telegram sends several resolutions; the last one is the largest.
        found.append((message.photo[-1], "image/jpeg", "photo.jpg"))
    for media in (message.document, message.audio, message.voice, message.video):
        if media is not None:
            found.append((media, media.mime_type, getattr(media, "file_name", None) or ""))
    return tuple(
        RawAttachment(fetch=_fetcher(media), content_type=mime, size=media.file_size, name=name)
        for media, mime, name in found
    )


def to_inbound(message: Message, bot_id: int, bot_username: str | None) -> InboundMessage:
    user = message.from_user
    text = message.text or message.caption or ""
    replied = message.reply_to_message
    mentioned = bool(bot_username) and bool(mention_pattern_for(bot_username).search(text))
    if replied is not None and replied.from_user is not None and replied.from_user.id == bot_id:
        mentioned = True
    return InboundMessage(
        sender=Sender(
            address=str(user.id) if user else "",
            display_name=(user.username or user.full_name) if user else None,
        ),
        text=text,
        attachments=_attachments(message),
        is_direct=message.chat.type == ChatType.PRIVATE,
        mentioned=mentioned,
        reply_to=message,
    )


class TelegramBot:
    """Long-polling Telegram bot wired to the message pipeline."""

    def __init__(
        self,
        token: str,
        engine: CommandEngine,
        *,
        max_attachment_bytes: int,
        inline_limit: int = 1024,
        docs_url: str = "",
    ) -> None:
        self.transport = TelegramTransport(inline_limit=inline_limit)
        self.pipeline = MessagePipeline(
            engine,
            self.transport,
            max_attachment_bytes=max_attachment_bytes,
            docs_url=docs_url,
        )
        self.app = (
            Application.builder()
            .token(token)
            .concurrent_updates(True)
            .post_init(self._post_init)
            .build()
        )
        self.app.add_handler(MessageHandler(
            filters.UpdateType.MESSAGE & (filters.TEXT | filters.CAPTION | filters.ATTACHMENT),
            self._on_message,
        ))
        self.app.add_error_handler(self._on_error)

    def run(self) -> None:
        self.app.run_polling(allowed_updates=Update.ALL_TYPES)

    async def _post_init(self, app: Application) -> None:
        me = await app.bot.get_me()
        self.transport.bind_username(me.username)
        logger.info("[telegram] @%s is connected (id=%s)", me.username, me.id)

    async def _on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or message.from_user is None:
            return
        if message.from_user.id == context.bot.id:
            return

        inbound = to_inbound(message, context.bot.id, context.bot.username)
        if not inbound.addressed:
            return

        result = await self.pipeline.handle(inbound)
        logger.debug("[telegram] message %s -> %r", message.message_id, result)

    async def _on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error("[telegram] update handling failed: %s", context.error, exc_info=context.error)
