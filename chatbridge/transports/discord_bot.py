"""Discord transport -- bridges a discord.Client to the message pipeline.

Discord accepts text, an embed and up to ten files in one message, so the
whole rendered result usually goes out as a single reply.
"""

from __future__ import annotations

import io
import logging
import re

import discord

from ..engine.ports import CommandEngine
from ..messaging.models import InboundMessage, OutgoingMessage, RawAttachment, Sender
from ..messaging.pipeline import MessagePipeline
from .base import TransportCapabilities, TransportError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000
MAX_FILES_PER_MESSAGE = 10


def mention_pattern_for(user_id: int) -> re.Pattern[str]:
    return re.compile(rf"<@!?{user_id}>", re.IGNORECASE)


class DiscordTransport:
    """Sends rendered messages as replies to the triggering discord.Message."""

    name = "discord"

    def __init__(self, inline_limit: int = 1024) -> None:
        self._caps = TransportCapabilities(
            supports_combined_send=True,
            max_text_length=MAX_MESSAGE_LENGTH,
            max_attachments=MAX_FILES_PER_MESSAGE,
            inline_limit=inline_limit,
            markdown=True,
        )
        self._mention_pattern: re.Pattern[str] | None = None

    @property
    def capabilities(self) -> TransportCapabilities:
        return self._caps

    @property
    def mention_pattern(self) -> re.Pattern[str] | None:
        return self._mention_pattern

    def bind_user(self, user_id: int) -> None:
        self._mention_pattern = mention_pattern_for(user_id)

    async def send(self, message: OutgoingMessage) -> None:
        source = message.reply_to
        if source is None:
            raise TransportError("discord replies need the originating message")

        kwargs: dict = {"reference": source, "mention_author": False}
        if message.text:
            kwargs["content"] = message.text
        if message.files:
            kwargs["files"] = [
                discord.File(io.BytesIO(f.data), filename=f.name) for f in message.files
            ]
        if message.hint is not None:
            embed = discord.Embed()
            embed.add_field(name=message.hint.title, value=message.hint.text, inline=True)
            kwargs["embed"] = embed

        try:
            await source.channel.send(**kwargs)
        except discord.DiscordException as exc:
            raise TransportError(f"discord send failed: {exc}") from exc


def _fetcher(attachment: discord.Attachment):
    async def fetch() -> bytes:
        return await attachment.read()
    return fetch


def to_inbound(message: discord.Message, bot_user_id: int) -> InboundMessage:
    """Convert a Discord message to a platform-agnostic InboundMessage."""
    return InboundMessage(
        sender=Sender(address=str(message.author.id), display_name=message.author.name),
        text=message.content or "",
        attachments=tuple(
            RawAttachment(
                fetch=_fetcher(att),
                content_type=att.content_type,
                size=att.size,
                name=att.filename,
            )
            for att in message.attachments
        ),
        is_direct=message.guild is None,
        mentioned=any(user.id == bot_user_id for user in message.mentions),
        reply_to=message,
    )


class DiscordBot(discord.Client):
    """Answers DMs and messages that mention the bot.

    discord.py dispatches every event in its own task, so messages are
    handled concurrently without extra bookkeeping here.
    """

    def __init__(
        self,
        engine: CommandEngine,
        *,
        max_attachment_bytes: int,
        inline_limit: int = 1024,
        docs_url: str = "",
        **discord_kwargs,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.dm_messages = True
        super().__init__(intents=intents, **discord_kwargs)
        self.transport = DiscordTransport(inline_limit=inline_limit)
        self.pipeline = MessagePipeline(
            engine,
            self.transport,
            max_attachment_bytes=max_attachment_bytes,
            docs_url=docs_url,
        )

    async def on_ready(self) -> None:
        if self.user is None:
            return
        self.transport.bind_user(self.user.id)
        logger.info("[discord] %s is connected (id=%s)", self.user.name, self.user.id)

    async def on_message(self, message: discord.Message) -> None:
        if self.user is None or message.author.id == self.user.id:
            return
        if self.transport.mention_pattern is None:
            self.transport.bind_user(self.user.id)

        inbound = to_inbound(message, self.user.id)
        if not inbound.addressed:
            return

        try:
            result = await self.pipeline.handle(inbound)
        except Exception:
            logger.exception("[discord] failed to handle message %s", message.id)
            return
        logger.debug("[discord] message %s -> %r", message.id, result)
