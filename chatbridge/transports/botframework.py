"""Bot Framework transport -- ActivityHandler plus proactive replies.

The webhook must answer within the channel's timeout, so every activity is
handed to a background task and answered later through
``continue_conversation`` on the stored conversation reference.
"""

from __future__ import annotations

import base64
import logging
import re
from typing import TYPE_CHECKING

import aiohttp
from botbuilder.core import ActivityHandler, CardFactory, TurnContext
from botbuilder.schema import (
    Activity,
    ActivityTypes,
    Attachment,
    ConversationReference,
    HeroCard,
)

from ..engine.ports import CommandEngine
from ..messaging.formatting import strip_markdown
from ..messaging.models import (
    Hint,
    InboundMessage,
    OutgoingFile,
    OutgoingMessage,
    RawAttachment,
    Sender,
)
from ..messaging.normalizer import DEFAULT_MAX_ATTACHMENT_BYTES, AttachmentTooLarge
from ..messaging.pipeline import MessagePipeline
from ..util.async_helpers import BackgroundTasks
from .base import TransportCapabilities, TransportError

if TYPE_CHECKING:
    from botbuilder.core import BotFrameworkAdapter

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
DOWNLOAD_CHUNK_SIZE = 64 * 1024
_CARD_PREFIX = "application/vnd.microsoft"
_PLAIN_TEXT_CHANNELS = frozenset({"telegram"})


def _data_uri_attachment(f: OutgoingFile) -> Attachment:
    encoded = base64.b64encode(f.data).decode("ascii")
    return Attachment(
        content_type=f.media_type,
        content_url=f"data:{f.media_type};base64,{encoded}",
        name=f.name,
    )


def _hint_card(hint: Hint) -> Attachment:
    return CardFactory.hero_card(HeroCard(title=hint.title, text=hint.text))


def build_activity(message: OutgoingMessage, channel: str) -> Activity:
    """Turn an outgoing message into one Bot Framework activity."""
    activity = Activity(type=ActivityTypes.message, text=message.text or "")
    attachments = [_data_uri_attachment(f) for f in message.files]
    if channel in _PLAIN_TEXT_CHANNELS:
        activity.text = strip_markdown(activity.text)
        activity.text_format = "plain"
        if message.hint is not None:
            hint = strip_markdown(message.hint.as_text())
            activity.text = f"{activity.text}\n\n{hint}" if activity.text else hint
    elif message.hint is not None:
        attachments.append(_hint_card(message.hint))
    if attachments:
        activity.attachments = attachments
    return activity


class BotFrameworkTransport:
    name = "botframework"

    def __init__(self, adapter: BotFrameworkAdapter, app_id: str = "", inline_limit: int = 1024) -> None:
        self.adapter = adapter
        self._app_id = app_id
        self._caps = TransportCapabilities(
            supports_combined_send=True,
            max_text_length=MAX_MESSAGE_LENGTH,
            max_attachments=10,
            inline_limit=inline_limit,
        )

    @property
    def capabilities(self) -> TransportCapabilities:
        return self._caps

    @property
    def mention_pattern(self) -> re.Pattern[str] | None:
        # Mentions are resolved per activity from its entities; see to_inbound.
        return None

    async def send(self, message: OutgoingMessage) -> None:
        ref: ConversationReference | None = message.reply_to
        if ref is None:
            raise TransportError("bot framework replies need a conversation reference")

        channel = (ref.channel_id or "").lower()
        failure: list[Exception] = []

        async def _callback(turn_context: TurnContext) -> None:
            try:
                await turn_context.send_activity(build_activity(message, channel))
            except Exception as send_exc:
                failure.append(send_exc)

        bot_id = self._app_id or (ref.bot.id if ref.bot else None) or ""
        try:
            await self.adapter.continue_conversation(ref, _callback, bot_id=bot_id)
        except Exception as exc:
            raise TransportError(f"continue_conversation failed: {exc}") from exc
        if failure:
            raise TransportError(f"send_activity failed: {failure[0]}") from failure[0]


def _fetcher(session: aiohttp.ClientSession, url: str, limit: int):
    async def fetch() -> bytes:
        async with session.get(url) as resp:
            resp.raise_for_status()
            if resp.content_length is not None and resp.content_length > limit:
                raise AttachmentTooLarge(resp.content_length, limit)
            chunks: list[bytes] = []
            received = 0
            async for chunk in resp.content.iter_chunked(DOWNLOAD_CHUNK_SIZE):
                received += len(chunk)
                if received > limit:
                    raise AttachmentTooLarge(received, limit)
                chunks.append(chunk)
            return b"".join(chunks)
    return fetch


def _field(obj, name: str):
    """Read *name* from a model attribute or, for entities deserialized as a
    bare ``Entity``, from its ``additional_properties``."""
    value = getattr(obj, name, None)
    if value is None:
        value = (getattr(obj, "additional_properties", None) or {}).get(name)
    return value


def bot_mention_texts(activity: Activity) -> list[str]:
    """``<at>..</at>`` texts of every mention entity that names the bot itself."""
    bot_id = activity.recipient.id if activity.recipient else None
    if not bot_id:
        return []
    texts = []
    for entity in activity.entities or []:
        if (entity.type or "").lower() != "mention":
            continue
        mentioned = _field(entity, "mentioned")
        mentioned_id = mentioned.get("id") if isinstance(mentioned, dict) else getattr(mentioned, "id", None)
        if mentioned_id == bot_id:
            texts.append(_field(entity, "text") or "")
    return texts


def mention_pattern_for(texts: list[str]) -> re.Pattern[str] | None:
    texts = sorted({t for t in texts if t}, key=len, reverse=True)
    if not texts:
        return None
    return re.compile("|".join(re.escape(t) for t in texts))


def to_inbound(
    activity: Activity,
    session: aiohttp.ClientSession,
    max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
) -> InboundMessage:
    text = activity.text or ""
    attachments = tuple(
        RawAttachment(
            fetch=_fetcher(session, a.content_url, max_attachment_bytes),
            content_type=a.content_type,
            name=a.name or "",
        )
        for a in activity.attachments or []
        if a.content_url and not (a.content_type or "").startswith(_CARD_PREFIX)
    )
    sender = activity.from_property
    conversation = activity.conversation
    bot_mentions = bot_mention_texts(activity)
    return InboundMessage(
        sender=Sender(
            address=sender.id if sender else "",
            display_name=sender.name if sender else None,
        ),
        text=text,
        attachments=attachments,
        is_direct=not (conversation and conversation.is_group),
        mentioned=bool(bot_mentions),
        mention_pattern=mention_pattern_for(bot_mentions),
        reply_to=TurnContext.get_conversation_reference(activity),
    )


class BridgeBot(ActivityHandler):
    """Routes Bot Framework message activities into the pipeline."""

    def __init__(
        self,
        engine: CommandEngine,
        adapter: BotFrameworkAdapter,
        session: aiohttp.ClientSession,
        *,
        app_id: str = "",
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        inline_limit: int = 1024,
        docs_url: str = "",
    ) -> None:
        self.transport = BotFrameworkTransport(adapter, app_id, inline_limit=inline_limit)
        self.pipeline = MessagePipeline(
            engine,
            self.transport,
            max_attachment_bytes=max_attachment_bytes,
            docs_url=docs_url,
        )
        self._session = session
        self._max_attachment_bytes = max_attachment_bytes
        self.tasks = BackgroundTasks("botframework")

    async def on_message_activity(self, turn_context: TurnContext) -> None:
        activity = turn_context.activity
        inbound = to_inbound(activity, self._session, self._max_attachment_bytes)
        if not inbound.addressed:
            return
        if not inbound.text.strip() and not inbound.attachments:
            return

        await turn_context.send_activity(Activity(type=ActivityTypes.typing))
        self.tasks.spawn(self._process(inbound), name=f"bf-{activity.id}")

    async def _process(self, inbound: InboundMessage) -> None:
        result = await self.pipeline.handle(inbound)
        logger.debug("[botframework] message from %s -> %r", inbound.sender.address, result)
