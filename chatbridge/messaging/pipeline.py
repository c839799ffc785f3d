"""Inbound-to-outbound message pipeline.

Each inbound message gets its own :class:`PipelineRun`; runs never share
state, so any number of them may be in flight on the event loop at once.
The engine is the only shared collaborator and is called from worker threads
via :func:`run_sync`.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from ..engine.ports import CommandEngine
from ..engine.tokenizer import Tokenizer
from ..engine.types import ExecutionResult
from ..transports.base import Transport, TransportError
from ..util.async_helpers import run_sync
from ..util.result import Result
from .formatting import format_size
from .models import Hint, InboundMessage, OutgoingMessage
from .normalizer import DEFAULT_MAX_ATTACHMENT_BYTES, AttachmentTooLarge, InputNormalizer
from .renderer import render, render_notice

logger = logging.getLogger(__name__)

NOT_UNDERSTOOD = "Sorry, I can't understand your request."


def too_large_notice(limit: int) -> str:
    return f"Too large file input ({format_size(limit)} max.)"


def docs_hint(docs_url: str) -> Hint | None:
    if not docs_url:
        return None
    return Hint("Hint", f"Please refer [Documentation]({docs_url}) for available commands.")


class PipelineState(str, enum.Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    TOO_LARGE = "too_large"
    TOKENIZING = "tokenizing"
    RESOLVING = "resolving"
    NO_MATCH = "no_match"
    EXECUTING = "executing"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


_S = PipelineState

_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    _S.IDLE: frozenset({_S.NORMALIZING}),
    _S.NORMALIZING: frozenset({_S.TOO_LARGE, _S.TOKENIZING}),
    _S.TOO_LARGE: frozenset({_S.FAILED}),
    _S.TOKENIZING: frozenset({_S.RESOLVING}),
    _S.RESOLVING: frozenset({_S.NO_MATCH, _S.EXECUTING}),
    _S.NO_MATCH: frozenset({_S.FAILED}),
    _S.EXECUTING: frozenset({_S.RENDERING}),
    _S.RENDERING: frozenset({_S.DONE, _S.FAILED}),
    _S.DONE: frozenset(),
    _S.FAILED: frozenset(),
}


@dataclass
class PipelineRun:
    """State of one message's trip through the pipeline."""

    message: InboundMessage
    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    execution: ExecutionResult | None = None
    sent: int = 0

    def advance(self, new: PipelineState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal pipeline transition {self.state.value} -> {new.value}")
        self.state = new
        self.history.append(new)


class MessagePipeline:
    """Runs inbound messages through normalize, tokenize, resolve, execute, render.

    *max_attachment_bytes* and *docs_url* are plain parameters; the pipeline
    never reads configuration on its own.
    """

    def __init__(
        self,
        engine: CommandEngine,
        transport: Transport,
        *,
        max_attachment_bytes: int = DEFAULT_MAX_ATTACHMENT_BYTES,
        docs_url: str = "",
    ) -> None:
        self._engine = engine
        self._transport = transport
        self._max_attachment_bytes = max_attachment_bytes
        self._docs_url = docs_url
        self._tokenizer = Tokenizer()

    @property
    def transport(self) -> Transport:
        return self._transport

    async def handle(self, message: InboundMessage) -> Result:
        run = PipelineRun(message)
        try:
            await self._run(run)
        except TransportError as exc:
            run.advance(_S.FAILED)
            logger.error(
                "[%s] send failed for message from %s after %d message(s): %s",
                self._transport.name, message.sender.address, run.sent, exc,
            )
            return Result.fail(str(exc), value=run)
        return Result.ok(run.state.value, value=run)

    async def _run(self, run: PipelineRun) -> None:
        message = run.message
        caps = self._transport.capabilities

        run.advance(_S.NORMALIZING)
        normalizer = InputNormalizer(
            self._max_attachment_bytes,
            message.mention_pattern or self._transport.mention_pattern,
        )
        try:
            normalized = await normalizer.normalize(message)
        except AttachmentTooLarge as exc:
            run.advance(_S.TOO_LARGE)
            logger.info("[%s] rejected input from %s: %s", self._transport.name, message.sender.address, exc)
            notice = render_notice(too_large_notice(exc.limit), caps, reply_to=message.reply_to)
            await self._send(run, notice)
            return

        run.advance(_S.TOKENIZING)
        tokens = list(self._tokenizer.tokenize(normalized.text))

        run.advance(_S.RESOLVING)
        commands = await run_sync(self._engine.get_commands, tokens, normalized.streams)
        if not commands:
            run.advance(_S.NO_MATCH)
            logger.info(
                "[%s] no command matched %d token(s) from %s",
                self._transport.name, len(tokens), message.sender.address,
            )
            notice = render_notice(
                NOT_UNDERSTOOD, caps, reply_to=message.reply_to, hint=docs_hint(self._docs_url),
            )
            await self._send(run, notice)
            return

        run.advance(_S.EXECUTING)
        result = await run_sync(
            self._engine.run_commands, commands, normalized.streams, message.sender.user_context(),
        )
        run.execution = result
        if result.success:
            logger.info(
                "[%s] executed %d command(s): %d output(s), %d block(s)",
                self._transport.name, len(commands), len(result.outputs), result.block_count,
            )
        else:
            logger.warning(
                "[%s] execution reported failure: %d output(s), %d block(s)",
                self._transport.name, len(result.outputs), result.block_count,
            )

        run.advance(_S.RENDERING)
        messages = render(result.outputs, caps, reply_to=message.reply_to)
        if not messages:
            logger.info("[%s] engine produced no output; nothing to send", self._transport.name)
        for outgoing in messages:
            await self._send(run, outgoing)
        run.advance(_S.DONE)

    async def _send(self, run: PipelineRun, outgoing: OutgoingMessage) -> None:
        await self._transport.send(outgoing)
        run.sent += 1
