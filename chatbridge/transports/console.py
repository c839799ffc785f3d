"""Local console transport -- talk to the engine from a terminal."""

from __future__ import annotations

import asyncio
import getpass
import logging
import re
from pathlib import Path

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markdown import Markdown

from ..engine.ports import CommandEngine
from ..media.classify import classify, guess_media_type
from ..messaging.models import InboundMessage, OutgoingFile, OutgoingMessage, RawAttachment, Sender
from ..messaging.pipeline import MessagePipeline
from ..util.async_helpers import run_sync
from .base import TransportCapabilities, TransportError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 100_000


def unique_path(directory: Path, name: str) -> Path:
    """``data.png`` -> ``data-1.png`` -> ``data-2.png`` ... until unused."""
    candidate = directory / name
    stem, suffix = candidate.stem, candidate.suffix
    n = 1
    while candidate.exists():
        candidate = directory / f"{stem}-{n}{suffix}"
        n += 1
    return candidate


class ConsoleTransport:
    """Prints text through rich and saves files under *outgoing_dir*."""

    name = "console"

    def __init__(self, console: Console, outgoing_dir: Path, inline_limit: int = 1024) -> None:
        self.console = console
        self.outgoing_dir = outgoing_dir
        self._caps = TransportCapabilities(
            supports_combined_send=False,
            max_text_length=MAX_MESSAGE_LENGTH,
            max_attachments=1,
            inline_limit=inline_limit,
        )

    @property
    def capabilities(self) -> TransportCapabilities:
        return self._caps

    @property
    def mention_pattern(self) -> re.Pattern[str] | None:
        return None

    async def send(self, message: OutgoingMessage) -> None:
        if message.text:
            self.console.print(Markdown(message.text))
        if message.hint is not None:
            self.console.print(Markdown(f"*{message.hint.title}:* {message.hint.text}"))
        for f in message.files:
            path = await self._save(f)
            self.console.print(
                f"[dim]({classify(f.media_type)} {f.name}, {len(f.data)} bytes -> {path})[/dim]"
            )

    async def _save(self, f: OutgoingFile) -> Path:
        try:
            self.outgoing_dir.mkdir(parents=True, exist_ok=True)
            path = unique_path(self.outgoing_dir, Path(f.name).name or "data.bin")
            await run_sync(path.write_bytes, f.data)
        except OSError as exc:
            raise TransportError(f"could not save {f.name}: {exc}") from exc
        return path


def file_attachment(path: Path) -> RawAttachment:
    async def fetch() -> bytes:
        return await run_sync(path.read_bytes)

    return RawAttachment(
        fetch=fetch,
        content_type=guess_media_type(path.name),
        size=path.stat().st_size,
        name=path.name,
    )


class ConsoleSession:
    """One REPL: lines become messages, ``/file PATH`` queues an attachment."""

    def __init__(
        self,
        engine: CommandEngine,
        transport: ConsoleTransport,
        *,
        max_attachment_bytes: int,
        docs_url: str = "",
        username: str | None = None,
    ) -> None:
        self.transport = transport
        self.pipeline = MessagePipeline(
            engine,
            transport,
            max_attachment_bytes=max_attachment_bytes,
            docs_url=docs_url,
        )
        self.sender = Sender(address="console", display_name=username)
        self.pending: list[Path] = []

    @property
    def console(self) -> Console:
        return self.transport.console

    def queue_file(self, raw_path: str) -> bool:
        path = Path(raw_path.strip().strip("'\"")).expanduser()
        if not path.is_file():
            self.console.print(f"[red]No such file:[/red] {path}")
            return False
        self.pending.append(path)
        self.console.print(f"[dim]queued {path.name} ({len(self.pending)} pending)[/dim]")
        return True

    async def submit(self, text: str):
        """Send *text* plus any queued files through the pipeline."""
        attachments = []
        for path in self.pending:
            try:
                attachments.append(file_attachment(path))
            except OSError as exc:
                logger.warning("Skipping %s: %s", path, exc)
        self.pending = []
        message = InboundMessage(
            sender=self.sender,
            text=text,
            attachments=tuple(attachments),
            is_direct=True,
        )
        return await self.pipeline.handle(message)

    async def handle_line(self, line: str) -> bool:
        """Process one input line; returns ``False`` when the user quits."""
        text = line.strip()
        if not text:
            return True
        lowered = text.lower()
        if lowered in ("/quit", "/exit"):
            return False
        if lowered.startswith("/file "):
            self.queue_file(text[len("/file "):])
            return True

        result = await self.submit(text)
        if not result:
            self.console.print(f"[red]send failed:[/red] {result.message}")
        return True


async def run_console(
    engine: CommandEngine,
    *,
    outgoing_dir: Path,
    history_path: Path,
    max_attachment_bytes: int,
    inline_limit: int = 1024,
    docs_url: str = "",
) -> None:
    console = Console()
    transport = ConsoleTransport(console, outgoing_dir, inline_limit=inline_limit)
    session = ConsoleSession(
        engine,
        transport,
        max_attachment_bytes=max_attachment_bytes,
        docs_url=docs_url,
        username=getpass.getuser(),
    )
    console.print(
        "[bold green]chatbridge[/bold green] console\n"
        "Type [bold]/file PATH[/bold] to attach a file, [bold]/quit[/bold] to exit.\n"
    )

    history_path.parent.mkdir(parents=True, exist_ok=True)
    prompt_session: PromptSession[str] = PromptSession(history=FileHistory(str(history_path)))
    while True:
        try:
            line = await asyncio.to_thread(prompt_session.prompt, HTML("<b>you &gt;</b> "))
        except (EOFError, KeyboardInterrupt):
            break
        console.print()
        try:
            keep_going = await session.handle_line(line)
        except Exception as exc:
            logger.exception("[console] failed to handle input")
            console.print(f"[red]error:[/red] {exc}")
            keep_going = True
        if not keep_going:
            break
        console.print()
    console.print("[dim]Goodbye.[/dim]")
