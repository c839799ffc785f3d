"""Tests for the console transport and REPL session."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from chatbridge.engine.types import Comment, Data, ExecutionResult, Output
from chatbridge.messaging.models import Hint, OutgoingFile, OutgoingMessage
from chatbridge.messaging.pipeline import NOT_UNDERSTOOD
from chatbridge.transports.base import TransportError
from chatbridge.transports.console import (
    ConsoleSession,
    ConsoleTransport,
    file_attachment,
    run_console,
    unique_path,
)


def _console() -> Console:
    return Console(record=True, width=100, color_system=None)


@pytest.fixture()
def outgoing(data_dir: Path) -> Path:
    return data_dir / "outgoing"


class TestUniquePath:
    def test_free_name(self, tmp_path: Path) -> None:
        assert unique_path(tmp_path, "data.png") == tmp_path / "data.png"

    def test_taken_names(self, tmp_path: Path) -> None:
        (tmp_path / "data.png").write_bytes(b"")
        (tmp_path / "data-1.png").write_bytes(b"")
        assert unique_path(tmp_path, "data.png") == tmp_path / "data-2.png"


class TestConsoleTransport:
    @pytest.mark.asyncio
    async def test_text_printed(self, outgoing: Path) -> None:
        console = _console()
        await ConsoleTransport(console, outgoing).send(OutgoingMessage(text="Result: 42"))
        assert "Result: 42" in console.export_text()

    @pytest.mark.asyncio
    async def test_hint_printed(self, outgoing: Path) -> None:
        console = _console()
        await ConsoleTransport(console, outgoing).send(
            OutgoingMessage(text="Sorry", hint=Hint("Hint", "read the docs")),
        )
        out = console.export_text()
        assert "Hint:" in out
        assert "read the docs" in out

    @pytest.mark.asyncio
    async def test_file_saved(self, outgoing: Path) -> None:
        console = _console()
        transport = ConsoleTransport(console, outgoing)
        f = OutgoingFile(b"\x89PNG", "data.png", "image/png")
        await transport.send(OutgoingMessage(files=[f]))
        await transport.send(OutgoingMessage(files=[f]))

        assert (outgoing / "data.png").read_bytes() == b"\x89PNG"
        assert (outgoing / "data-1.png").exists()
        assert "image data.png" in console.export_text()

    @pytest.mark.asyncio
    async def test_path_components_dropped(self, outgoing: Path) -> None:
        transport = ConsoleTransport(_console(), outgoing)
        await transport.send(OutgoingMessage(files=[OutgoingFile(b"x", "../../evil.txt", "text/plain")]))
        assert (outgoing / "evil.txt").exists()

    @pytest.mark.asyncio
    async def test_unwritable_dir(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        transport = ConsoleTransport(_console(), blocker / "outgoing")
        with pytest.raises(TransportError):
            await transport.send(OutgoingMessage(files=[OutgoingFile(b"x", "a.bin", "application/octet-stream")]))

    def test_per_block_without_mention(self, outgoing: Path) -> None:
        transport = ConsoleTransport(_console(), outgoing)
        assert not transport.capabilities.supports_combined_send
        assert transport.mention_pattern is None


class TestFileAttachment:
    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path: Path) -> None:
        p = tmp_path / "photo.png"
        p.write_bytes(b"12345")
        att = file_attachment(p)
        assert att.size == 5
        assert att.content_type == "image/png"
        assert att.name == "photo.png"
        assert await att.fetch() == b"12345"


class TestConsoleSession:
    def _session(self, engine, outgoing: Path, limit: int = 1024) -> tuple[ConsoleSession, Console]:
        console = _console()
        session = ConsoleSession(
            engine, ConsoleTransport(console, outgoing), max_attachment_bytes=limit, username="alice",
        )
        return session, console

    @pytest.mark.asyncio
    async def test_line_runs_pipeline(self, engine, outgoing: Path) -> None:
        engine.result = ExecutionResult.ok([Output([Comment("Result:"), Data(b"42", "text/plain")])])
        session, console = self._session(engine, outgoing)

        assert await session.handle_line("calc 6*7") is True

        tokens, _ = engine.resolve_calls[0]
        assert [t.data for t in tokens] == ["calc", "6*7"]
        assert engine.run_calls[0][2].username == "alice"
        out = console.export_text()
        assert "Result:" in out
        assert "42" in out

    @pytest.mark.asyncio
    async def test_quit(self, engine, outgoing: Path) -> None:
        session, _ = self._session(engine, outgoing)
        assert await session.handle_line("/quit") is False
        assert await session.handle_line("/EXIT") is False
        assert engine.resolve_calls == []

    @pytest.mark.asyncio
    async def test_blank_line(self, engine, outgoing: Path) -> None:
        session, _ = self._session(engine, outgoing)
        assert await session.handle_line("   ") is True
        assert engine.resolve_calls == []

    @pytest.mark.asyncio
    async def test_file_then_message(self, engine, outgoing: Path, tmp_path: Path) -> None:
        p = tmp_path / "in.txt"
        p.write_text("hello")
        session, _ = self._session(engine, outgoing)

        await session.handle_line(f"/file {p}")
        assert session.pending == [p]
        await session.handle_line("wc")

        _, streams = engine.resolve_calls[0]
        assert [s.data for s in streams] == [b"hello"]
        assert streams[0].media_type == "text/plain"
        assert session.pending == []

    @pytest.mark.asyncio
    async def test_missing_file(self, engine, outgoing: Path, tmp_path: Path) -> None:
        session, console = self._session(engine, outgoing)
        await session.handle_line(f"/file {tmp_path / 'nope.bin'}")
        assert session.pending == []
        assert "No such file" in console.export_text()

    @pytest.mark.asyncio
    async def test_oversize_file(self, engine, outgoing: Path, tmp_path: Path) -> None:
        p = tmp_path / "big.bin"
        p.write_bytes(b"x" * 2048)
        session, console = self._session(engine, outgoing, limit=1024)

        await session.handle_line(f"/file {p}")
        result = await session.submit("process")

        assert result.message == "too_large"
        assert engine.resolve_calls == []
        assert "Too large file input (1KiB max.)" in console.export_text()

    @pytest.mark.asyncio
    async def test_no_match(self, engine, outgoing: Path) -> None:
        engine.commands = []
        session, console = self._session(engine, outgoing)
        await session.handle_line("gibberish")
        assert NOT_UNDERSTOOD in console.export_text()


class TestRunConsole:
    @pytest.mark.asyncio
    async def test_engine_error_does_not_end_session(
        self, engine, outgoing: Path, data_dir: Path, caplog: pytest.LogCaptureFixture,
    ) -> None:
        engine.get_commands = MagicMock(side_effect=[RuntimeError("engine bug"), ["cmd"]])
        prompt = MagicMock()
        prompt.prompt.side_effect = ["first", "second", EOFError()]

        with patch("chatbridge.transports.console.PromptSession", return_value=prompt):
            await run_console(
                engine,
                outgoing_dir=outgoing,
                history_path=data_dir / ".cli_history",
                max_attachment_bytes=1024,
            )

        assert engine.get_commands.call_count == 2
        assert len(engine.run_calls) == 1
        assert "failed to handle input" in caplog.text

    @pytest.mark.asyncio
    async def test_quit_command(self, engine, outgoing: Path, data_dir: Path) -> None:
        prompt = MagicMock()
        prompt.prompt.side_effect = ["/quit", "never read"]

        with patch("chatbridge.transports.console.PromptSession", return_value=prompt):
            await run_console(
                engine,
                outgoing_dir=outgoing,
                history_path=data_dir / ".cli_history",
                max_attachment_bytes=1024,
            )

        assert prompt.prompt.call_count == 1
        assert engine.resolve_calls == []
