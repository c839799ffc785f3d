"""Shared pytest fixtures for chatbridge tests."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from chatbridge.engine.types import Comment, ExecutionResult, Output
from chatbridge.transports.base import TransportCapabilities, TransportError


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("CHATBRIDGE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from chatbridge.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


class FakeEngine:
    """Engine double: resolves to *commands* and returns *result*."""

    def __init__(self, commands=("cmd",), result: ExecutionResult | None = None) -> None:
        self.commands = list(commands)
        self.result = result or ExecutionResult.ok([Output([Comment("ok")])])
        self.resolve_calls: list[tuple] = []
        self.run_calls: list[tuple] = []

    def get_commands(self, tokens, streams):
        self.resolve_calls.append((list(tokens), list(streams)))
        return list(self.commands)

    def run_commands(self, commands, streams, user=None):
        self.run_calls.append((list(commands), list(streams), user))
        return self.result


class RecordingTransport:
    """Transport double that keeps every message it is asked to send."""

    def __init__(
        self,
        caps: TransportCapabilities | None = None,
        mention_pattern: re.Pattern[str] | None = None,
        fail_on: int | None = None,
    ) -> None:
        self.name = "fake"
        self.capabilities = caps or TransportCapabilities(
            supports_combined_send=True, max_text_length=2000,
        )
        self.mention_pattern = mention_pattern
        self.fail_on = fail_on
        self.sent = []

    async def send(self, message) -> None:
        if self.fail_on is not None and len(self.sent) == self.fail_on:
            raise TransportError("platform rejected the message")
        self.sent.append(message)


@pytest.fixture()
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport(mention_pattern=re.compile(r"<@!?123>"))


@pytest.fixture()
def make_engine():
    return FakeEngine


@pytest.fixture()
def make_transport():
    return RecordingTransport
