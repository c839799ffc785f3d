"""Tests for the singleton registry."""

from __future__ import annotations

from chatbridge.util import singletons
from chatbridge.util.singletons import register_singleton, reset_all_singletons


class TestSingletons:
    def test_reset_calls_registered(self) -> None:
        calls: list[int] = []

        def reset() -> None:
            calls.append(1)

        register_singleton(reset)
        try:
            reset_all_singletons()
            assert calls == [1]
        finally:
            singletons._reset_fns.remove(reset)

    def test_register_deduplicates(self) -> None:
        def reset() -> None:
            pass

        register_singleton(reset)
        register_singleton(reset)
        try:
            assert singletons._reset_fns.count(reset) == 1
        finally:
            singletons._reset_fns.remove(reset)

    def test_settings_registered(self) -> None:
        from chatbridge.config import settings

        before = settings.cfg
        reset_all_singletons()
        assert settings.cfg is not before
