"""Tests for formatting helpers."""

from __future__ import annotations

from chatbridge.messaging.formatting import code_block, format_size, strip_markdown


class TestCodeBlock:
    def test_plain(self) -> None:
        assert code_block("x") == "```\nx\n```"

    def test_fence_longer_than_content_backticks(self) -> None:
        assert code_block("a ``` b") == "````\na ``` b\n````"

    def test_short_backtick_runs_keep_three(self) -> None:
        assert code_block("`x`") == "```\n`x`\n```"


class TestStripMarkdown:
    def test_bold_italic(self) -> None:
        assert strip_markdown("**bold** and *it*") == "bold and it"

    def test_link(self) -> None:
        text = "Please refer [Documentation](https://docs.example.com) for available commands."
        assert strip_markdown(text) == "Please refer Documentation (https://docs.example.com) for available commands."

    def test_code_fence(self) -> None:
        assert strip_markdown("```\nprint(1)\n```") == "print(1)"

    def test_long_fence(self) -> None:
        assert strip_markdown("````\na ``` b\n````") == "a ``` b"

    def test_heading(self) -> None:
        assert strip_markdown("## Title") == "Title"

    def test_snake_case_untouched(self) -> None:
        assert strip_markdown("some_var_name") == "some_var_name"


class TestFormatSize:
    def test_mib(self) -> None:
        assert format_size(10485760) == "10MiB"

    def test_kib(self) -> None:
        assert format_size(2048) == "2KiB"

    def test_odd_bytes(self) -> None:
        assert format_size(1000) == "1000 bytes"
