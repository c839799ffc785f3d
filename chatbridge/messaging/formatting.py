"""Markdown helpers for rendered output."""

from __future__ import annotations

import re

_BACKTICK_RUN_RE = re.compile(r"`+")


def code_block(text: str) -> str:
    """Wrap *text* in a fenced code block that cannot be closed from inside.

    The fence is one backtick longer than the longest backtick run in *text*
    (and at least three long).
    """
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN_RE.finditer(text)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}\n{text}\n{fence}"


def strip_markdown(text: str) -> str:
    """Strip all Markdown formatting to produce clean plain text."""
    text = re.sub(r"(`{3,})\w*\n(.*?)\n?\1", r"\2", text, flags=re.DOTALL)
    text = re.sub(r"^#{1,6}\s+(.+)$", r"\1", text, flags=re.MULTILINE)
    text = re.sub(r"\*\*(.+?)\*\*", r"\1", text)
    text = re.sub(r"__(.+?)__", r"\1", text)
    text = re.sub(r"(?<!\w)\*([^*\n]+?)\*(?!\w)", r"\1", text)
    text = re.sub(r"(?<!\w)_([^_\n]+?)_(?!\w)", r"\1", text)
    text = re.sub(r"~~(.+?)~~", r"\1", text)
    text = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"\1 (\2)", text)
    text = re.sub(r"^---+\s*$", "", text, flags=re.MULTILINE)
    return text.strip()


def format_size(num_bytes: int) -> str:
    """``10485760`` -> ``'10MiB'``; sizes that are not whole units stay in bytes."""
    for unit, factor in (("GiB", 1 << 30), ("MiB", 1 << 20), ("KiB", 1 << 10)):
        if num_bytes >= factor and num_bytes % factor == 0:
            return f"{num_bytes // factor}{unit}"
    return f"{num_bytes} bytes"
