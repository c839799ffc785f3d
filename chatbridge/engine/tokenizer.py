"""Splits normalized message text into engine tokens."""

from __future__ import annotations

import re
from collections.abc import Iterator

from .types import Token

# A quoted run must be followed by whitespace or the end of input, otherwise
# the text falls through to plain whitespace splitting.
_TOKEN_RE = re.compile(
    r"""
    "(?P<dq>(?:\\.|[^"\\])*)"(?=\s|$)
    | '(?P<sq>(?:\\.|[^'\\])*)'(?=\s|$)
    | (?P<bare>\S+)
    """,
    re.VERBOSE | re.DOTALL,
)
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


class Tokenizer:
    """Stateless tokenizer; every call to :meth:`tokenize` starts fresh."""

    def tokenize(self, text: str) -> Iterator[Token]:
        for m in _TOKEN_RE.finditer(text):
            quoted = m.group("dq")
            if quoted is None:
                quoted = m.group("sq")
            if quoted is not None:
                yield Token(data=_ESCAPE_RE.sub(r"\1", quoted), raw=m.group(0))
            else:
                bare = m.group("bare")
                yield Token(data=bare, raw=bare)


def tokenize(text: str) -> list[Token]:
    return list(Tokenizer().tokenize(text))
