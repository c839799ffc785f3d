"""Media type helpers."""

from .classify import (
    EXTENSION_TO_MIME,
    classify,
    essence,
    file_extension,
    guess_media_type,
    parse_media_type,
)

__all__ = [
    "EXTENSION_TO_MIME",
    "classify",
    "essence",
    "file_extension",
    "guess_media_type",
    "parse_media_type",
]
