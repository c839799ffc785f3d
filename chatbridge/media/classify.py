"""Media type parsing, classification and file-extension inference."""

from __future__ import annotations

import mimetypes
import re

from ..engine.types import DEFAULT_MEDIA_TYPE

EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".svg": "image/svg+xml",
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".html": "text/html",
    ".json": "application/json",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".bin": DEFAULT_MEDIA_TYPE,
}

# First extension listed wins, so ``image/jpeg`` maps back to ``jpg``.
MIME_TO_EXTENSION: dict[str, str] = {}
for _ext, _mime in EXTENSION_TO_MIME.items():
    MIME_TO_EXTENSION.setdefault(_mime, _ext.lstrip("."))

FALLBACK_EXTENSION = "bin"

_MEDIA_TYPE_RE = re.compile(r"^[A-Za-z0-9][\w.+-]*/[A-Za-z0-9][\w.+-]*$")

_IMAGE_TYPES = {v for v in EXTENSION_TO_MIME.values() if v.startswith("image/")}
_AUDIO_TYPES = {v for v in EXTENSION_TO_MIME.values() if v.startswith("audio/")}
_VIDEO_TYPES = {v for v in EXTENSION_TO_MIME.values() if v.startswith("video/")}


def essence(content_type: str) -> str:
    """``'Image/PNG; foo=bar'`` -> ``'image/png'``."""
    return content_type.lower().split(";")[0].strip()


def parse_media_type(content_type: str | None) -> str:
    """Return a normalized media type, or the octet-stream default.

    Declared content types come from other chat users and are untrusted; an
    absent or malformed value never raises.
    """
    if not content_type:
        return DEFAULT_MEDIA_TYPE
    mime = essence(content_type)
    if not _MEDIA_TYPE_RE.match(mime):
        return DEFAULT_MEDIA_TYPE
    params = content_type.split(";", 1)[1].strip() if ";" in content_type else ""
    return f"{mime}; {params}" if params else mime


def file_extension(media_type: str) -> str:
    """File extension (no dot) for *media_type*, ``bin`` when unknown."""
    mime = essence(media_type or "")
    ext = MIME_TO_EXTENSION.get(mime)
    if ext:
        return ext
    guessed = mimetypes.guess_extension(mime) if mime else None
    if guessed:
        return guessed.lstrip(".")
    if mime.startswith("text/"):
        return "txt"
    return FALLBACK_EXTENSION


def classify(content_type: str) -> str:
    """Return ``'image'``, ``'audio'``, ``'video'``, or ``'file'``."""
    mime = essence(content_type)
    if mime in _IMAGE_TYPES:
        return "image"
    if mime in _AUDIO_TYPES:
        return "audio"
    if mime in _VIDEO_TYPES:
        return "video"
    return "file"


def guess_media_type(file_name: str) -> str:
    """Media type for a local file name, octet-stream when unknown."""
    suffix = ("." + file_name.rsplit(".", 1)[1].lower()) if "." in file_name else ""
    return (
        EXTENSION_TO_MIME.get(suffix)
        or mimetypes.guess_type(file_name)[0]
        or DEFAULT_MEDIA_TYPE
    )
