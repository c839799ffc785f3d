"""Chat platform adapters.

Only :mod:`.base` is imported eagerly; each concrete adapter pulls in its
platform SDK and is imported by the entry point on demand.
"""

from .base import Transport, TransportCapabilities, TransportError

__all__ = ["Transport", "TransportCapabilities", "TransportError"]
