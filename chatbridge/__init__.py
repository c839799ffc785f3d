"""chatbridge -- exposes a command engine on chat platforms."""

__version__ = "0.1.0"
