"""Command engine boundary -- data model, tokenizer and engine interface."""

from .loader import EngineLoadError, load_engine
from .ports import CommandDescriptor, CommandEngine
from .tokenizer import Tokenizer, tokenize
from .types import (
    DEFAULT_MEDIA_TYPE,
    Block,
    Comment,
    Data,
    ExecutionResult,
    InputStream,
    Output,
    Token,
    UserContext,
)

__all__ = [
    "DEFAULT_MEDIA_TYPE",
    "Block",
    "CommandDescriptor",
    "CommandEngine",
    "Comment",
    "Data",
    "EngineLoadError",
    "ExecutionResult",
    "InputStream",
    "Output",
    "Token",
    "Tokenizer",
    "UserContext",
    "load_engine",
    "tokenize",
]
