"""Channel messaging pipeline -- normalizer, renderer and orchestration."""

from .models import (
    Hint,
    InboundMessage,
    OutgoingFile,
    OutgoingMessage,
    RawAttachment,
    Sender,
)
from .normalizer import AttachmentTooLarge, InputNormalizer, NormalizedInput
from .pipeline import NOT_UNDERSTOOD, MessagePipeline, PipelineRun, PipelineState
from .renderer import PLACEHOLDER, RenderUnit, classify, render

__all__ = [
    "NOT_UNDERSTOOD",
    "PLACEHOLDER",
    "AttachmentTooLarge",
    "Hint",
    "InboundMessage",
    "InputNormalizer",
    "MessagePipeline",
    "NormalizedInput",
    "OutgoingFile",
    "OutgoingMessage",
    "PipelineRun",
    "PipelineState",
    "RawAttachment",
    "RenderUnit",
    "Sender",
    "classify",
    "render",
]
