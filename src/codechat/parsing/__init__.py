"""Response parsing module.

Extracts fenced code blocks and explanatory prose from assistant replies.
"""

from .fences import FENCE_PATTERN, parse_code_fences, prose_segments
from .models import CodeBlock, ParsedContent, ProcessedMessage
from .processor import ResponseProcessor

__all__ = [
    "FENCE_PATTERN",
    "CodeBlock",
    "ParsedContent",
    "ProcessedMessage",
    "ResponseProcessor",
    "parse_code_fences",
    "prose_segments",
]
