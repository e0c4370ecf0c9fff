"""Code fence extraction.

Hides how fenced code is recognized inside a model response. A fence opens
with three backticks, optionally followed by a language tag on the same
line, and closes at the next three backticks. Fences are not nested.
"""

import re

from ..config import DEFAULT_CODE_LANGUAGE
from .models import CodeBlock, ParsedContent

FENCE_MARKER = "```"

# Opening marker, optional tag, optional whitespace, lazy body, closing marker.
# An opening marker with no closing marker never matches and stays as prose.
FENCE_PATTERN = re.compile(r"```([A-Za-z0-9_]+)?\s*(.*?)```", re.DOTALL)


def parse_code_fences(text: str) -> ParsedContent:
    """Split text into ordered code blocks and the remaining prose.

    Args:
        text: Raw response text

    Returns:
        ParsedContent with blocks in order of their opening fence and the
        explanation (text with all matched fences removed, stripped)
    """
    if not text:
        return ParsedContent()

    code_blocks = [
        CodeBlock(
            language=match.group(1) or DEFAULT_CODE_LANGUAGE,
            code=match.group(2).strip(),
        )
        for match in FENCE_PATTERN.finditer(text)
    ]
    explanation = FENCE_PATTERN.sub("", text).strip()

    return ParsedContent(code_blocks=code_blocks, explanation=explanation)


def prose_segments(text: str) -> list[str]:
    """Return the prose between fences, in order.

    Concatenating the segments gives the explanation before stripping.
    """
    return FENCE_PATTERN.split(text)[::3]

