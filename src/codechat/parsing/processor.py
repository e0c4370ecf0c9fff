"""Response processing.

Turns one raw model response into a ProcessedMessage. Kept separate from
fence extraction so the call site can grow (for example image-aware
parsing) without touching the extraction algorithm.
"""

from .fences import parse_code_fences
from .models import ProcessedMessage


class ResponseProcessor:
    """Package a raw response as prose plus labeled code blocks."""

    def process(self, raw_text: str) -> ProcessedMessage:
        """Process a raw assistant response.

        Args:
            raw_text: Text returned by the model

        Returns:
            ProcessedMessage holding the original text, code blocks and explanation
        """
        parsed = parse_code_fences(raw_text)
        return ProcessedMessage(
            message=raw_text,
            code_blocks=parsed.code_blocks,
            explanation=parsed.explanation,
        )
