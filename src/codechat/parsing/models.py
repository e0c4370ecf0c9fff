"""Data models for parsed assistant responses."""

from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_CODE_LANGUAGE


class CodeBlock(BaseModel):
    """A fenced code segment extracted from a response."""

    model_config = ConfigDict(frozen=True)

    language: str = Field(
        default=DEFAULT_CODE_LANGUAGE,
        description="Language tag from the opening fence"
    )
    code: str = Field(description="Fence content with surrounding whitespace stripped")


class ParsedContent(BaseModel):
    """Result of scanning a text for code fences."""

    model_config = ConfigDict(frozen=True)

    code_blocks: list[CodeBlock] = Field(default_factory=list)
    explanation: str = Field(
        default="",
        description="Input with every matched fence removed, stripped"
    )


class ProcessedMessage(BaseModel):
    """A model response split into prose and code for rendering."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(description="Original response text")
    code_blocks: list[CodeBlock] = Field(default_factory=list)
    explanation: str = Field(default="")

    @property
    def has_code(self) -> bool:
        """Whether the response contained at least one code block."""
        return bool(self.code_blocks)
