"""Unit tests for the parsing module."""
from hypothesis import given
from hypothesis import strategies as st

from codechat.parsing import (
    CodeBlock,
    ProcessedMessage,
    ResponseProcessor,
    parse_code_fences,
    prose_segments,
)

prose = st.text(alphabet=st.characters(exclude_characters="`"), max_size=40)
code_body = st.text(alphabet=st.characters(exclude_characters="`"), max_size=60)
language_tag = st.from_regex(r"[a-z][a-z0-9_]{0,9}", fullmatch=True)


class TestParseCodeFences:
    """Tests for fence extraction."""

    def test_single_tagged_block(self):
        """Test a response that is only a code block."""
        parsed = parse_code_fences("```js\nconst x=1;\n```")

        assert parsed.code_blocks == [CodeBlock(language="js", code="const x=1;")]
        assert parsed.explanation == ""

    def test_untagged_block_defaults_to_text(self):
        """Test that a fence without a tag is labeled 'text'."""
        parsed = parse_code_fences("```\nhello\n```")

        assert parsed.code_blocks == [CodeBlock(language="text", code="hello")]
        assert parsed.explanation == ""

    def test_prose_around_block(self):
        """Test that the explanation keeps the prose on both sides."""
        parsed = parse_code_fences("Intro\n```py\nprint(1)\n```\nOutro")

        assert parsed.code_blocks == [CodeBlock(language="py", code="print(1)")]
        assert parsed.explanation == "Intro\n\nOutro"

    def test_blocks_keep_order(self):
        """Test that blocks are returned in order of their opening fence."""
        text = "A\n```go\nfmt.Println(1)\n```\nB\n```rust\nprintln!(\"2\");\n```\nC"
        parsed = parse_code_fences(text)

        assert [b.language for b in parsed.code_blocks] == ["go", "rust"]
        assert parsed.code_blocks[1].code == 'println!("2");'
        assert parsed.explanation == "A\n\nB\n\nC"

    def test_empty_input(self):
        """Test that empty input yields nothing."""
        parsed = parse_code_fences("")

        assert parsed.code_blocks == []
        assert parsed.explanation == ""

    def test_empty_block_body(self):
        """Test a fence with nothing inside."""
        parsed = parse_code_fences("Nothing here:\n```python\n```")

        assert parsed.code_blocks == [CodeBlock(language="python", code="")]
        assert parsed.explanation == "Nothing here:"

    def test_unterminated_fence_stays_prose(self):
        """Test that an opening fence without a closing fence is not code."""
        text = "Try this:\n```python\nprint('never closed')\n"
        parsed = parse_code_fences(text)

        assert parsed.code_blocks == []
        assert parsed.explanation == text.strip()

    def test_unterminated_fence_after_complete_block(self):
        """Test that a trailing unterminated fence stays in the explanation."""
        parsed = parse_code_fences("```sh\nls\n```\nthen ```python\nx")

        assert parsed.code_blocks == [CodeBlock(language="sh", code="ls")]
        assert parsed.explanation == "then ```python\nx"

    def test_code_whitespace_is_stripped(self):
        """Test that code keeps inner lines but loses surrounding blank lines."""
        parsed = parse_code_fences("```python\n\n  def f():\n      return 1\n\n```")

        assert parsed.code_blocks[0].code == "def f():\n      return 1"

    @given(prose)
    def test_text_without_fences_is_all_explanation(self, text: str):
        """Property test: no fence markers means no blocks, explanation is the stripped text."""
        parsed = parse_code_fences(text)

        assert parsed.code_blocks == []
        assert parsed.explanation == text.strip()

    @given(st.lists(st.tuples(prose, language_tag, code_body), max_size=5), prose)
    def test_well_formed_fences(self, pieces, tail):
        """Property test: one block per fence pair, prose segments make up the explanation."""
        text = "".join(f"{before}```{tag}\n{code}\n```" for before, tag, code in pieces) + tail
        parsed = parse_code_fences(text)

        assert len(parsed.code_blocks) == len(pieces)
        for block, (_, tag, code) in zip(parsed.code_blocks, pieces):
            assert block.language == tag
            assert block.code == code.strip()

        segments = [before for before, _, _ in pieces] + [tail]
        assert prose_segments(text) == segments
        assert parsed.explanation == "".join(segments).strip()

    def test_prose_segments_of_empty_text(self):
        """Test that empty input is one empty segment, like any fence-free text."""
        assert prose_segments("") == [""]
        assert prose_segments("just prose") == ["just prose"]

    def test_prose_segments_around_block(self):
        assert prose_segments("a```py\nx\n```b") == ["a", "b"]


class TestResponseProcessor:
    """Tests for ResponseProcessor."""

    def test_keeps_original_text(self):
        """Test that the raw response is kept alongside the parsed parts."""
        raw = "Use a loop:\n```python\nfor i in range(3):\n    print(i)\n```"
        processed = ResponseProcessor().process(raw)

        assert isinstance(processed, ProcessedMessage)
        assert processed.message == raw
        assert processed.explanation == "Use a loop:"
        assert processed.code_blocks == [
            CodeBlock(language="python", code="for i in range(3):\n    print(i)")
        ]
        assert processed.has_code

    def test_plain_answer(self):
        """Test a response without code."""
        processed = ResponseProcessor().process("  Just use sorted().  ")

        assert processed.code_blocks == []
        assert processed.explanation == "Just use sorted()."
        assert not processed.has_code
