"""Tests for mermaid label repair."""

from docwarehouse.services.mermaid_repair import repair_mermaid


class TestRepairMermaid:
    def test_parentheses_removed_from_square_labels(self):
        content = "```mermaid\ngraph TD\n  A[Start (main)] --> B[End（done）]\n```\n"
        assert repair_mermaid(content) == "```mermaid\ngraph TD\n  A[Start main] --> B[Enddone]\n```\n"

    def test_round_shapes_untouched(self):
        content = "```mermaid\ngraph TD\n  A(Round) --> B[Square]\n```\n"
        assert repair_mermaid(content) == content

    def test_text_outside_blocks_untouched(self):
        content = "See [link (docs)](http://x)\n\n```mermaid\ngraph LR\n  X[a (b)]\n```\n"
        repaired = repair_mermaid(content)
        assert repaired.startswith("See [link (docs)](http://x)")
        assert "X[a b]" in repaired

    def test_other_code_blocks_untouched(self):
        content = "```python\nx = [f(1)]\n```\n"
        assert repair_mermaid(content) == content

    def test_multiple_blocks(self):
        content = (
            "```mermaid\ngraph TD\n  A[x (1)]\n```\n\ntext\n\n"
            "```mermaid\ngraph TD\n  B[y (2)]\n```\n"
        )
        repaired = repair_mermaid(content)
        assert "A[x 1]" in repaired
        assert "B[y 2]" in repaired

    def test_empty(self):
        assert repair_mermaid("") == ""
