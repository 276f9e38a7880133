"""Tests for heading outline parsing (knowledge mini map)."""

from docwarehouse.services.outline_parser import (
    heading_level, parse_outline, parse_outline_text,
)


def _shape(node):
    return (node.title, node.reference, [_shape(c) for c in node.children])


class TestHeadingLevel:
    def test_counts_leading_markers(self):
        assert heading_level("### Deep") == 3
        assert heading_level("Plain text") == 0
        assert heading_level("-- item", marker="-") == 2


class TestParseOutline:
    def test_children_of_first_heading(self):
        root = parse_outline(["# A", "## B", "## C"])
        assert _shape(root) == ("A", None, [("B", None, []), ("C", None, [])])

    def test_later_top_level_headings_attach_to_root(self):
        root = parse_outline(["# A:urlA", "# B:urlB"])
        assert _shape(root) == ("A", "urlA", [("B", "urlB", [])])

    def test_reference_split_on_first_colon(self):
        root = parse_outline(["# Docs:https://example.com/docs"])
        assert root.title == "Docs"
        assert root.reference == "https://example.com/docs"

    def test_nested_levels(self):
        root = parse_outline([
            "# Project:.",
            "## Backend:src/backend",
            "### API:src/backend/api",
            "## Frontend:src/web",
        ])
        assert _shape(root) == ("Project", ".", [
            ("Backend", "src/backend", [("API", "src/backend/api", [])]),
            ("Frontend", "src/web", []),
        ])

    def test_line_after_heading_never_closes_its_scope(self):
        root = parse_outline(["# A", "## B", "## C", "### D"])
        assert _shape(root) == ("A", None, [
            ("B", None, [("D", None, [])]),
            ("C", None, [("D", None, [])]),
        ])

    def test_blank_and_plain_lines_skipped(self):
        root = parse_outline(["", "intro text", "  # A  ", "", "## B"])
        assert _shape(root) == ("A", None, [("B", None, [])])

    def test_levels_deeper_than_next_are_ignored(self):
        root = parse_outline(["# A", "### too deep", "## B"])
        assert _shape(root) == ("A", None, [("B", None, [])])

    def test_custom_marker(self):
        root = parse_outline(["- A", "-- B"], marker="-")
        assert _shape(root) == ("A", None, [("B", None, [])])

    def test_no_headings_gives_empty_root(self):
        root = parse_outline(["nothing here"])
        assert root.title == ""
        assert root.children == []


class TestParseOutlineText:
    def test_thinking_blocks_removed(self):
        text = "<thinking>\n# Not a heading\n</thinking>\n# Real:.\n## Child:src"
        root = parse_outline_text(text)
        assert _shape(root) == ("Real", ".", [("Child", "src", [])])

    def test_to_dict(self):
        root = parse_outline_text("# A:x\n## B:y")
        assert root.to_dict() == {
            "title": "A", "url": "x",
            "nodes": [{"title": "B", "url": "y", "nodes": []}],
        }
