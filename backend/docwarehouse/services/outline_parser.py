"""Heading outline to title/reference tree.

Used for the knowledge mini map: the model answers with markdown-style
headings (``# Title:reference``) and the depth of each heading is the
number of leading marker characters.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

_THINKING_RE = re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE)


@dataclass
class OutlineNode:
    title: str
    reference: Optional[str] = None
    children: List["OutlineNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.reference,
            "nodes": [child.to_dict() for child in self.children],
        }


def heading_level(line: str, marker: str = "#") -> int:
    """Count leading *marker* characters of an already-trimmed line."""
    level = 0
    while level < len(line) and line[level] == marker:
        level += 1
    return level


def _make_node(text: str) -> OutlineNode:
    title, sep, reference = text.partition(":")
    return OutlineNode(title=title.strip(), reference=reference.strip() if sep else None)


def _parse_scope(lines: Sequence[str], start: int, level: int, marker: str) -> List[OutlineNode]:
    """Collect the direct children of a heading at *level* found from *start*.

    Scanning stops at the first heading at *level* or shallower, except on
    the first line examined. Headings more than one level deeper
    than the scope are ignored here; the recursive call of their own
    parent, if any, picks them up.
    """
    nodes: List[OutlineNode] = []
    for index in range(start, len(lines)):
        line = lines[index].strip()
        if not line:
            continue
        line_level = heading_level(line, marker)
        if line_level == 0:
            continue
        # The line right after a heading never closes its scope, even when it
        # is a sibling; a deeper heading after it is then also collected by
        # that heading, so "## B, ## C, ### D" gives D under both B and C.
        if line_level <= level and index > start:
            break
        if line_level == level + 1:
            node = _make_node(line[line_level:].strip())
            node.children = _parse_scope(lines, index + 1, line_level, marker)
            nodes.append(node)
    return nodes


def strip_thinking(text: str) -> str:
    return _THINKING_RE.sub("", text)


def parse_outline(lines: Sequence[str], marker: str = "#") -> OutlineNode:
    """Parse heading lines into a single rooted tree.

    The first heading of the outline becomes the root; every later heading
    at the top level is attached to it as a child.
    ``["# A", "## B", "## C"]`` gives A with children B and C;
    ``["# A:urlA", "# B:urlB"]`` gives A(urlA) with one child B(urlB).
    An outline without headings yields an empty untitled root.
    """
    top_level = _parse_scope(lines, 0, 0, marker)
    if not top_level:
        return OutlineNode(title="")
    root, rest = top_level[0], top_level[1:]
    root.children.extend(rest)
    return root


def parse_outline_text(text: str, marker: str = "#") -> OutlineNode:
    """Strip ``<thinking>`` blocks, then parse the remaining lines."""
    return parse_outline(strip_thinking(text).splitlines(), marker)
