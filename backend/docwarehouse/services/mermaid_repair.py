"""Repair of common mermaid syntax errors in generated markdown.

Parentheses inside a square-bracket node label (``A[Start (main)]``) open
a new shape in mermaid and break the whole diagram, so they are removed.
Only text inside ```mermaid fences is touched.
"""

import re

# Groups: opening fence, block source, closing fence.
_MERMAID_BLOCK_RE = re.compile(
    r"(^```mermaid\s*\n)(.*?)(^```)",
    re.MULTILINE | re.DOTALL,
)

_SQUARE_LABEL_RE = re.compile(r"\[([^\[\]\n]*)\]")

# ASCII and full-width parentheses
_PARENS = str.maketrans("", "", "()（）")


def _strip_label_parens(source: str) -> str:
    return _SQUARE_LABEL_RE.sub(lambda m: "[" + m.group(1).translate(_PARENS) + "]", source)


def repair_mermaid(content: str) -> str:
    """Remove parentheses from ``[...]`` labels inside mermaid blocks."""
    if not content or "```mermaid" not in content:
        return content
    return _MERMAID_BLOCK_RE.sub(
        lambda m: m.group(1) + _strip_label_parens(m.group(2)) + m.group(3),
        content,
    )
