"""Recover structured payloads from free-form model output.

Each strategy is a pure function ``text -> Optional[str]``; strategies are
tried in order and the first non-None result wins.
"""

import json
import re
from typing import Any, Callable, Optional, Sequence

from json_repair import repair_json

Strategy = Callable[[str], Optional[str]]

_FENCED_JSON_RE = re.compile(r"```json(.*?)```", re.DOTALL | re.IGNORECASE)
_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$")


def extract_tag(text: str, tag: str) -> Optional[str]:
    """Content of the first ``<tag>...</tag>`` block, trimmed, or None."""
    match = re.search(rf"<{re.escape(tag)}>(.*?)</{re.escape(tag)}>", text, re.DOTALL)
    if match is None:
        return None
    return match.group(1).strip()


def extract_tag_or_text(text: str, tag: str) -> str:
    """Tagged content when present, otherwise the whole trimmed text."""
    content = extract_tag(text, tag)
    return content if content is not None else text.strip()


def extract_documentation_structure(text: str) -> Optional[str]:
    return extract_tag(text, "documentation_structure")


def extract_fenced_json(text: str) -> Optional[str]:
    match = _FENCED_JSON_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip()


def extract_raw(text: str) -> Optional[str]:
    stripped = text.strip()
    return stripped or None


CATALOGUE_STRATEGIES: Sequence[Strategy] = (
    extract_documentation_structure,
    extract_fenced_json,
    extract_raw,
)


def first_match(text: str, strategies: Sequence[Strategy]) -> Optional[str]:
    for strategy in strategies:
        result = strategy(text)
        if result is not None:
            return result
    return None


def parse_json_lenient(text: str) -> Any:
    """Parse JSON, repairing near-miss output (trailing commas, stray fences...)."""
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = _FENCE_RE.sub("", candidate)
    if not candidate:
        raise ValueError("No JSON content")
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(repair_json(candidate))
