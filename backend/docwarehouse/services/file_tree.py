"""Token-efficient renderings of a repository file list.

The catalogue prompt carries the whole repository layout, so the same tree
can be rendered in several formats of different density. Everything here is
pure: no filesystem access.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

FILE = "File"
DIRECTORY = "Directory"


@dataclass
class PathEntry:
    """A scanned repository entry: absolute (or base-prefixed) path and kind."""

    path: str
    kind: str = FILE


@dataclass
class FileTreeNode:
    name: str
    kind: str = DIRECTORY
    children: Dict[str, "FileTreeNode"] = field(default_factory=dict)

    @property
    def is_file(self) -> bool:
        return self.kind == FILE

    def sorted_children(self) -> List[Tuple[str, "FileTreeNode"]]:
        """Directories before files, then by name."""
        return sorted(self.children.items(), key=lambda item: (item[1].is_file, item[0]))


def _strip_base(path: str, base: str) -> str:
    """Drop *base* from *path* only when it ends at a separator boundary."""
    if base and path.startswith(base) and path[len(base):len(base) + 1] in ("", "/", "\\"):
        return path[len(base):]
    return path


def build_tree(entries: Iterable[PathEntry], base_path: str) -> FileTreeNode:
    """Build a tree from scanned entries.

    The base path prefix is stripped, separators may be ``/`` or ``\\``, and
    relative paths starting with ``.`` are skipped. A node created as a file
    becomes a directory as soon as another path descends through it.
    """
    root = FileTreeNode(name="/", kind=DIRECTORY)
    base = base_path.rstrip("/\\") if base_path else ""

    for entry in entries:
        relative = _strip_base(entry.path, base).lstrip("/\\")
        if not relative or relative.startswith("."):
            continue

        parts = [part for part in relative.replace("\\", "/").split("/") if part]
        current = root
        for index, part in enumerate(parts):
            is_last = index == len(parts) - 1
            child = current.children.get(part)
            if child is None:
                kind = FILE if is_last and entry.kind == FILE else DIRECTORY
                child = FileTreeNode(name=part, kind=kind)
                current.children[part] = child
            elif not is_last and child.is_file:
                child.kind = DIRECTORY
            current = child

    return root


def to_indented_string(root: FileTreeNode) -> str:
    """``/`` header, then one ``<indent><name>/<F|D>`` line per node."""
    lines = ["/"]

    def _walk(node: FileTreeNode, depth: int) -> None:
        for name, child in node.sorted_children():
            lines.append(f"{'  ' * depth}{name}/{'F' if child.is_file else 'D'}")
            if not child.is_file:
                _walk(child, depth + 1)

    _walk(root, 0)
    return "\n".join(lines)


def _to_json_value(node: FileTreeNode):
    if node.is_file:
        return "F"
    return {name: _to_json_value(child) for name, child in node.sorted_children()}


def to_compact_json(root: FileTreeNode) -> str:
    """Nested objects for directories, ``"F"`` for files, no whitespace."""
    return json.dumps(_to_json_value(root), separators=(",", ":"), ensure_ascii=False)


def to_unix_tree(root: FileTreeNode) -> str:
    """Classic ``tree`` output with box-drawing connectors."""
    lines = ["."]

    def _walk(node: FileTreeNode, prefix: str) -> None:
        children = node.sorted_children()
        for index, (name, child) in enumerate(children):
            last = index == len(children) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{name}")
            if not child.is_file:
                _walk(child, prefix + ("    " if last else "│   "))

    _walk(root, "")
    return "\n".join(lines)


def to_deduplicated_path_list(root: FileTreeNode) -> List[str]:
    """Every file as a full path, plus multi-child directories.

    A directory entry (``path/``) is only emitted for directories with more
    than one child; a single-child directory is implied by its descendant.
    """
    lines: List[str] = []

    def _walk(node: FileTreeNode, prefix: str) -> None:
        for name, child in node.sorted_children():
            path = f"{prefix}{name}"
            if child.is_file:
                lines.append(path)
                continue
            if len(child.children) != 1:
                lines.append(f"{path}/")
            _walk(child, f"{path}/")

    _walk(root, "")
    return lines


_RENDERERS = {
    "compact": to_indented_string,
    "json": to_compact_json,
    "pathlist": lambda root: "\n".join(to_deduplicated_path_list(root)),
    "unix": to_unix_tree,
}


def render_tree(root: FileTreeNode, fmt: str = "compact") -> str:
    """Render *root* in one of: compact, json, pathlist, unix."""
    try:
        renderer = _RENDERERS[fmt.lower()]
    except KeyError:
        raise ValueError(f"Unknown catalogue format: {fmt!r}") from None
    return renderer(root)


def count_files(root: FileTreeNode) -> int:
    if root.is_file:
        return 1
    return sum(count_files(child) for child in root.children.values())
