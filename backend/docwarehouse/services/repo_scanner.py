"""Working-copy scanning and readme discovery.

Produces the file list the catalogue is rendered from. Ignore rules come
from the repository's ``.gitignore`` plus the configured exclusions; a
``*`` in a pattern matches any run of characters, a trailing ``/`` limits
the pattern to directories, matching is case-insensitive on the entry
name.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Sequence

from ..core.config import settings
from .file_tree import FILE, PathEntry
from .prompts import README_CANDIDATES

logger = logging.getLogger(__name__)

# Binary, media and archive files carry no documentation value.
EXCLUDED_EXTENSIONS = frozenset({
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff", ".psd",
    ".mp3", ".mp4", ".wav", ".avi", ".mov", ".flv", ".mkv", ".ogg", ".webm",
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
    ".zip", ".tar", ".gz", ".tgz", ".bz2", ".xz", ".7z", ".rar", ".jar", ".war",
    ".exe", ".dll", ".so", ".dylib", ".bin", ".obj", ".o", ".a", ".lib", ".pdb",
    ".class", ".pyc", ".pyo", ".wasm",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    ".db", ".sqlite", ".sqlite3", ".mdb",
})


class IgnoreRule:
    """One ignore pattern compiled for name matching."""

    def __init__(self, pattern: str):
        pattern = pattern.strip()
        self.directory_only = pattern.endswith("/")
        self.pattern = pattern.rstrip("/").lstrip("/")
        if "*" in self.pattern:
            regex = "^" + re.escape(self.pattern).replace(r"\*", ".*") + "$"
            self._regex: Optional[re.Pattern] = re.compile(regex, re.IGNORECASE)
        else:
            self._regex = None

    def matches(self, name: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self._regex is not None:
            return bool(self._regex.match(name))
        return name.lower() == self.pattern.lower()


def load_ignore_rules(root: str, extra_patterns: Sequence[str] = ()) -> List[IgnoreRule]:
    """Rules from ``<root>/.gitignore`` followed by *extra_patterns*."""
    patterns: List[str] = []
    gitignore = Path(root) / ".gitignore"
    if gitignore.is_file():
        patterns.extend(gitignore.read_text(encoding="utf-8", errors="ignore").splitlines())
    patterns.extend(extra_patterns)
    return [
        IgnoreRule(p) for p in patterns
        if p.strip() and not p.strip().startswith(("#", "!")) and p.strip().rstrip("/")
    ]


def scan_directory(
    root: str,
    extra_patterns: Optional[Sequence[str]] = None,
    max_file_size: Optional[int] = None,
) -> List[PathEntry]:
    """List the files under *root* worth showing in the catalogue.

    Dot-directories are not entered, ignored and excluded-extension files
    are dropped, as are files of *max_file_size* bytes or more.
    """
    if extra_patterns is None:
        extra_patterns = settings.get_excluded_files()
    if max_file_size is None:
        max_file_size = settings.max_file_size_bytes
    rules = load_ignore_rules(root, extra_patterns)

    entries: List[PathEntry] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith(".") and not any(r.matches(d, True) for r in rules)
        )
        for filename in sorted(filenames):
            if any(r.matches(filename, False) for r in rules):
                continue
            if os.path.splitext(filename)[1].lower() in EXCLUDED_EXTENSIONS:
                continue
            full_path = os.path.join(dirpath, filename)
            try:
                if os.path.getsize(full_path) >= max_file_size:
                    continue
            except OSError as e:
                logger.debug("Skipping unreadable file %s: %s", full_path, e)
                continue
            entries.append(PathEntry(path=full_path, kind=FILE))

    logger.info("Scanned %s: %d files", root, len(entries))
    return entries


def find_readme(root: str) -> Optional[str]:
    """Content of the first README candidate present in *root*, or None."""
    for candidate in README_CANDIDATES:
        path = Path(root) / candidate
        if path.is_file():
            return path.read_text(encoding="utf-8", errors="replace")
    return None


def read_repository_file(root: str, relative_path: str, max_chars: int) -> Optional[str]:
    """Read a file of the working copy, refusing paths that escape *root*."""
    base = Path(root).resolve()
    target = (base / relative_path.lstrip("/\\")).resolve()
    if base != target and base not in target.parents:
        logger.warning("Refusing to read %s outside %s", relative_path, root)
        return None
    if not target.is_file():
        return None
    content = target.read_text(encoding="utf-8", errors="replace")
    return content[:max_chars]
