"""
Unified diff parsing and per-file filtering

A diff is split into file sections. A section starts at a
``diff --git a/... b/...`` header, or at a bare ``---``/``+++`` pair when the
diff carries no git headers, and runs until the next section starts. Hunks
stay attached to the section they follow; a ``---``/``+++`` pair inside a
hunk whose line counts are not yet used up is hunk content.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

DEV_NULL = "/dev/null"

_GIT_HEADER = re.compile(r"^diff --git (?P<rest>.+)$")
_OLD_FILE = re.compile(r"^--- (?P<path>.+?)(?:\t.*)?$")
_NEW_FILE = re.compile(r"^\+\+\+ (?P<path>.+?)(?:\t.*)?$")
_RENAME_FROM = re.compile(r"^rename from (?P<path>.+)$")
_RENAME_TO = re.compile(r"^rename to (?P<path>.+)$")
_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,(?P<old>\d+))? \+\d+(?:,(?P<new>\d+))? @@")


@dataclass(frozen=True)
class FileDiff:
    """One file section of a unified diff"""

    old_path: Optional[str]
    new_path: Optional[str]
    text: str

    @property
    def path(self) -> str:
        """Canonical path: the new path, or the old one for deletions"""
        return self.new_path or self.old_path or ""

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(p for p in (self.old_path, self.new_path) if p)

    @property
    def is_rename(self) -> bool:
        return bool(self.old_path and self.new_path and self.old_path != self.new_path)


@dataclass(frozen=True)
class DiffStats:
    added: int
    removed: int

    @property
    def total(self) -> int:
        return self.added + self.removed


def _unquote(path: str) -> str:
    if len(path) >= 2 and path[0] == '"' and path[-1] == '"':
        return path[1:-1].encode("latin-1", "backslashreplace").decode("unicode_escape")
    return path


def _strip_prefix(path: str) -> Optional[str]:
    path = _unquote(path.strip())
    if path == DEV_NULL:
        return None
    if path[:2] in ("a/", "b/"):
        return path[2:]
    return path


def _split_git_header(rest: str) -> Tuple[Optional[str], Optional[str]]:
    """Split ``a/<old> b/<new>``, preferring the symmetric split for unrenamed files"""
    if rest.startswith('"'):
        end = rest.find('"', 1)
        if end > 0:
            return _strip_prefix(rest[: end + 1]), _strip_prefix(rest[end + 2:])
    half = (len(rest) - 1) // 2
    if rest[half] == " " and rest[:half][2:] == rest[half + 1:][2:]:
        return _strip_prefix(rest[:half]), _strip_prefix(rest[half + 1:])
    marker = rest.find(" b/")
    if marker > 0:
        return _strip_prefix(rest[:marker]), _strip_prefix(rest[marker + 1:])
    return None, None


class _SectionBuilder:
    def __init__(self, old_path: Optional[str], new_path: Optional[str], git: bool):
        self.old_path = old_path
        self.new_path = new_path
        self.git = git
        self.lines: List[str] = []
        self.in_hunks = False
        # Lines still owed by the current hunk, from its @@ header
        self.old_remaining = 0
        self.new_remaining = 0
        # git headers name /dev/null only through ---/+++ lines
        self.old_seen = False
        self.new_seen = False

    def add(self, line: str) -> None:
        self.lines.append(line)
        stripped = line.rstrip("\r\n")
        if stripped.startswith("@@"):
            self.in_hunks = True
            hunk = _HUNK_HEADER.match(stripped)
            self.old_remaining = int(hunk.group("old") or 1) if hunk else 0
            self.new_remaining = int(hunk.group("new") or 1) if hunk else 0
            return
        if self.in_hunks:
            self._consume(stripped)
            return
        match = _RENAME_FROM.match(stripped)
        if match:
            self.old_path = _unquote(match.group("path"))
            return
        match = _RENAME_TO.match(stripped)
        if match:
            self.new_path = _unquote(match.group("path"))
            return
        match = _OLD_FILE.match(stripped)
        if match and not self.old_seen:
            self.old_seen = True
            self.old_path = _strip_prefix(match.group("path"))
            return
        match = _NEW_FILE.match(stripped)
        if match and not self.new_seen:
            self.new_seen = True
            self.new_path = _strip_prefix(match.group("path"))

    def _consume(self, line: str) -> None:
        marker = line[:1]
        if marker in (" ", ""):
            self.old_remaining -= 1
            self.new_remaining -= 1
        elif marker == "-":
            self.old_remaining -= 1
        elif marker == "+":
            self.new_remaining -= 1

    @property
    def hunk_exhausted(self) -> bool:
        return self.old_remaining <= 0 and self.new_remaining <= 0

    def build(self) -> FileDiff:
        return FileDiff(self.old_path, self.new_path, "".join(self.lines))


def parse(diff_text: str) -> Iterator[FileDiff]:
    """
    Lazily split a unified diff into file sections

    Text before the first file header (commit preambles and the like) is not
    part of any section. Each call starts a fresh pass over ``diff_text``.
    """
    if not diff_text:
        return
    lines = diff_text.splitlines(keepends=True)
    current: Optional[_SectionBuilder] = None

    for index, line in enumerate(lines):
        stripped = line.rstrip("\r\n")
        header = _GIT_HEADER.match(stripped)
        if header:
            if current is not None:
                yield current.build()
            old_path, new_path = _split_git_header(header.group("rest"))
            current = _SectionBuilder(old_path, new_path, git=True)
            current.lines.append(line)
            continue

        # Bare ---/+++ pairs only open sections in diffs without git headers
        starts_plain_section = (
            stripped.startswith("--- ")
            and index + 1 < len(lines)
            and lines[index + 1].startswith("+++ ")
            and (
                current is None
                or (not current.git and current.in_hunks and current.hunk_exhausted)
            )
        )
        if starts_plain_section:
            if current is not None:
                yield current.build()
            current = _SectionBuilder(None, None, git=False)

        if current is not None:
            current.add(line)

    if current is not None:
        yield current.build()


def files_touched(diff_text: str) -> List[str]:
    """Canonical file paths named by the diff, in order of first appearance"""
    seen = {}
    for section in parse(diff_text):
        if section.path:
            seen.setdefault(section.path, None)
    return list(seen)


def filter_by_files(diff_text: str, allowed: Iterable[str]) -> str:
    """
    Restrict a diff to the file sections whose old or new path is allowed

    Kept sections are returned verbatim and in their original order. An empty
    result means nothing relevant, not a failure.
    """
    allowed_set = {path.strip() for path in allowed if path and path.strip()}
    if not allowed_set or not diff_text or not diff_text.strip():
        return ""
    kept = [
        section.text
        for section in parse(diff_text)
        if any(path in allowed_set for path in section.paths)
    ]
    return "".join(kept)


def count_diff_lines(diff_text: str) -> DiffStats:
    """Count added and removed lines, ignoring the ---/+++ file headers"""
    added = 0
    removed = 0
    for line in diff_text.splitlines():
        if line.startswith("+") and not line.startswith("+++"):
            added += 1
        elif line.startswith("-") and not line.startswith("---"):
            removed += 1
    return DiffStats(added=added, removed=removed)
