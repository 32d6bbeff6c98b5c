"""
Glob pattern matching for threadline file scoping

Patterns are matched against the whole path, segment by segment:

- ``**`` as a full segment matches any number of segments, including none
- ``*`` matches any run of characters within one segment
- ``?`` matches exactly one character other than ``/``

Every other character, ``[`` and ``]`` included, matches itself.

No filesystem access is involved; matching is a pure function of the
path and the pattern.
"""

from fnmatch import fnmatchcase
from functools import lru_cache
from typing import Iterable, List, Tuple

DOUBLE_STAR = "**"


def _normalize(value: str) -> str:
    value = value.strip()
    while value.startswith("./"):
        value = value[2:]
    return value


@lru_cache(maxsize=512)
def _split_pattern(pattern: str) -> Tuple[str, ...]:
    segments: List[str] = []
    for segment in _normalize(pattern).split("/"):
        if segment == DOUBLE_STAR and segments and segments[-1] == DOUBLE_STAR:
            continue
        # "**" inside a segment has no cross-segment meaning
        if segment != DOUBLE_STAR:
            while DOUBLE_STAR in segment:
                segment = segment.replace(DOUBLE_STAR, "*")
            # Brackets are literal path text, not character classes
            segment = segment.replace("[", "[[]")
        segments.append(segment)
    return tuple(segments)


def _match_segments(path: Tuple[str, ...], pattern: Tuple[str, ...]) -> bool:
    # Iterative matcher with a single backtrack point per "**"
    p_index = 0
    s_index = 0
    star_p = -1
    star_s = -1
    while s_index < len(path):
        if p_index < len(pattern) and pattern[p_index] == DOUBLE_STAR:
            star_p = p_index
            star_s = s_index
            p_index += 1
        elif p_index < len(pattern) and fnmatchcase(path[s_index], pattern[p_index]):
            p_index += 1
            s_index += 1
        elif star_p >= 0:
            star_s += 1
            s_index = star_s
            p_index = star_p + 1
        else:
            return False
    while p_index < len(pattern) and pattern[p_index] == DOUBLE_STAR:
        p_index += 1
    return p_index == len(pattern)


def matches(path: str, pattern: str) -> bool:
    """Return True when the full path matches the glob pattern"""
    if not path or not pattern or not pattern.strip():
        return False
    return _match_segments(tuple(_normalize(path).split("/")), _split_pattern(pattern))


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(matches(path, pattern) for pattern in patterns)


def matching_files(files: Iterable[str], patterns: Iterable[str]) -> List[str]:
    """Files matched by at least one pattern, in input order without duplicates"""
    patterns = list(patterns)
    seen = {}
    for path in files:
        if path not in seen and matches_any(path, patterns):
            seen[path] = None
    return list(seen)
