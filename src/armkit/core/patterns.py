"""Include/exclude glob matching for package file selection.

Globs use ``**`` for any number of path segments (including none) and
``*`` / ``?`` within a single segment. Paths and patterns are folded to
forward slashes before matching. Pattern lists are normalized (trimmed,
folded, sorted, de-duplicated) so that permutations hash to the same
package key.
"""

from __future__ import annotations

import functools
import re

from armkit.core.files import File


def normalize_pattern(pattern: str) -> str:
    """Trim whitespace and fold backslashes to forward slashes."""
    return pattern.strip().replace("\\", "/")


def normalize_patterns(patterns: list[str] | None) -> list[str]:
    """Normalize each pattern, drop empties and sort the result."""
    if not patterns:
        return []
    cleaned = {normalize_pattern(p) for p in patterns}
    cleaned.discard("")
    return sorted(cleaned)


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out) + r"\Z")


def match_pattern(pattern: str, path: str) -> bool:
    """Return True if *path* matches the glob *pattern*."""
    return _compile(normalize_pattern(pattern)).match(path.replace("\\", "/")) is not None


def is_selected(path: str, include: list[str], exclude: list[str]) -> bool:
    """Apply include/exclude selection to a single path.

    A path is selected iff *include* is empty or any include glob matches,
    and no exclude glob matches.
    """
    if include and not any(match_pattern(p, path) for p in include):
        return False
    return not any(match_pattern(p, path) for p in exclude)


def filter_files(files: list[File], include: list[str], exclude: list[str]) -> list[File]:
    """Return the files of *files* selected by the include/exclude globs."""
    return [f for f in files if is_selected(f.path, include, exclude)]
