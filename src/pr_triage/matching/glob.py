"""Glob-to-regex compiler for ownership manifest patterns.

Compiles a single CODEOWNERS-style path pattern into a :class:`PathPattern`,
an immutable matcher over repository paths.

Supported wildcard tokens (recognised longest-first):

- ``**`` at the very end of the pattern -- one or more of any character,
  i.e. everything below a subtree.
- ``**/`` -- zero or more intermediate directories.
- ``**`` elsewhere -- any directory prefix followed by exactly one segment.
- ``*`` -- exactly one non-empty path segment (never crosses ``/``).

Every wildcard becomes exactly one capture group, numbered left to right,
so label rules built from globs can reference wildcard text as ``$1``,
``$2``, ...

Both the pattern and the matched path are rooted at ``/``: a path or glob
without a leading separator gets one prepended.  Literal text is escaped
before wildcard substitution, which makes every string a valid glob.

Typical usage::

    pattern = compile_glob("docs/**")
    pattern.matches("docs/api/fs.md")      # True
    pattern.match("/docs/api/fs.md")[1]    # "api/fs.md"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SEPARATOR = "/"

# Regex fragments for each wildcard token.
_TRAILING_DOUBLE_STAR = "(.+)"
_DOUBLE_STAR_SLASH = "((?:.+/)?)"
_DOUBLE_STAR = "((?:.+/)?[^/]+)"
_STAR = "([^/]+)"

# Matches only at the very end of the string; ``$`` also matches before a
# trailing newline.
END_ANCHOR = r"\Z"

# Longest-first alternation so ``**`` is never read as two ``*``.
_TOKEN_RE = re.compile(r"\*\*/|\*\*|\*")


# ---------------------------------------------------------------------------
# PathPattern
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathPattern:
    """A compiled, anchored matcher for one glob.

    Attributes:
        glob: The glob text as written in the manifest.
        regex: The compiled, anchored regular expression.
    """

    glob: str
    regex: re.Pattern

    @property
    def group_count(self) -> int:
        """Number of capture groups (one per wildcard)."""
        return self.regex.groups

    def match(self, path: str) -> Optional[re.Match]:
        """Return the full match for *path*, or None."""
        return self.regex.match(normalize_path(path))

    def matches(self, path: str) -> bool:
        """Return True when *path* matches the whole pattern."""
        return self.match(path) is not None

    def __str__(self) -> str:
        return self.glob


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalize_path(path: str) -> str:
    """Prepend a leading separator to *path* if it lacks one."""
    if path.startswith(SEPARATOR):
        return path
    return SEPARATOR + path


def glob_to_regex(glob: str, rooted: bool = True) -> str:
    """Translate *glob* into anchored regular expression source.

    The glob is rooted first (or, with ``rooted=False``, stripped of its
    leading separator to match repository-relative paths), then literal runs
    are escaped and wildcard tokens substituted in a single left-to-right
    pass.
    """
    source = normalize_path(glob) if rooted else glob.lstrip(SEPARATOR)
    parts: list[str] = []
    position = 0
    for token in _TOKEN_RE.finditer(source):
        parts.append(re.escape(source[position:token.start()]))
        parts.append(_translate_token(token.group(0), token.end() == len(source)))
        position = token.end()
    parts.append(re.escape(source[position:]))
    return "^" + "".join(parts) + END_ANCHOR


def strict_end_anchors(source: str) -> str:
    """Rewrite every ``$`` anchor in regex *source* as :data:`END_ANCHOR`.

    Escaped dollars and dollars inside character classes are literals and
    are left alone.  Already-rewritten source is returned unchanged.
    """
    out: list[str] = []
    escaped = False
    class_start = -1
    for index, char in enumerate(source):
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif class_start >= 0:
            # ``]`` right after ``[`` or ``[^`` is a literal member.
            if char == "]" and index > class_start + 1 and source[class_start + 1:index] != "^":
                class_start = -1
        elif char == "[":
            class_start = index
        elif char == "$":
            out.append(END_ANCHOR)
            continue
        out.append(char)
    return "".join(out)


def compile_glob(glob: str) -> PathPattern:
    """Compile *glob* into a :class:`PathPattern`.

    Never fails: a glob without wildcards compiles to an exact literal match.
    """
    return PathPattern(glob=glob, regex=re.compile(glob_to_regex(glob)))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _translate_token(token: str, at_end: bool) -> str:
    if token == "**" and at_end:
        return _TRAILING_DOUBLE_STAR
    if token == "**/":
        return _DOUBLE_STAR_SLASH
    if token == "**":
        return _DOUBLE_STAR
    return _STAR
