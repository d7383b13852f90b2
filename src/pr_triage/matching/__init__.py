"""Glob pattern compilation for repository paths."""

from pr_triage.matching.glob import (
    END_ANCHOR,
    SEPARATOR,
    PathPattern,
    compile_glob,
    glob_to_regex,
    normalize_path,
    strict_end_anchors,
)

__all__ = [
    "END_ANCHOR",
    "PathPattern",
    "SEPARATOR",
    "compile_glob",
    "glob_to_regex",
    "normalize_path",
    "strict_end_anchors",
]
