"""Tests for the glob-to-regex compiler (pr_triage.matching.glob).

Tests cover:
- Each wildcard token: trailing ``**``, ``**/``, bare ``**``, ``*``
- Literal escaping (dots and other regex metacharacters)
- Leading-separator normalisation of paths and globs
- Capture groups, one per wildcard
- Anchoring: no substring matches, case sensitivity

All tests use real computation -- zero mocks.
"""

from __future__ import annotations

import pytest

from pr_triage.matching.glob import (
    PathPattern,
    compile_glob,
    glob_to_regex,
    normalize_path,
    strict_end_anchors,
)


# ---------------------------------------------------------------------------
# Path normalisation
# ---------------------------------------------------------------------------


class TestNormalizePath:
    """normalize_path() roots paths at the separator."""

    def test_adds_leading_separator(self) -> None:
        assert normalize_path("lib/fs.js") == "/lib/fs.js"

    def test_keeps_existing_separator(self) -> None:
        assert normalize_path("/lib/fs.js") == "/lib/fs.js"

    def test_empty_path(self) -> None:
        assert normalize_path("") == "/"


# ---------------------------------------------------------------------------
# Wildcard tokens
# ---------------------------------------------------------------------------


class TestTrailingDoubleStar:
    """A trailing ``**`` matches everything below a subtree."""

    def test_matches_nested_path(self) -> None:
        assert compile_glob("docs/**").matches("/docs/x/y")

    def test_matches_direct_child(self) -> None:
        assert compile_glob("docs/**").matches("docs/readme.md")

    def test_requires_at_least_one_character(self) -> None:
        assert not compile_glob("docs/**").matches("/docs/")

    def test_does_not_match_sibling(self) -> None:
        assert not compile_glob("docs/**").matches("/doc/x")

    def test_captures_rest_of_path(self) -> None:
        match = compile_glob("docs/**").match("docs/api/fs.md")
        assert match is not None
        assert match.group(1) == "api/fs.md"

    def test_lone_double_star_matches_everything(self) -> None:
        pattern = compile_glob("**")
        assert pattern.matches("a")
        assert pattern.matches("a/b/c.txt")


class TestDoubleStarSlash:
    """``**/`` matches zero or more intermediate directories."""

    def test_zero_directories(self) -> None:
        assert compile_glob("**/test.js").matches("/test.js")

    def test_several_directories(self) -> None:
        assert compile_glob("**/test.js").matches("/a/b/c/test.js")

    def test_in_the_middle(self) -> None:
        pattern = compile_glob("src/**/*.py")
        assert pattern.matches("src/a.py")
        assert pattern.matches("src/x/y/a.py")
        assert not pattern.matches("lib/src/a.py")

    def test_captures_directories_and_segment(self) -> None:
        match = compile_glob("src/**/*.py").match("src/x/y/a.py")
        assert match is not None
        assert match.groups() == ("x/y/", "a")

    def test_empty_capture_when_no_directories(self) -> None:
        match = compile_glob("src/**/*.py").match("src/a.py")
        assert match is not None
        assert match.group(1) == ""


class TestBareDoubleStar:
    """``**`` not at the end and not before ``/`` spans directories then one segment."""

    def test_matches_any_depth(self) -> None:
        pattern = compile_glob("src/**.py")
        assert pattern.matches("src/a.py")
        assert pattern.matches("src/a/b.py")

    def test_captures_as_single_group(self) -> None:
        match = compile_glob("src/**.py").match("src/a/b.py")
        assert match is not None
        assert match.groups() == ("a/b",)

    def test_requires_final_segment(self) -> None:
        assert not compile_glob("src/**.py").matches("src/.py")


class TestSingleStar:
    """``*`` matches exactly one non-empty segment."""

    def test_never_crosses_separator(self) -> None:
        assert not compile_glob("docs/*").matches("/docs/x/y")

    def test_matches_one_segment(self) -> None:
        assert compile_glob("docs/*").matches("/docs/x")

    def test_segment_must_be_non_empty(self) -> None:
        assert not compile_glob("docs/*").matches("/docs/")

    def test_extension_glob_is_rooted(self) -> None:
        pattern = compile_glob("*.js")
        assert pattern.matches("index.js")
        assert not pattern.matches("src/index.js")

    def test_multiple_stars_capture_in_order(self) -> None:
        match = compile_glob("*/*.md").match("doc/fs.md")
        assert match is not None
        assert match.groups() == ("doc", "fs")


# ---------------------------------------------------------------------------
# Literals and anchoring
# ---------------------------------------------------------------------------


class TestLiterals:
    """Literal text matches only itself."""

    def test_dot_is_literal(self) -> None:
        assert compile_glob("a.b").matches("/a.b")
        assert not compile_glob("a.b").matches("/axb")

    def test_dot_inside_wildcarded_segment_is_literal(self) -> None:
        pattern = compile_glob("*.min.js")
        assert pattern.matches("app.min.js")
        assert not pattern.matches("app.minxjs")

    def test_no_wildcard_is_exact_match(self) -> None:
        pattern = compile_glob("/docs/")
        assert pattern.matches("/docs/")
        assert not pattern.matches("/docs/readme.md")

    def test_regex_metacharacters_are_escaped(self) -> None:
        pattern = compile_glob("a+b(c)[d]$")
        assert pattern.matches("a+b(c)[d]$")
        assert not pattern.matches("aab(c)[d]$")

    def test_case_sensitive(self) -> None:
        assert not compile_glob("Docs/*").matches("docs/a")

    def test_no_substring_match(self) -> None:
        assert not compile_glob("lib/fs.js").matches("/deps/lib/fs.js")
        assert not compile_glob("lib/fs.js").matches("/lib/fs.js.map")


class TestTrailingNewline:
    """A trailing newline is part of the path, never a line ending."""

    def test_literal(self) -> None:
        assert not compile_glob("a.b").matches("/a.b\n")

    def test_directory_literal(self) -> None:
        assert not compile_glob("/docs/").matches("docs/\n")

    def test_single_star(self) -> None:
        assert not compile_glob("*.js").matches("index.js\n")

    def test_trailing_double_star(self) -> None:
        assert not compile_glob("docs/**").matches("docs/x\n")


class TestStrictEndAnchors:
    """strict_end_anchors() rewrites ``$`` anchors only."""

    def test_trailing_anchor(self) -> None:
        assert strict_end_anchors(r"^doc/(\w+)\.md$") == r"^doc/(\w+)\.md\Z"

    def test_anchor_inside_group(self) -> None:
        assert strict_end_anchors(r"^(?:[A-Z]+$|x)") == r"^(?:[A-Z]+\Z|x)"

    def test_escaped_dollar_is_literal(self) -> None:
        assert strict_end_anchors(r"^a\$b") == r"^a\$b"

    def test_dollar_in_character_class_is_literal(self) -> None:
        assert strict_end_anchors(r"^[$]x$") == r"^[$]x\Z"
        assert strict_end_anchors(r"^[]$]$") == r"^[]$]\Z"
        assert strict_end_anchors(r"^[^]$]$") == r"^[^]$]\Z"

    def test_idempotent(self) -> None:
        once = strict_end_anchors(r"^a$")
        assert strict_end_anchors(once) == once


class TestGlobToRegex:
    """glob_to_regex() produces anchored regex source."""

    def test_rooted_source(self) -> None:
        assert glob_to_regex("docs/*") == r"^/docs/([^/]+)\Z"

    def test_relative_source(self) -> None:
        assert glob_to_regex("/docs/*", rooted=False) == r"^docs/([^/]+)\Z"

    def test_trailing_double_star_source(self) -> None:
        assert glob_to_regex("docs/**") == r"^/docs/(.+)\Z"


class TestPathPattern:
    """PathPattern value behaviour."""

    def test_compile_returns_path_pattern(self) -> None:
        assert isinstance(compile_glob("*.js"), PathPattern)

    def test_group_count_is_one_per_wildcard(self) -> None:
        assert compile_glob("a/b").group_count == 0
        assert compile_glob("*/**/*.js").group_count == 3

    def test_immutable(self) -> None:
        pattern = compile_glob("*.js")
        with pytest.raises(AttributeError):
            pattern.glob = "*.py"  # type: ignore[misc]

    def test_str_is_glob(self) -> None:
        assert str(compile_glob("docs/**")) == "docs/**"
