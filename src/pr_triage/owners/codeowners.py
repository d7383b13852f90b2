"""CODEOWNERS manifest parsing and owner resolution.

An ownership manifest is plain text with one ``<glob> <owner>`` rule per
line.  Blank lines and lines starting with ``#`` are ignored.  Every other
line must hold exactly two whitespace-separated fields; anything else is a
:class:`ManifestFormatError`, raised while parsing so a bad manifest never
produces a partial rule set.

Owner resolution is a union: every rule whose pattern matches contributes
its owner, in manifest order.  Later rules do not override earlier ones.

Typical usage::

    resolver = OwnerResolver.parse(manifest_text)
    resolver.get_owners("lib/fs.js")              # ["@nodejs/fs", ...]
    resolver.resolve(["lib/fs.js", "doc/a.md"])    # unique owners
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from pr_triage.matching.glob import PathPattern, compile_glob, normalize_path

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"


class ManifestFormatError(ValueError):
    """Raised when a manifest line is not ``<pattern> <owner>``."""

    def __init__(self, line_number: int, line: str) -> None:
        self.line_number = line_number
        self.line = line
        super().__init__(
            f"Malformed CODEOWNERS line {line_number}: {line!r}. "
            f"Expected exactly two fields: '<pattern> <owner>'."
        )


@dataclass(frozen=True)
class OwnershipRule:
    """One parsed manifest line."""

    pattern: PathPattern
    owner: str
    line_number: int = 0

    def matches(self, path: str) -> bool:
        return self.pattern.matches(path)


class OwnerResolver:
    """Answers "who owns this path" from an ordered list of rules.

    Instances are immutable after construction and safe to share between
    concurrent callers.
    """

    def __init__(self, rules: Iterable[OwnershipRule] = ()) -> None:
        self._rules = tuple(rules)

    @classmethod
    def parse(cls, manifest_text: str) -> "OwnerResolver":
        """Parse manifest text into a resolver.

        Raises
        ------
        ManifestFormatError
            On the first line that does not hold exactly two fields.
        """
        rules: list[OwnershipRule] = []
        for line_number, raw in enumerate(manifest_text.splitlines(), start=1):
            line = raw.strip()
            if not line or line.startswith(COMMENT_PREFIX):
                continue

            fields = line.split()
            if len(fields) != 2:
                raise ManifestFormatError(line_number, raw)

            pattern_text, owner = fields
            rules.append(
                OwnershipRule(
                    pattern=compile_glob(pattern_text),
                    owner=owner,
                    line_number=line_number,
                )
            )

        logger.debug("Parsed %d ownership rules", len(rules))
        return cls(rules)

    @property
    def rules(self) -> tuple[OwnershipRule, ...]:
        return self._rules

    def get_owners(self, path: str) -> list[str]:
        """Return the owner of every matching rule, in manifest order.

        Duplicates are kept when several matching rules name the same owner.
        """
        normalized = normalize_path(path)
        owners = [rule.owner for rule in self._rules if rule.matches(normalized)]
        if owners:
            logger.debug("Owners for %s: %s", path, ", ".join(owners))
        return owners

    def resolve(self, paths: Iterable[str]) -> list[str]:
        """Return the unique owners of *paths* in first-seen order."""
        unique: dict[str, None] = {}
        for path in paths:
            for owner in self.get_owners(path):
                unique.setdefault(owner, None)
        return list(unique)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"OwnerResolver(rules={len(self._rules)})"
