"""Path-based label classification for pull requests.

The :class:`LabelClassifier` reduces the changed paths of a pull request,
its description and its base branch name into a bounded list of labels.

Evaluation order is part of the contract because truncation keeps the
first labels added:

1. For each path, the exclusive table is scanned top to bottom and only
   the first matching rule contributes (its templates are rendered against
   the match).
2. For the same path, every matching inclusive rule contributes.
3. Subsystem names listed before the first ``:`` of the description are
   added when they are on the allow-list.  A missing description skips
   this step.
4. A release-line label is derived from the base branch name.
5. An empty result means "no labeling action" and is returned as None.
6. Otherwise the labels are truncated to ``max_labels``, keeping the
   earliest.

Classifiers hold only immutable tables; every :meth:`classify` call uses
its own :class:`LabelSet`, so one instance can serve concurrent callers.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional, Sequence

from pr_triage.labels.rules import DEFAULT_RULE_TABLES, RuleTables
from pr_triage.matching.glob import SEPARATOR

logger = logging.getLogger(__name__)

# Maximum number of labels attached to one pull request.
MAX_LABELS = 5

# Subsystem names come before this character in the description.
SUBSYSTEM_TERMINATOR = ":"
SUBSYSTEM_SEPARATOR = ","


class LabelSet:
    """Insertion-ordered set of labels owned by one classification call."""

    def __init__(self, labels: Iterable[str] = ()) -> None:
        self._labels: dict[str, None] = {}
        self.update(labels)

    def add(self, label: str) -> None:
        self._labels.setdefault(label, None)

    def update(self, labels: Iterable[str]) -> None:
        for label in labels:
            self.add(label)

    def finalize(self, max_labels: int = MAX_LABELS) -> Optional[list[str]]:
        """Return the first *max_labels* labels, or None when empty."""
        if not self._labels:
            return None
        return list(self._labels)[:max_labels]

    def __contains__(self, label: object) -> bool:
        return label in self._labels

    def __iter__(self) -> Iterator[str]:
        return iter(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def __repr__(self) -> str:
        return f"LabelSet({list(self._labels)!r})"


class LabelClassifier:
    """Derives pull request labels from changed paths and PR metadata.

    Parameters
    ----------
    tables:
        Rule tables to evaluate.  Defaults to the built-in tables.
    max_labels:
        Cap applied once, after all sources have been processed.
    """

    def __init__(
        self,
        tables: RuleTables = DEFAULT_RULE_TABLES,
        max_labels: int = MAX_LABELS,
    ) -> None:
        if max_labels < 1:
            raise ValueError(f"max_labels must be >= 1, got {max_labels}.")
        self._tables = tables
        self._max_labels = max_labels

    @property
    def tables(self) -> RuleTables:
        return self._tables

    @property
    def max_labels(self) -> int:
        return self._max_labels

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(
        self,
        paths: Sequence[str],
        pr_body: Optional[str] = None,
        base_branch: Optional[str] = None,
    ) -> Optional[list[str]]:
        """Classify a pull request.

        Returns
        -------
        list[str] or None
            Up to ``max_labels`` labels in first-added order, or None when
            nothing matched and no labels should be applied at all.
        """
        labels = LabelSet()

        for path in paths:
            labels.update(self.labels_for_path(path))

        if pr_body is not None:
            labels.update(self.subsystem_labels(pr_body))

        if base_branch is not None:
            version = self.branch_label(base_branch)
            if version is not None:
                labels.add(version)

        result = labels.finalize(self._max_labels)
        if result is None:
            logger.info("No labels matched %d changed path(s)", len(paths))
        elif len(labels) > len(result):
            logger.info(
                "Truncated %d labels to %d: dropped %s",
                len(labels),
                len(result),
                ", ".join(list(labels)[len(result):]),
            )
        return result

    def labels_for_path(self, path: str) -> list[str]:
        """Labels contributed by one path: first exclusive match, then
        every inclusive match."""
        relative = _relative_path(path)
        contributed: list[str] = []

        for rule in self._tables.exclusive:
            match = rule.match(relative)
            if match:
                contributed.extend(rule.render(match))
                logger.debug(
                    "%s matched exclusive rule %s", relative, rule.pattern.pattern
                )
                break

        for rule in self._tables.inclusive:
            if rule.match(relative):
                contributed.extend(rule.labels)

        return contributed

    def subsystem_labels(self, pr_body: str) -> list[str]:
        """Allow-listed subsystem names from the description prefix.

        ``"fs, stream: fix the thing"`` yields ``["fs", "stream"]``.
        """
        prefix = pr_body.split(SUBSYSTEM_TERMINATOR, 1)[0]
        candidates = (piece.strip() for piece in prefix.split(SUBSYSTEM_SEPARATOR))
        return [name for name in candidates if name in self._tables.subsystems]

    def branch_label(self, base_branch: str) -> Optional[str]:
        """Release line label (e.g. ``v20.x``) for a base branch, or None."""
        match = self._tables.branch_pattern.match(base_branch)
        if match is None:
            return None
        return match.group(1) or None


def _relative_path(path: str) -> str:
    return path[1:] if path.startswith(SEPARATOR) else path
