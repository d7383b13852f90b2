"""Tests for the triage pipeline (pr_triage.pipeline).

The pipeline talks to the hosted repository only through a
RepositoryClient.  These tests use a small in-memory implementation that
records every outbound call.
"""

from __future__ import annotations

from typing import Optional, Sequence

import pytest

from pr_triage.config import TriageConfig
from pr_triage.github.client import GitHubAPIError
from pr_triage.labels.classifier import LabelClassifier
from pr_triage.labels.rules import LabelRule, RuleTables
from pr_triage.models.pull_request import ChangedFile, PullRequestContext
from pr_triage.models.result import TriageResult
from pr_triage.owners.codeowners import ManifestFormatError
from pr_triage.pipeline import run_triage


MANIFEST = """\
/lib/** @nodejs/core
/lib/fs.js @nodejs/fs
/doc/** @nodejs/documentation
"""


class InMemoryRepository:
    """RepositoryClient backed by dictionaries; records outbound calls."""

    def __init__(
        self,
        changed: Sequence[str],
        files: Optional[dict[str, str]] = None,
    ) -> None:
        self.changed = list(changed)
        self.files = files if files is not None else {".github/CODEOWNERS": MANIFEST}
        self.compared: list[tuple[str, str]] = []
        self.comments: list[tuple[int, str]] = []
        self.label_calls: list[tuple[int, list[str]]] = []

    def list_changed_files(self, base: str, head: str) -> list[ChangedFile]:
        self.compared.append((base, head))
        return [ChangedFile(filename=name, status="modified") for name in self.changed]

    def read_text_file(self, path: str) -> str:
        if path not in self.files:
            raise GitHubAPIError(f"{path} not found", status=404)
        return self.files[path]

    def post_comment(self, number: int, body: str) -> None:
        self.comments.append((number, body))

    def add_labels(self, number: int, labels: Sequence[str]) -> None:
        self.label_calls.append((number, list(labels)))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config(tmp_path) -> TriageConfig:
    return TriageConfig(project_root=str(tmp_path))


@pytest.fixture
def context() -> PullRequestContext:
    return PullRequestContext(
        number=7,
        base_sha="base123",
        head_sha="head456",
        body="fs: fix stat",
        base_ref="v20.x-staging",
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestRunTriage:
    """End-to-end pipeline behaviour."""

    def test_compares_base_and_head(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js"])
        run_triage(repo, context, config=config)
        assert repo.compared == [("base123", "head456")]

    def test_result_fields(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js", "doc/api/fs.md"])
        result = run_triage(repo, context, config=config)
        assert isinstance(result, TriageResult)
        assert result.pr_number == 7
        assert result.changed_paths == ["lib/fs.js", "doc/api/fs.md"]
        assert result.owners == [
            "@nodejs/core",
            "@nodejs/fs",
            "@nodejs/documentation",
        ]
        assert result.labels == ["fs", "needs-ci", "lib / src", "doc", "v20.x"]
        assert result.comment_posted is True
        assert result.labels_applied is True

    def test_posts_comment(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js"])
        result = run_triage(repo, context, config=config)
        assert repo.comments == [(7, result.comment)]
        assert "- @nodejs/fs" in result.comment

    def test_applies_labels(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js"])
        run_triage(repo, context, config=config)
        assert repo.label_calls == [(7, ["fs", "needs-ci", "lib / src", "v20.x"])]

    def test_no_owners_comment(self, config, context) -> None:
        repo = InMemoryRepository(["benchmark/fs/bench.js"])
        result = run_triage(repo, context, config=config)
        assert result.owners == []
        assert "maintainers will review" in repo.comments[0][1]

    def test_no_labels_means_no_label_request(self, config) -> None:
        context = PullRequestContext(number=1, base_sha="a", head_sha="b")
        repo = InMemoryRepository(["nothing/here.txt"])
        result = run_triage(repo, context, config=config)
        assert result.labels is None
        assert result.labels_applied is False
        assert repo.label_calls == []
        assert len(repo.comments) == 1

    def test_dry_run_posts_nothing(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js"])
        result = run_triage(repo, context, config=config, dry_run=True)
        assert repo.comments == []
        assert repo.label_calls == []
        assert result.labels is not None
        assert result.comment_posted is False

    def test_config_disables_comment(self, tmp_path, context) -> None:
        config = TriageConfig(project_root=str(tmp_path), post_comment=False)
        repo = InMemoryRepository(["lib/fs.js"])
        run_triage(repo, context, config=config)
        assert repo.comments == []
        assert len(repo.label_calls) == 1

    def test_config_disables_labels(self, tmp_path, context) -> None:
        config = TriageConfig(project_root=str(tmp_path), apply_labels=False)
        repo = InMemoryRepository(["lib/fs.js"])
        run_triage(repo, context, config=config)
        assert repo.label_calls == []
        assert len(repo.comments) == 1

    def test_custom_codeowners_path(self, tmp_path, context) -> None:
        config = TriageConfig(project_root=str(tmp_path), codeowners_path="CODEOWNERS")
        repo = InMemoryRepository(["a.js"], files={"CODEOWNERS": "*.js @js\n"})
        assert run_triage(repo, context, config=config).owners == ["@js"]

    def test_custom_classifier(self, config, context) -> None:
        classifier = LabelClassifier(
            RuleTables(exclusive=(LabelRule(r"^lib/", ["library"]),), inclusive=()),
            max_labels=1,
        )
        repo = InMemoryRepository(["lib/fs.js"])
        result = run_triage(repo, context, config=config, classifier=classifier)
        assert result.labels == ["library"]

    def test_malformed_manifest_fails_run(self, config, context) -> None:
        repo = InMemoryRepository(
            ["lib/fs.js"], files={".github/CODEOWNERS": "/lib/**\n"}
        )
        with pytest.raises(ManifestFormatError):
            run_triage(repo, context, config=config)
        assert repo.comments == []

    def test_missing_manifest_fails_run(self, config, context) -> None:
        repo = InMemoryRepository(["lib/fs.js"], files={})
        with pytest.raises(GitHubAPIError) as excinfo:
            run_triage(repo, context, config=config)
        assert excinfo.value.status == 404

    def test_result_serialises(self, config, context) -> None:
        data = run_triage(InMemoryRepository(["lib/fs.js"]), context, config=config).to_dict()
        assert data["pr_number"] == 7
        assert isinstance(data["generated_at"], str)
