"""Triage pipeline: owners comment and labels for one pull request.

Runs the same sequence as the GitHub Action it replaces:

1. List the files changed between the base and head commits.
2. Read the CODEOWNERS manifest and resolve the owners of those files.
3. Post the owner comment.
4. Classify the changed paths, description and base branch into labels.
5. Attach the labels, unless classification produced none.

The engine never performs I/O itself; every outbound call goes through the
:class:`~pr_triage.github.client.RepositoryClient` passed in.
"""

from __future__ import annotations

import logging
from typing import Optional

from pr_triage.comment import render_owner_comment
from pr_triage.config import TriageConfig
from pr_triage.github.client import RepositoryClient
from pr_triage.labels.classifier import LabelClassifier
from pr_triage.models.pull_request import PullRequestContext
from pr_triage.models.result import TriageResult
from pr_triage.owners.codeowners import OwnerResolver

logger = logging.getLogger(__name__)


def run_triage(
    client: RepositoryClient,
    context: PullRequestContext,
    config: Optional[TriageConfig] = None,
    classifier: Optional[LabelClassifier] = None,
    dry_run: bool = False,
) -> TriageResult:
    """Triage one pull request.

    Parameters
    ----------
    client:
        Hosted-repository collaborator.
    context:
        The pull request to triage.
    config:
        Settings; defaults to :meth:`TriageConfig.load`.
    classifier:
        Prebuilt classifier, shared across runs.  Built from *config* when
        omitted.
    dry_run:
        Compute everything but skip the comment and label requests.

    Raises
    ------
    ManifestFormatError
        When the CODEOWNERS manifest contains a malformed line.
    GitHubAPIError
        When a repository call fails.
    """
    config = config or TriageConfig.load()
    classifier = classifier or config.build_classifier()

    changed_files = client.list_changed_files(context.base_sha, context.head_sha)
    paths = [changed.filename for changed in changed_files]

    resolver = OwnerResolver.parse(client.read_text_file(config.codeowners_path))
    owners = resolver.resolve(paths)
    comment = render_owner_comment(owners)
    logger.info(
        "#%d: %d changed path(s), %d owner(s)", context.number, len(paths), len(owners)
    )

    result = TriageResult(
        pr_number=context.number,
        changed_paths=paths,
        owners=owners,
        comment=comment,
    )

    if config.post_comment and not dry_run:
        client.post_comment(context.number, comment)
        result.comment_posted = True

    result.labels = classifier.classify(paths, context.body, context.base_ref)
    if result.labels is None:
        logger.info("#%d: no labels to apply", context.number)
    elif config.apply_labels and not dry_run:
        client.add_labels(context.number, result.labels)
        result.labels_applied = True

    return result
