"""Pydantic data models for pull requests and triage results."""

from pr_triage.models.pull_request import ChangedFile, PullRequestContext
from pr_triage.models.result import TriageResult

__all__ = ["ChangedFile", "PullRequestContext", "TriageResult"]
