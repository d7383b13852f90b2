"""Pydantic models for the pull request data the engine consumes.

These mirror the fields the GitHub API and the Actions event payload
provide; the engine itself only reads file names and two metadata strings.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangedFile(BaseModel):
    """A file changed between the base and head revisions."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(
        ...,
        min_length=1,
        description="Repository-relative path of the changed file.",
    )
    status: Optional[str] = Field(
        default=None,
        description="Change status reported by GitHub (added, modified, ...).",
    )


class PullRequestContext(BaseModel):
    """The pull request being triaged."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(
        ...,
        ge=1,
        description="Pull request (issue) number.",
    )
    base_sha: str = Field(
        ...,
        min_length=1,
        description="Commit SHA of the base revision.",
    )
    head_sha: str = Field(
        ...,
        min_length=1,
        description="Commit SHA of the head revision.",
    )
    body: Optional[str] = Field(
        default=None,
        description="Pull request description. None when left empty.",
    )
    base_ref: Optional[str] = Field(
        default=None,
        description="Name of the branch the pull request targets.",
    )
