"""Outcome of one triage run."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class TriageResult(BaseModel):
    """What the pipeline computed and which outbound calls it made.

    ``labels`` is None when classification produced nothing, in which case
    no label request is sent at all.
    """

    pr_number: int = Field(..., ge=1)
    changed_paths: list[str] = Field(default_factory=list)
    owners: list[str] = Field(
        default_factory=list,
        description="Unique owners of the changed paths, first-seen order.",
    )
    comment: str = Field(default="", description="Rendered owner comment.")
    labels: Optional[list[str]] = Field(
        default=None,
        description="Labels to apply, or None for no labeling action.",
    )
    comment_posted: bool = False
    labels_applied: bool = False
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        """Serialise to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")
