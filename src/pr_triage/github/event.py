"""Reading the GitHub Actions ``pull_request`` event payload."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from pr_triage.models.pull_request import PullRequestContext

logger = logging.getLogger(__name__)


class EventPayloadError(ValueError):
    """Raised when the event payload does not describe a usable pull request."""


def parse_event(payload: dict) -> PullRequestContext:
    """Extract the pull request context from a decoded event payload.

    Raises
    ------
    EventPayloadError
        When the payload has no pull request or lacks base/head commits.
    """
    pull_request = payload.get("pull_request")
    if not isinstance(pull_request, dict):
        raise EventPayloadError("Event payload has no pull_request object.")

    base = pull_request.get("base")
    head = pull_request.get("head")
    if not isinstance(base, dict) or not isinstance(head, dict):
        raise EventPayloadError("Cannot get base or head commit")
    if not base.get("sha") or not head.get("sha"):
        raise EventPayloadError("Cannot get base or head commit")

    try:
        return PullRequestContext(
            number=pull_request.get("number") or payload.get("number"),
            base_sha=base["sha"],
            head_sha=head["sha"],
            body=pull_request.get("body"),
            base_ref=base.get("ref"),
        )
    except ValidationError as exc:
        raise EventPayloadError(f"Invalid pull request in event payload: {exc}") from exc


def load_event(path: Union[str, Path]) -> PullRequestContext:
    """Read and parse the event payload at *path* (``GITHUB_EVENT_PATH``)."""
    event_path = Path(path)
    try:
        with open(event_path, "r", encoding="utf-8") as fp:
            payload = json.load(fp)
    except json.JSONDecodeError as exc:
        raise EventPayloadError(f"Event payload {event_path} is not valid JSON.") from exc
    except OSError as exc:
        raise EventPayloadError(f"Could not read event payload {event_path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise EventPayloadError(f"Event payload {event_path} is not a JSON object.")

    context = parse_event(payload)
    logger.info(
        "Pull request #%d: %s...%s into %s",
        context.number,
        context.base_sha[:7],
        context.head_sha[:7],
        context.base_ref or "(unknown)",
    )
    return context
