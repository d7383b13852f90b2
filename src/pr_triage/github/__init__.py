"""GitHub collaborators: REST client and Actions event payload reader."""

from pr_triage.github.client import (
    DEFAULT_API_URL,
    GitHubAPIError,
    GitHubClient,
    RepositoryClient,
)
from pr_triage.github.event import EventPayloadError, load_event, parse_event

__all__ = [
    "DEFAULT_API_URL",
    "EventPayloadError",
    "GitHubAPIError",
    "GitHubClient",
    "RepositoryClient",
    "load_event",
    "parse_event",
]
