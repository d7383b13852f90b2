"""GitHub REST API collaborator for the triage pipeline.

:class:`RepositoryClient` names the four operations the pipeline needs from
a hosted repository.  :class:`GitHubClient` implements them over the GitHub
REST API with ``urllib.request``:

- ``list_changed_files`` -- ``GET /repos/{repo}/compare/{base}...{head}``
- ``read_text_file``     -- ``GET /repos/{repo}/contents/{path}``
- ``post_comment``       -- ``POST /repos/{repo}/issues/{n}/comments``
- ``add_labels``         -- ``POST /repos/{repo}/issues/{n}/labels``

Failures raise :class:`GitHubAPIError`.  There is no retry logic; a failed
call fails the run.
"""

from __future__ import annotations

import base64
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional, Protocol, Sequence

from pr_triage.models.pull_request import ChangedFile

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
REQUEST_TIMEOUT_SECONDS = 10


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        self.status = status
        super().__init__(message)


class RepositoryClient(Protocol):
    """Operations the pipeline performs against a hosted repository."""

    def list_changed_files(self, base: str, head: str) -> list[ChangedFile]: ...

    def read_text_file(self, path: str) -> str: ...

    def post_comment(self, number: int, body: str) -> None: ...

    def add_labels(self, number: int, labels: Sequence[str]) -> None: ...


class GitHubClient:
    """Thin GitHub REST API client.

    Args:
        token: GitHub token (``GITHUB_TOKEN`` in Actions).
        repo: Repository in ``owner/name`` form.
        api_url: API base URL; override for GitHub Enterprise.
    """

    def __init__(
        self,
        token: str,
        repo: str,
        api_url: str = DEFAULT_API_URL,
    ) -> None:
        if repo.count("/") != 1:
            raise ValueError(f"Repository must be 'owner/name', got {repo!r}.")
        self._token = token
        self._repo = repo
        self._api_url = api_url.rstrip("/")

    @property
    def repo(self) -> str:
        return self._repo

    # ------------------------------------------------------------------
    # RepositoryClient
    # ------------------------------------------------------------------

    def list_changed_files(self, base: str, head: str) -> list[ChangedFile]:
        data = self._request(
            "GET",
            f"/repos/{self._repo}/compare/{_quote(base)}...{_quote(head)}",
        )
        files = [
            ChangedFile(filename=entry["filename"], status=entry.get("status"))
            for entry in data.get("files", [])
        ]
        logger.info("Compare %s...%s: %d changed file(s)", base[:7], head[:7], len(files))
        return files

    def read_text_file(self, path: str) -> str:
        data = self._request(
            "GET",
            f"/repos/{self._repo}/contents/{_quote(path.lstrip('/'), safe='/')}",
        )
        if data.get("encoding") != "base64" or "content" not in data:
            raise GitHubAPIError(f"{path} is not a file with base64 content.")
        return base64.b64decode(data["content"]).decode("utf-8")

    def post_comment(self, number: int, body: str) -> None:
        self._request(
            "POST",
            f"/repos/{self._repo}/issues/{number}/comments",
            {"body": body},
        )
        logger.info("Posted owner comment on #%d", number)

    def add_labels(self, number: int, labels: Sequence[str]) -> None:
        self._request(
            "POST",
            f"/repos/{self._repo}/issues/{number}/labels",
            {"labels": list(labels)},
        )
        logger.info("Added labels to #%d: %s", number, ", ".join(labels))

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        url = f"{self._api_url}{path}"
        headers = self._headers()
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(request, timeout=REQUEST_TIMEOUT_SECONDS) as resp:
                payload = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")[:200]
            raise GitHubAPIError(
                f"GitHub API {method} {path} returned {exc.code}: {detail}",
                status=exc.code,
            ) from exc
        except urllib.error.URLError as exc:
            raise GitHubAPIError(f"GitHub API {method} {path} failed: {exc.reason}") from exc
        except TimeoutError as exc:
            raise GitHubAPIError(
                f"GitHub API {method} {path} timed out after "
                f"{REQUEST_TIMEOUT_SECONDS}s"
            ) from exc

        if not payload:
            return {}
        decoded = json.loads(payload)
        return decoded if isinstance(decoded, dict) else {"items": decoded}


def _quote(value: str, safe: str = "") -> str:
    return urllib.parse.quote(value, safe=safe)
