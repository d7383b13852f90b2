"""Tests for the Actions event payload reader (pr_triage.github.event).

All tests use real JSON files in temporary directories -- zero mocks.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pr_triage.github.event import EventPayloadError, load_event, parse_event
from pr_triage.models.pull_request import PullRequestContext


def _payload(**overrides) -> dict:
    pull_request = {
        "number": 42,
        "body": "fs: fix stat",
        "base": {"sha": "a" * 40, "ref": "v20.x-staging"},
        "head": {"sha": "b" * 40, "ref": "fix-stat"},
    }
    pull_request.update(overrides)
    return {"action": "opened", "number": 42, "pull_request": pull_request}


@pytest.fixture
def event_file(tmp_path: Path) -> Path:
    path = tmp_path / "event.json"
    path.write_text(json.dumps(_payload()), encoding="utf-8")
    return path


class TestParseEvent:
    """parse_event() extracts the pull request context."""

    def test_full_payload(self) -> None:
        context = parse_event(_payload())
        assert isinstance(context, PullRequestContext)
        assert context.number == 42
        assert context.base_sha == "a" * 40
        assert context.head_sha == "b" * 40
        assert context.body == "fs: fix stat"
        assert context.base_ref == "v20.x-staging"

    def test_empty_body_is_none(self) -> None:
        assert parse_event(_payload(body=None)).body is None

    def test_number_falls_back_to_event(self) -> None:
        payload = _payload()
        del payload["pull_request"]["number"]
        assert parse_event(payload).number == 42

    def test_missing_pull_request(self) -> None:
        with pytest.raises(EventPayloadError, match="no pull_request"):
            parse_event({"action": "push"})

    def test_missing_base_sha(self) -> None:
        with pytest.raises(EventPayloadError, match="base or head commit"):
            parse_event(_payload(base={"ref": "main"}))

    def test_missing_head(self) -> None:
        payload = _payload()
        del payload["pull_request"]["head"]
        with pytest.raises(EventPayloadError, match="base or head commit"):
            parse_event(payload)

    @pytest.mark.parametrize("base", ["main", ["a" * 40], 7])
    def test_base_not_an_object(self, base) -> None:
        with pytest.raises(EventPayloadError, match="base or head commit"):
            parse_event(_payload(base=base))

    def test_head_not_an_object(self) -> None:
        with pytest.raises(EventPayloadError, match="base or head commit"):
            parse_event(_payload(head="fix-stat"))

    def test_invalid_number(self) -> None:
        payload = _payload(number=0)
        payload["number"] = 0
        with pytest.raises(EventPayloadError, match="Invalid pull request"):
            parse_event(payload)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_event({})


class TestLoadEvent:
    """load_event() reads GITHUB_EVENT_PATH."""

    def test_reads_file(self, event_file: Path) -> None:
        assert load_event(event_file).number == 42

    def test_accepts_string_path(self, event_file: Path) -> None:
        assert load_event(str(event_file)).head_sha == "b" * 40

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EventPayloadError, match="Could not read"):
            load_event(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(EventPayloadError, match="not valid JSON"):
            load_event(path)

    def test_non_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(EventPayloadError, match="not a JSON object"):
            load_event(path)
