import io
import json
import urllib.error

import pytest
from fakes import FakeTracker, issue

from issue_bot.errors import CommitError, TrackerError
from issue_bot.github import GitHubClient, commit_issues, issue_body
from issue_bot.models import GeneratedIssue, StatusValue


class FakeResponse(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class Recorder:
    def __init__(self, *payloads):
        self.payloads = list(payloads)
        self.requests = []

    def __call__(self, req, timeout):
        self.requests.append(req)
        return FakeResponse(json.dumps(self.payloads.pop(0)).encode("utf-8"))


def _client():
    return GitHubClient("tok", "acme", "app")


def _issues(n):
    return [GeneratedIssue(**issue(title=f"Generated issue number {i}")) for i in range(n)]


def test_commit_stops_at_first_failure():
    tracker = FakeTracker(fail_at=2)
    with pytest.raises(CommitError) as exc:
        commit_issues(tracker, _issues(3), [])
    assert [c.number for c in exc.value.created] == [1]
    assert exc.value.total == 3
    assert len(tracker.calls) == 2
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_commit_appends_images_to_every_body():
    tracker = FakeTracker()
    created = commit_issues(tracker, _issues(2), ["https://cdn/a.png"])
    assert len(created) == 2
    assert all(c["body"].endswith("![image](https://cdn/a.png)") for c in tracker.calls)


def test_issue_body_without_images_is_unchanged():
    assert issue_body("body", []) == "body"


def test_create_issue_posts_json(monkeypatch):
    rec = Recorder({"number": 12, "html_url": "https://github.com/acme/app/issues/12", "title": "T"})
    monkeypatch.setattr("urllib.request.urlopen", rec)
    created = _client().create_issue("T", "B", ["bug"])
    assert created.number == 12
    req = rec.requests[0]
    assert req.full_url == "https://api.github.com/repos/acme/app/issues"
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer tok"
    assert json.loads(req.data) == {"title": "T", "body": "B", "labels": ["bug"]}


def test_http_error_becomes_tracker_error(monkeypatch):
    def boom(req, timeout):
        raise urllib.error.HTTPError(
            req.full_url, 422, "Unprocessable", {}, io.BytesIO(b'{"message": "Validation Failed"}')
        )

    monkeypatch.setattr("urllib.request.urlopen", boom)
    with pytest.raises(TrackerError, match="HTTP 422 Validation Failed"):
        _client().create_issue("T", "B", [])


def test_graphql_errors_raise(monkeypatch):
    monkeypatch.setattr("urllib.request.urlopen", Recorder({"errors": [{"message": "bad token"}]}))
    with pytest.raises(TrackerError, match="bad token"):
        _client().get_project(1)


def test_get_project_and_status_field(monkeypatch):
    rec = Recorder(
        {"data": {"organization": {"projectV2": {"id": "PVT_1"}}}},
        {
            "data": {
                "node": {
                    "fields": {
                        "nodes": [
                            {},
                            {
                                "id": "F1",
                                "name": "Status",
                                "options": [{"id": "o1", "name": "Backlog"}, {"id": "o2", "name": "Done"}],
                            },
                        ]
                    }
                }
            }
        },
    )
    monkeypatch.setattr("urllib.request.urlopen", rec)
    client = _client()
    project = client.get_project(3)
    field = client.get_status_field(project.id, "Status")
    assert project.id == "PVT_1"
    assert [o.name for o in field.options] == ["Backlog", "Done"]
    sent = json.loads(rec.requests[0].data)
    assert sent["variables"] == {"owner": "acme", "projectNumber": 3}
    assert "organization(login: $owner)" in sent["query"]


def test_missing_status_field_raises(monkeypatch):
    monkeypatch.setattr(
        "urllib.request.urlopen", Recorder({"data": {"node": {"fields": {"nodes": [{}]}}}})
    )
    with pytest.raises(TrackerError, match="Status"):
        _client().get_status_field("PVT_1", "Status")


def test_project_items_are_typed(monkeypatch):
    nodes = [
        {
            "id": "I1",
            "fieldValueByName": {"name": "Backlog", "optionId": "o1"},
            "content": {
                "number": 5,
                "title": "Fix login",
                "url": "https://github.com/acme/app/issues/5",
                "body": "b",
                "assignees": {"nodes": [{"login": "mika"}]},
            },
        },
        {"id": "I2", "fieldValueByName": None, "content": {"number": 6, "title": "No status"}},
        {"id": "I3", "fieldValueByName": None, "content": {}},
    ]
    monkeypatch.setattr(
        "urllib.request.urlopen", Recorder({"data": {"node": {"items": {"nodes": nodes}}}})
    )
    items = _client().get_project_items("PVT_1", 100, "Status")
    assert [i.number for i in items] == [5, 6]
    assert items[0].status == StatusValue("Backlog", "o1")
    assert items[0].assignees == ("mika",)
    assert items[1].status is None
