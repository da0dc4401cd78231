"""
Minimal GitHub client (REST for issues, GraphQL for projects) using stdlib urllib.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Protocol

from .errors import CommitError, TrackerError
from .logs import log_event
from .models import (
    CreatedIssue,
    GeneratedIssue,
    ProjectHandle,
    ProjectItem,
    StatusField,
    StatusOption,
    StatusValue,
)

logger = logging.getLogger(__name__)

PROJECT_QUERY = """
query ($owner: String!, $projectNumber: Int!) {
  %(owner_type)s(login: $owner) {
    projectV2(number: $projectNumber) {
      id
    }
  }
}
"""

FIELDS_QUERY = """
query ($projectId: ID!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      fields(first: 20) {
        nodes {
          ... on ProjectV2SingleSelectField {
            id
            name
            options {
              id
              name
            }
          }
        }
      }
    }
  }
}
"""

ITEMS_QUERY = """
query ($projectId: ID!, $first: Int!, $fieldName: String!) {
  node(id: $projectId) {
    ... on ProjectV2 {
      items(first: $first) {
        nodes {
          id
          fieldValueByName(name: $fieldName) {
            ... on ProjectV2ItemFieldSingleSelectValue {
              name
              optionId
            }
          }
          content {
            ... on Issue {
              number
              title
              url
              body
              assignees(first: 5) {
                nodes {
                  login
                }
              }
            }
          }
        }
      }
    }
  }
}
"""


class Tracker(Protocol):
    def create_issue(self, title: str, body: str, labels: list[str]) -> CreatedIssue: ...

    def get_project(self, number: int) -> ProjectHandle: ...

    def get_status_field(self, project_id: str, name: str) -> StatusField: ...

    def get_project_items(
        self, project_id: str, limit: int, field_name: str
    ) -> list[ProjectItem]: ...


class GitHubClient:
    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = "https://api.github.com",
        owner_type: str = "organization",
        timeout: float = 15,
    ) -> None:
        self.token = token
        self.owner = owner
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.owner_type = owner_type
        self.timeout = timeout

    # ----- Helpers -----
    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": "IssueBot/1.0",
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
            "Content-Type": "application/json",
        }

    def _post_json(self, path: str, payload: dict[str, Any]) -> Any:
        req = urllib.request.Request(
            self.api_url + path,
            data=json.dumps(payload).encode("utf-8"),
            headers=self._headers(),
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                data = resp.read()
        except urllib.error.HTTPError as e:
            detail = ""
            try:
                detail = json.loads(e.read().decode("utf-8")).get("message", "")
            except (ValueError, AttributeError):
                pass
            raise TrackerError(f"GitHub API {path} returned HTTP {e.code} {detail}".strip()) from e
        except urllib.error.URLError as e:
            raise TrackerError(f"GitHub API {path} unreachable: {e.reason}") from e
        try:
            return json.loads(data.decode("utf-8"))
        except ValueError as e:
            raise TrackerError(f"GitHub API {path} returned invalid JSON") from e

    def graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        data = self._post_json("/graphql", {"query": query, "variables": variables})
        if data.get("errors"):
            messages = "; ".join(e.get("message", "") for e in data["errors"])
            raise TrackerError(f"GitHub GraphQL error: {messages}")
        return data.get("data") or {}

    # ----- Public APIs -----
    def create_issue(self, title: str, body: str, labels: list[str]) -> CreatedIssue:
        path = f"/repos/{urllib.parse.quote(self.owner)}/{urllib.parse.quote(self.repo)}/issues"
        data = self._post_json(path, {"title": title, "body": body, "labels": list(labels)})
        return CreatedIssue(
            number=int(data["number"]), url=data["html_url"], title=data.get("title") or title
        )

    def get_project(self, number: int) -> ProjectHandle:
        query = PROJECT_QUERY % {"owner_type": self.owner_type}
        data = self.graphql(query, {"owner": self.owner, "projectNumber": int(number)})
        project = (data.get(self.owner_type) or {}).get("projectV2")
        if not project or not project.get("id"):
            raise TrackerError(f"Project {number} not found for {self.owner}")
        return ProjectHandle(id=project["id"], number=int(number), owner=self.owner)

    def get_status_field(self, project_id: str, name: str) -> StatusField:
        data = self.graphql(FIELDS_QUERY, {"projectId": project_id})
        nodes = (((data.get("node") or {}).get("fields")) or {}).get("nodes") or []
        for node in nodes:
            if node and node.get("name") == name:
                return StatusField(
                    id=node.get("id", ""),
                    name=name,
                    options=tuple(
                        StatusOption(id=o["id"], name=o["name"]) for o in node.get("options") or []
                    ),
                )
        raise TrackerError(f"Field {name!r} not found on project")

    def get_project_items(
        self, project_id: str, limit: int = 100, field_name: str = "Status"
    ) -> list[ProjectItem]:
        data = self.graphql(
            ITEMS_QUERY, {"projectId": project_id, "first": int(limit), "fieldName": field_name}
        )
        nodes = (((data.get("node") or {}).get("items")) or {}).get("nodes") or []
        return [item for item in (_project_item(n) for n in nodes if n) if item]


def _project_item(node: dict[str, Any]) -> ProjectItem | None:
    content = node.get("content") or {}
    # Draft issues and pull requests come back without issue fields
    if content.get("number") is None:
        return None
    field = node.get("fieldValueByName")
    status = None
    if field and field.get("name"):
        status = StatusValue(name=field["name"], option_id=field.get("optionId"))
    assignees = tuple(
        a["login"] for a in ((content.get("assignees") or {}).get("nodes") or []) if a
    )
    return ProjectItem(
        id=node.get("id", ""),
        number=int(content["number"]),
        title=content.get("title") or "",
        url=content.get("url") or "",
        body=content.get("body") or "",
        assignees=assignees,
        status=status,
    )


def issue_body(body: str, image_urls: list[str]) -> str:
    if not image_urls:
        return body
    return body + "\n\n" + "\n".join(f"![image]({url})" for url in image_urls)


def commit_issues(
    tracker: Tracker, issues: list[GeneratedIssue], image_urls: list[str]
) -> list[CreatedIssue]:
    """Create issues one by one, in order. Stops at the first failure."""
    created: list[CreatedIssue] = []
    log_event(logger, "commit_started", count=len(issues))
    for index, issue in enumerate(issues):
        try:
            result = tracker.create_issue(
                issue.title, issue_body(issue.body, image_urls), list(issue.labels)
            )
        except Exception as e:
            logger.exception("Issue creation failed")
            log_event(
                logger,
                "commit_failed",
                level=logging.ERROR,
                index=index,
                created=len(created),
                total=len(issues),
                error=str(e),
            )
            raise CommitError(
                f"Issue creation failed for {issue.title[:30]!r}: {e}", created, len(issues)
            ) from e
        created.append(result)
        log_event(logger, "issue_created", number=result.number, url=result.url)
    return created
