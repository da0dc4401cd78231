"""
Read-only listing of open project items.
"""

from __future__ import annotations

import logging
import time

from .config import Settings
from .errors import ConfigError
from .github import Tracker
from .logs import log_event
from .models import ProjectItem, StatusField

logger = logging.getLogger(__name__)


def _has_status(item: ProjectItem, option_name: str, field: StatusField) -> bool:
    if item.status is None:
        return False
    option = field.option_named(option_name)
    if option is not None and item.status.option_id:
        return item.status.option_id == option.id
    return item.status.name == option_name


def filter_and_sort(
    items: list[ProjectItem],
    field: StatusField,
    done: str = "Done",
    backlog: str = "Backlog",
) -> list[ProjectItem]:
    """Drop done items and move backlog items to the front, keeping input order otherwise."""
    remaining = [item for item in items if not _has_status(item, done, field)]
    return sorted(remaining, key=lambda item: 0 if _has_status(item, backlog, field) else 1)


def filter_assignee(items: list[ProjectItem], assignee: str | None) -> list[ProjectItem]:
    login = (assignee or "").strip().lstrip("@").lower()
    if not login:
        return items
    return [item for item in items if login in (a.lower() for a in item.assignees)]


def list_open_issues(
    tracker: Tracker, settings: Settings, assignee: str | None = None
) -> list[ProjectItem]:
    if settings.github_project_number is None:
        raise ConfigError("GITHUB_PROJECT_NUMBER is not configured")
    t0 = time.time()
    project = tracker.get_project(settings.github_project_number)
    field = tracker.get_status_field(project.id, settings.status_field_name)
    items = tracker.get_project_items(
        project.id, settings.list_page_size, settings.status_field_name
    )
    result = filter_assignee(
        filter_and_sort(items, field, settings.status_done, settings.status_backlog), assignee
    )
    log_event(
        logger,
        "listing_ok",
        project=project.number,
        fetched=len(items),
        listed=len(result),
        assignee=assignee,
        ms=int((time.time() - t0) * 1000),
    )
    return result
