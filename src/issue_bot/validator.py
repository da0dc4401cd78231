"""
Schema check for completion output.

The completion must be one JSON document of the form ``{"issues": [...]}``.
Either every issue passes or the whole batch is rejected.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from .errors import IssueValidationError
from .logs import log_event
from .models import GeneratedIssue, IssueBatch

logger = logging.getLogger(__name__)


def _path(loc: tuple) -> str:
    return ".".join(str(p) for p in loc) if loc else "$"


def validate_completion(raw: str) -> list[GeneratedIssue]:
    try:
        batch = IssueBatch.model_validate_json(raw or "")
    except ValidationError as e:
        problems = [f"{_path(err['loc'])}: {err['msg']}" for err in e.errors()]
        log_event(logger, "validation_failed", level=logging.WARNING, problems=problems)
        raise IssueValidationError(problems, raw) from None
    return list(batch.issues)


def dump_issues(issues: list[GeneratedIssue]) -> str:
    return json.dumps(
        {"issues": [issue.model_dump() for issue in issues]}, ensure_ascii=False
    )
