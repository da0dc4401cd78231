"""
Configuration helpers and defaults.

Centralize tunables to avoid magic numbers in code/tests.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigError

REVIEW_TIMEOUT_POLICIES = ("silent", "notify")
OWNER_TYPES = ("organization", "user")


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None and v.strip() != "" else default


def _int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def _choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = (_env(name, default) or default).strip().lower()
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


@dataclass(frozen=True)
class Settings:
    discord_token: str | None
    github_token: str | None
    github_owner: str | None
    github_repo: str | None
    github_project_number: int | None
    github_owner_type: str
    github_api_url: str
    aws_region: str | None
    llm_model: str
    llm_max_tokens: int
    llm_temperature: float
    log_level: str
    log_file: str | None
    collect_timeout_seconds: float
    review_timeout_seconds: float
    edit_timeout_seconds: float
    done_keyword: str
    stream_update_chars: int
    review_timeout_policy: str
    image_max_bytes: int
    image_allowed_hosts: tuple[str, ...]
    status_field_name: str
    status_done: str
    status_backlog: str
    list_page_size: int
    list_per_card: int
    thread_archive_minutes: int

    def missing_credentials(self) -> list[str]:
        required = {
            "DISCORD_TOKEN": self.discord_token,
            "GITHUB_PAT": self.github_token,
            "GITHUB_REPO_OWNER": self.github_owner,
            "GITHUB_REPO_NAME": self.github_repo,
        }
        return [name for name, value in required.items() if not value]

    @property
    def project_board_url(self) -> str:
        kind = "orgs" if self.github_owner_type == "organization" else "users"
        return (
            f"https://github.com/{kind}/{self.github_owner}"
            f"/projects/{self.github_project_number}/views/1"
        )


def load_settings() -> Settings:
    """Load settings from environment. Credentials have no defaults."""

    project_number = _env("GITHUB_PROJECT_NUMBER")
    allowed_hosts = tuple(
        h.strip() for h in ((_env("IMAGE_ALLOWED_HOSTS", "") or "").split(",")) if h.strip()
    )

    return Settings(
        discord_token=_env("DISCORD_TOKEN"),
        github_token=_env("GITHUB_PAT"),
        github_owner=(_env("GITHUB_REPO_OWNER") or "").strip() or None,
        github_repo=(_env("GITHUB_REPO_NAME") or "").strip() or None,
        github_project_number=_int("GITHUB_PROJECT_NUMBER", 0) if project_number else None,
        github_owner_type=_choice("GITHUB_OWNER_TYPE", "organization", OWNER_TYPES),
        github_api_url=(_env("GITHUB_API_URL", "https://api.github.com") or "").rstrip("/"),
        aws_region=_env("AWS_REGION"),
        llm_model=_env("LLM_MODEL", "anthropic.claude-3-5-sonnet-20240620-v1:0")
        or "anthropic.claude-3-5-sonnet-20240620-v1:0",
        llm_max_tokens=_int("LLM_MAX_TOKENS", 4096),
        llm_temperature=_float("LLM_TEMPERATURE", 0.1),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        log_file=_env("LOG_FILE"),
        collect_timeout_seconds=_float("COLLECT_TIMEOUT_SECONDS", 600.0),
        review_timeout_seconds=_float("REVIEW_TIMEOUT_SECONDS", 300.0),
        edit_timeout_seconds=_float("EDIT_TIMEOUT_SECONDS", 120.0),
        done_keyword=(_env("DONE_KEYWORD", "!done") or "!done").strip().lower(),
        stream_update_chars=max(1, _int("STREAM_UPDATE_CHARS", 300)),
        review_timeout_policy=_choice("REVIEW_TIMEOUT_POLICY", "silent", REVIEW_TIMEOUT_POLICIES),
        image_max_bytes=_int("IMAGE_MAX_BYTES", 3_750_000),
        image_allowed_hosts=allowed_hosts,
        status_field_name=_env("STATUS_FIELD_NAME", "Status") or "Status",
        status_done=_env("STATUS_DONE", "Done") or "Done",
        status_backlog=_env("STATUS_BACKLOG", "Backlog") or "Backlog",
        list_page_size=_int("LIST_PAGE_SIZE", 100),
        list_per_card=max(1, _int("LIST_PER_CARD", 4)),
        thread_archive_minutes=_int("THREAD_ARCHIVE_MINUTES", 60),
    )
