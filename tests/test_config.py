import pytest

from issue_bot.config import load_settings
from issue_bot.errors import ConfigError

VARS = [
    "DISCORD_TOKEN",
    "GITHUB_PAT",
    "GITHUB_REPO_OWNER",
    "GITHUB_REPO_NAME",
    "GITHUB_PROJECT_NUMBER",
    "GITHUB_OWNER_TYPE",
    "COLLECT_TIMEOUT_SECONDS",
    "REVIEW_TIMEOUT_POLICY",
    "IMAGE_ALLOWED_HOSTS",
    "DONE_KEYWORD",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    s = load_settings()
    assert s.collect_timeout_seconds == 600
    assert s.review_timeout_seconds == 300
    assert s.edit_timeout_seconds == 120
    assert s.done_keyword == "!done"
    assert s.review_timeout_policy == "silent"
    assert s.github_project_number is None
    assert s.image_allowed_hosts == ()


def test_credentials_have_no_defaults():
    assert load_settings().missing_credentials() == [
        "DISCORD_TOKEN",
        "GITHUB_PAT",
        "GITHUB_REPO_OWNER",
        "GITHUB_REPO_NAME",
    ]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "d")
    monkeypatch.setenv("GITHUB_PAT", "g")
    monkeypatch.setenv("GITHUB_REPO_OWNER", " acme ")
    monkeypatch.setenv("GITHUB_REPO_NAME", "app")
    monkeypatch.setenv("GITHUB_PROJECT_NUMBER", "3")
    monkeypatch.setenv("REVIEW_TIMEOUT_POLICY", "Notify")
    monkeypatch.setenv("IMAGE_ALLOWED_HOSTS", "discordapp.com, discordapp.net")
    monkeypatch.setenv("DONE_KEYWORD", "!Finish")
    s = load_settings()
    assert s.missing_credentials() == []
    assert s.github_owner == "acme"
    assert s.github_project_number == 3
    assert s.review_timeout_policy == "notify"
    assert s.image_allowed_hosts == ("discordapp.com", "discordapp.net")
    assert s.done_keyword == "!finish"
    assert s.project_board_url == "https://github.com/orgs/acme/projects/3/views/1"


def test_bad_number_raises(monkeypatch):
    monkeypatch.setenv("COLLECT_TIMEOUT_SECONDS", "ten minutes")
    with pytest.raises(ConfigError):
        load_settings()


def test_unknown_policy_raises(monkeypatch):
    monkeypatch.setenv("REVIEW_TIMEOUT_POLICY", "shout")
    with pytest.raises(ConfigError):
        load_settings()
