"""
Process entry point: load configuration, build clients, run the bot.
"""

from __future__ import annotations

import logging
import sys

from dotenv import load_dotenv

from .bot import IssueBot
from .config import load_settings
from .errors import ConfigError
from .github import GitHubClient
from .llm import BedrockCompletion
from .logs import configure_logging, log_event

logger = logging.getLogger("issue_bot")


def main() -> int:
    load_dotenv()
    try:
        settings = load_settings()
    except ConfigError as e:
        configure_logging()
        log_event(logger, "config_error", level=logging.ERROR, error=str(e))
        return 2
    configure_logging(settings.log_level, settings.log_file)

    missing = settings.missing_credentials()
    if missing:
        log_event(logger, "config_error_missing_credentials", level=logging.ERROR, missing=missing)
        return 2

    tracker = GitHubClient(
        settings.github_token,
        settings.github_owner,
        settings.github_repo,
        api_url=settings.github_api_url,
        owner_type=settings.github_owner_type,
    )
    completion = BedrockCompletion(
        settings.llm_model,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
        region=settings.aws_region,
    )
    bot = IssueBot(settings, tracker, completion)
    log_event(logger, "starting", repo=f"{settings.github_owner}/{settings.github_repo}")
    bot.run(settings.discord_token, log_handler=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
