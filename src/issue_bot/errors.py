"""
Error taxonomy shared by the session, generation and tracker layers.
"""

from __future__ import annotations

from typing import Any


class BotError(Exception):
    """Base class for failures that end the current session or command."""


class ConfigError(BotError):
    pass


class TransportError(BotError):
    pass


class CompletionError(BotError):
    pass


class IssueValidationError(CompletionError):
    """The completion output did not match the issue schema.

    `problems` lists every failing path as ``path: message``; the batch is
    rejected as a whole.
    """

    def __init__(self, problems: list[str], raw: str = "") -> None:
        self.problems = list(problems)
        self.raw = raw
        super().__init__("Validation failed: " + ", ".join(self.problems))


class TrackerError(BotError):
    pass


class CommitError(TrackerError):
    """Issue creation stopped part way through a batch.

    Issues in `created` were persisted before the failure and stay in place.
    """

    def __init__(self, message: str, created: list[Any], total: int) -> None:
        self.created = list(created)
        self.total = total
        super().__init__(message)


class ImageFetchError(BotError):
    pass
