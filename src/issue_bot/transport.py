"""
Chat transport boundary.

The session and generation code only talk to a `Transport`; the Discord
adapter lives in `bot.py` and tests use an in-memory fake.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Attachment:
    name: str
    url: str
    content_type: str | None = None


@dataclass(frozen=True)
class IncomingMessage:
    channel_id: int
    author_id: int
    content: str = ""
    attachments: tuple[Attachment, ...] = ()
    author_bot: bool = False


@dataclass(frozen=True)
class ButtonPress:
    message_id: int
    user_id: int
    custom_id: str


@dataclass(frozen=True)
class CardField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class Card:
    title: str | None = None
    description: str | None = None
    fields: tuple[CardField, ...] = ()
    color: int | None = None
    footer: str | None = None
    timestamp: bool = False


@dataclass(frozen=True)
class Button:
    label: str
    custom_id: str | None = None
    style: str = "primary"  # primary | success | danger | link
    url: str | None = None


class Inbox(Generic[T]):
    """Queue of items matching `check`, filled while the inbox is open.

    Use as a context manager: the inbox is registered on enter and removed
    on exit, so items arriving between two `next()` calls are not lost.
    """

    def __init__(self, check: Callable[[T], bool], registry: list[Inbox[T]], key: Any = None) -> None:
        self.check = check
        self.key = key
        self._registry = registry
        self._queue: asyncio.Queue[T] = asyncio.Queue()

    def offer(self, item: T) -> bool:
        if not self.check(item):
            return False
        self._queue.put_nowait(item)
        return True

    async def next(self, timeout: float) -> T | None:
        if timeout <= 0:
            return None
        try:
            return await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None

    def __enter__(self) -> Inbox[T]:
        self._registry.append(self)
        return self

    def __exit__(self, *exc: Any) -> None:
        if self in self._registry:
            self._registry.remove(self)


@dataclass
class InboxRegistry:
    messages: list[Inbox[IncomingMessage]] = field(default_factory=list)
    buttons: list[Inbox[ButtonPress]] = field(default_factory=list)

    def dispatch_message(self, msg: IncomingMessage) -> None:
        for inbox in list(self.messages):
            if inbox.key == msg.channel_id:
                inbox.offer(msg)

    def dispatch_button(self, press: ButtonPress) -> bool:
        matched = False
        for inbox in list(self.buttons):
            if inbox.key == press.message_id:
                matched = True
                inbox.offer(press)
        return matched


class Transport(Protocol):
    async def send(
        self,
        channel: Any,
        content: str | None = None,
        *,
        cards: Sequence[Card] = (),
        buttons: Sequence[Button] = (),
    ) -> Any: ...

    async def edit(
        self,
        message: Any,
        *,
        content: str | None = None,
        cards: Sequence[Card] | None = None,
        buttons: Sequence[Button] | None = None,
    ) -> None: ...

    def collect_messages(
        self, channel: Any, check: Callable[[IncomingMessage], bool]
    ) -> Inbox[IncomingMessage]: ...

    def collect_buttons(
        self, message: Any, check: Callable[[ButtonPress], bool]
    ) -> Inbox[ButtonPress]: ...
