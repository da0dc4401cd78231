"""
Issue creation session: collect input, generate, optionally review, commit.

States: OPEN -> GENERATING -> (REVIEWING) -> COMMITTED | CANCELED, and FAILED
from any state. Each window (collection, review, edit) is bounded by a fixed
deadline that is not extended by activity.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from . import render
from .config import Settings
from .errors import BotError, CommitError
from .generation import IssueGenerator
from .github import Tracker, commit_issues
from .logs import log_event
from .models import Bundle, CreatedIssue, GeneratedIssue, SessionState
from .transport import ButtonPress, IncomingMessage, Transport

logger = logging.getLogger(__name__)


class Decision(str, enum.Enum):
    CONFIRM = render.CONFIRM
    EDIT = render.EDIT
    CANCEL = render.CANCEL
    TIMEOUT = "timeout"


@dataclass
class SessionResult:
    state: SessionState
    created: list[CreatedIssue] = field(default_factory=list)
    issues: list[GeneratedIssue] = field(default_factory=list)
    error: str | None = None


class IssueSession:
    def __init__(
        self,
        owner_id: int,
        channel: Any,
        transport: Transport,
        generator: IssueGenerator,
        tracker: Tracker,
        settings: Settings,
        preview: bool = False,
    ) -> None:
        self.owner_id = owner_id
        self.channel = channel
        self.transport = transport
        self.generator = generator
        self.tracker = tracker
        self.settings = settings
        self.preview = preview
        self.state = SessionState.OPEN
        self.bundle = Bundle()
        self.generated: list[GeneratedIssue] | None = None
        self.created: list[CreatedIssue] = []

    def _log(self, msg: str, level: int = logging.INFO, **fields: Any) -> None:
        log_event(
            logger, msg, level=level, owner=self.owner_id, state=self.state.value, **fields
        )

    def qualifies(self, msg: IncomingMessage) -> bool:
        return not msg.author_bot and msg.author_id == self.owner_id

    def _owner_press(self, press: ButtonPress) -> bool:
        return press.user_id == self.owner_id

    def _is_done(self, msg: IncomingMessage) -> bool:
        return (msg.content or "").strip().lower() == self.settings.done_keyword

    # ----- Entry point -----
    async def run(self) -> SessionResult:
        t0 = time.time()
        self._log("session_opened", preview=self.preview)
        try:
            await self.collect()
            if self.bundle.is_empty():
                self.state = SessionState.CANCELED
                await self.transport.send(
                    self.channel, "❌ Nothing was collected, issue creation canceled"
                )
            else:
                await self.generate()
                if self.preview:
                    await self.review()
                else:
                    await self.commit()
        except CommitError as e:
            self.state = SessionState.FAILED
            self.created = list(e.created)
            await self._notify_partial(e)
            return self._finish(t0, str(e))
        except Exception as e:
            if not isinstance(e, BotError):
                logger.exception("Session failed")
            self.state = SessionState.FAILED
            self._log("session_failed", level=logging.ERROR, error=str(e))
            await self.transport.send(self.channel, render.failure_text(e))
            return self._finish(t0, str(e))
        return self._finish(t0)

    def _finish(self, t0: float, error: str | None = None) -> SessionResult:
        self._log(
            "session_finished",
            created=len(self.created),
            ms_total=int((time.time() - t0) * 1000),
        )
        return SessionResult(
            state=self.state,
            created=list(self.created),
            issues=list(self.generated or []),
            error=error,
        )

    # ----- OPEN -----
    async def collect(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.collect_timeout_seconds
        reason = "timeout"
        with self.transport.collect_messages(self.channel, self.qualifies) as inbox:
            while True:
                msg = await inbox.next(deadline - loop.time())
                if msg is None:
                    break
                if self._is_done(msg):
                    reason = "done"
                    break
                await self.accept(msg)
        self._log(
            "collection_closed",
            reason=reason,
            texts=len(self.bundle.texts),
            images=len(self.bundle.images),
        )

    async def accept(self, msg: IncomingMessage) -> None:
        """Add one qualifying message to the bundle and acknowledge each part."""
        if not self.qualifies(msg):
            return
        urls = [a.url for a in msg.attachments]
        self.bundle.add_message(msg.content, urls)
        for attachment in msg.attachments:
            await self.transport.send(self.channel, render.added_image(attachment.name))
        if msg.content and msg.content.strip():
            await self.transport.send(self.channel, render.added_text(msg.content))
        self._log("input_added", text=bool(msg.content and msg.content.strip()), images=len(urls))

    # ----- GENERATING -----
    async def generate(self) -> list[GeneratedIssue]:
        self.state = SessionState.GENERATING
        self.generated = None
        self.generated = await self.generator.generate(self.bundle, self.channel)
        return self.generated

    # ----- REVIEWING -----
    async def review(self) -> None:
        self.state = SessionState.REVIEWING
        issues = self.generated or []
        message = await self.transport.send(
            self.channel,
            "**Review these issues**",
            cards=render.preview_cards(issues),
            buttons=render.review_buttons(len(issues)),
        )
        while True:
            decision = await self.await_decision(message)
            self._log("review_decision", decision=decision.value)
            if decision is Decision.CONFIRM:
                await self.commit()
                return
            if decision is Decision.CANCEL:
                self.state = SessionState.CANCELED
                await self.transport.send(self.channel, "❌ Issue creation canceled")
                return
            if decision is Decision.TIMEOUT:
                self.state = SessionState.CANCELED
                self._log("review_timeout", policy=self.settings.review_timeout_policy)
                if self.settings.review_timeout_policy == "notify":
                    await self.transport.send(
                        self.channel, "⌛ Review timed out, issue creation canceled"
                    )
                return
            await self.edit(message)

    async def await_decision(self, message: Any) -> Decision:
        """Wait for one owner button press; buttons are removed when the window closes."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.review_timeout_seconds
        try:
            with self.transport.collect_buttons(message, self._owner_press) as presses:
                while True:
                    press = await presses.next(deadline - loop.time())
                    if press is None:
                        return Decision.TIMEOUT
                    try:
                        return Decision(press.custom_id)
                    except ValueError:
                        continue
        finally:
            await self.transport.edit(message, buttons=[])

    async def edit(self, message: Any) -> None:
        await self.transport.send(self.channel, "What changes would you like? (Describe your edits)")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.edit_timeout_seconds
        with self.transport.collect_messages(self.channel, self.qualifies) as inbox:
            reply = await inbox.next(deadline - loop.time())

        if reply is None or not (reply.content or "").strip():
            await self.transport.send(
                self.channel, "⌛ No edit received, keeping the current preview"
            )
            issues = self.generated or []
            await self.transport.edit(message, buttons=render.review_buttons(len(issues)))
            return

        self.bundle.add_edit_request(reply.content.strip())
        self._log("edit_requested", chars=len(reply.content))
        await self.transport.send(self.channel, "🔄 Regenerating issues with your feedback...")
        issues = await self.generate()
        self.state = SessionState.REVIEWING
        await self.transport.edit(
            message,
            content="**Updated Preview**",
            cards=render.preview_cards(issues),
            buttons=render.review_buttons(len(issues)),
        )

    # ----- COMMITTED -----
    async def commit(self) -> list[CreatedIssue]:
        issues = self.generated or []
        self.created = await asyncio.to_thread(
            commit_issues, self.tracker, issues, list(self.bundle.images)
        )
        self.state = SessionState.COMMITTED
        await self.transport.send(
            self.channel,
            "Issues successfully created:",
            cards=[render.created_card(self.created)],
        )
        return self.created

    async def _notify_partial(self, error: CommitError) -> None:
        cards = [render.created_card(error.created)] if error.created else []
        await self.transport.send(
            self.channel,
            render.partial_commit_text(len(error.created), error.total, error.__cause__ or error),
            cards=cards,
        )
