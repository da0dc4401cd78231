"""
Discord gateway adapter and slash command handlers.

Commands: /create-issue [preview], /list-issues [assignee], /test.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import discord
from discord import app_commands

from . import render
from .config import Settings
from .errors import TransportError
from .generation import Completion, IssueGenerator
from .github import Tracker
from .listing import list_open_issues
from .logs import log_event
from .models import SessionState
from .session import IssueSession
from .transport import (
    Attachment,
    Button,
    ButtonPress,
    Card,
    IncomingMessage,
    Inbox,
    InboxRegistry,
)

logger = logging.getLogger(__name__)

MAX_EMBEDS = 10

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "success": discord.ButtonStyle.success,
    "danger": discord.ButtonStyle.danger,
    "link": discord.ButtonStyle.link,
}


def to_embed(card: Card) -> discord.Embed:
    embed = discord.Embed(title=card.title, description=card.description, color=card.color)
    for f in card.fields:
        embed.add_field(name=f.name, value=f.value, inline=f.inline)
    if card.footer:
        embed.set_footer(text=card.footer)
    if card.timestamp:
        embed.timestamp = discord.utils.utcnow()
    return embed


def to_view(buttons: Sequence[Button]) -> discord.ui.View:
    view = discord.ui.View(timeout=None)
    for b in buttons:
        if b.url:
            view.add_item(discord.ui.Button(label=b.label, url=b.url, style=discord.ButtonStyle.link))
        else:
            view.add_item(
                discord.ui.Button(
                    label=b.label,
                    custom_id=b.custom_id,
                    style=BUTTON_STYLES.get(b.style, discord.ButtonStyle.secondary),
                )
            )
    return view


def to_incoming(message: discord.Message) -> IncomingMessage:
    return IncomingMessage(
        channel_id=message.channel.id,
        author_id=message.author.id,
        content=message.content or "",
        attachments=tuple(
            Attachment(name=a.filename, url=a.url, content_type=a.content_type)
            for a in message.attachments
        ),
        author_bot=message.author.bot,
    )


class DiscordTransport:
    def __init__(self) -> None:
        self.inboxes = InboxRegistry()

    async def send(
        self,
        channel: Any,
        content: str | None = None,
        *,
        cards: Sequence[Card] = (),
        buttons: Sequence[Button] = (),
    ) -> discord.Message:
        kwargs: dict[str, Any] = {}
        if cards:
            kwargs["embeds"] = [to_embed(c) for c in cards[:MAX_EMBEDS]]
        if buttons:
            kwargs["view"] = to_view(buttons)
        try:
            return await channel.send(content=content, **kwargs)
        except discord.HTTPException as e:
            raise TransportError(f"Failed to send message: {e}") from e

    async def edit(
        self,
        message: discord.Message,
        *,
        content: str | None = None,
        cards: Sequence[Card] | None = None,
        buttons: Sequence[Button] | None = None,
    ) -> None:
        kwargs: dict[str, Any] = {}
        if content is not None:
            kwargs["content"] = content
        if cards is not None:
            kwargs["embeds"] = [to_embed(c) for c in cards[:MAX_EMBEDS]]
        if buttons is not None:
            kwargs["view"] = to_view(buttons) if buttons else None
        if not kwargs:
            return
        try:
            await message.edit(**kwargs)
        except discord.HTTPException as e:
            raise TransportError(f"Failed to edit message: {e}") from e

    def collect_messages(
        self, channel: Any, check: Callable[[IncomingMessage], bool]
    ) -> Inbox[IncomingMessage]:
        return Inbox(check, self.inboxes.messages, key=channel.id)

    def collect_buttons(
        self, message: Any, check: Callable[[ButtonPress], bool]
    ) -> Inbox[ButtonPress]:
        return Inbox(check, self.inboxes.buttons, key=message.id)

    # ----- Gateway events -----
    def on_message(self, message: discord.Message) -> None:
        self.inboxes.dispatch_message(to_incoming(message))

    async def on_component(self, interaction: discord.Interaction) -> None:
        if interaction.message is None:
            return
        press = ButtonPress(
            message_id=interaction.message.id,
            user_id=interaction.user.id,
            custom_id=str((interaction.data or {}).get("custom_id", "")),
        )
        if self.inboxes.dispatch_button(press) and not interaction.response.is_done():
            await interaction.response.defer()


class IssueBot(discord.Client):
    def __init__(
        self,
        settings: Settings,
        tracker: Tracker,
        completion: Completion,
        transport: DiscordTransport | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.message_content = True
        super().__init__(intents=intents)
        self.settings = settings
        self.tracker = tracker
        self.completion = completion
        self.transport = transport or DiscordTransport()
        self.tree = app_commands.CommandTree(self)
        self._register_commands()

    def _register_commands(self) -> None:
        @self.tree.command(name="create-issue", description="Start a new GitHub issue creation flow")
        @app_commands.describe(preview="Show preview before creating")
        async def create_issue(interaction: discord.Interaction, preview: bool = False) -> None:
            await self._guarded(interaction, "create-issue", lambda: self.create_issue(interaction, preview))

        @self.tree.command(name="list-issues", description="List open GitHub issues")
        @app_commands.describe(assignee="Filter by assignee")
        async def list_issues(interaction: discord.Interaction, assignee: str | None = None) -> None:
            await self._guarded(interaction, "list-issues", lambda: self.list_issues(interaction, assignee))

        @self.tree.command(name="test", description="Test bot connectivity")
        async def test(interaction: discord.Interaction) -> None:
            await self._guarded(interaction, "test", lambda: self.test(interaction))

    async def setup_hook(self) -> None:
        await self.tree.sync()

    async def on_ready(self) -> None:
        log_event(logger, "ready", user=str(self.user))

    async def on_message(self, message: discord.Message) -> None:
        self.transport.on_message(message)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is discord.InteractionType.component:
            await self.transport.on_component(interaction)

    async def _guarded(
        self,
        interaction: discord.Interaction,
        name: str,
        handler: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await handler()
        except Exception as e:
            logger.exception("Command handling failed")
            log_event(logger, "command_failed", level=logging.ERROR, command=name, error=str(e))
            text = render.failure_text(e)
            if interaction.response.is_done():
                await interaction.followup.send(text, ephemeral=True)
            else:
                await interaction.response.send_message(text, ephemeral=True)

    # ----- Commands -----
    async def create_issue(self, interaction: discord.Interaction, preview: bool) -> None:
        is_dm = interaction.guild_id is None
        channel = interaction.channel
        if is_dm and channel is None:
            channel = await self.fetch_channel(interaction.channel_id)
        if not is_dm and not isinstance(channel, discord.TextChannel):
            await interaction.response.send_message(
                "❌ This command only works in text channels and DMs!", ephemeral=True
            )
            return

        thread: discord.Thread | None = None
        if not is_dm:
            try:
                thread = await channel.create_thread(
                    name=f"Issue - {interaction.user.name}",
                    auto_archive_duration=self.settings.thread_archive_minutes,
                    type=discord.ChannelType.public_thread,
                )
            except discord.HTTPException as e:
                log_event(logger, "thread_create_failed", level=logging.ERROR, error=str(e))
                await interaction.response.send_message("❌ Failed to create thread!", ephemeral=True)
                return

        target = thread or channel
        start = render.start_text(self.settings.done_keyword)
        if thread is None:
            await interaction.response.send_message(start)
        else:
            await interaction.response.send_message(f"Thread created: {thread.mention}", ephemeral=True)
            await self.transport.send(thread, f"{interaction.user.mention} {start}")

        session = IssueSession(
            owner_id=interaction.user.id,
            channel=target,
            transport=self.transport,
            generator=IssueGenerator(self.transport, self.completion, self.settings),
            tracker=self.tracker,
            settings=self.settings,
            preview=preview,
        )
        result = await session.run()
        if thread is not None and result.state in (SessionState.COMMITTED, SessionState.CANCELED):
            try:
                await thread.edit(archived=True)
            except discord.HTTPException as e:
                log_event(logger, "thread_archive_failed", level=logging.WARNING, error=str(e))

    async def list_issues(self, interaction: discord.Interaction, assignee: str | None) -> None:
        await interaction.response.defer(thinking=True)
        items = await asyncio.to_thread(list_open_issues, self.tracker, self.settings, assignee)
        cards = render.listing_cards(items, self.settings.list_per_card)
        board = to_view([Button("View Project Board", url=self.settings.project_board_url, style="link")])
        for start in range(0, len(cards), MAX_EMBEDS):
            embeds = [to_embed(c) for c in cards[start : start + MAX_EMBEDS]]
            if start == 0:
                await interaction.followup.send(
                    content=f"**Issues in Project** ({len(items)} total)", embeds=embeds, view=board
                )
            else:
                await interaction.followup.send(embeds=embeds)

    async def test(self, interaction: discord.Interaction) -> None:
        await interaction.response.send_message("✅ Bot is operational!")
        ping = int((discord.utils.utcnow() - interaction.created_at).total_seconds() * 1000)
        await interaction.followup.send(f"🏓 Latency: {ping}ms")
