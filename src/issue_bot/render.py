"""
Message rendering: acknowledgements, previews, results and listings.

Everything here is pure and returns plain strings or transport cards.
"""

from __future__ import annotations

from .models import CreatedIssue, GeneratedIssue, ProjectItem
from .transport import Button, Card, CardField

MAX_CONTENT = 2000
STREAM_TAIL = 1950

GREEN = 0x00FF00
ORANGE = 0xFFA500
BLURPLE = 0x7289DA

CONFIRM = "confirm_issues"
EDIT = "edit_issues"
CANCEL = "cancel_issues"


def shorten(s: str, n: int, ellipsis: str = "...") -> str:
    s = s or ""
    return s if len(s) <= n else s[:n] + ellipsis


def fit(text: str) -> str:
    return text if len(text) <= MAX_CONTENT else text[: MAX_CONTENT - 1] + "…"


def failure_text(error: BaseException | str) -> str:
    return fit(f"❌ Error: {error}")


# ----- Collection -----


def start_text(done_keyword: str) -> str:
    return f"**Issue Creation Started**\nSend description/images then type `{done_keyword}`"


def added_text(text: str) -> str:
    return fit(f"✅ Added text: \n{text}")


def added_image(name: str) -> str:
    return fit(f"✅ Added image: {name}")


def skipped_image(reason: str) -> str:
    return fit(f"⚠️ Skipping image: {reason}")


# ----- Generation -----


def _json_block(text: str) -> str:
    return f"```json\n{text[-STREAM_TAIL:]}\n```"


def generating_text(buffer: str) -> str:
    return fit("🔄 Generating content...\n" + _json_block(buffer))


def generated_text(buffer: str) -> str:
    return fit("✅ Generation complete!\n" + _json_block(buffer))


def invalid_text(buffer: str) -> str:
    return fit("❌ Validation failed!\n" + _json_block(buffer))


# ----- Review -----


def preview_cards(issues: list[GeneratedIssue]) -> list[Card]:
    return [
        Card(
            title=shorten(f"Issue #{i + 1}: {issue.title}", 256),
            description=issue.body[:200] + "...",
            fields=(
                CardField("Labels", ", ".join(issue.labels) or "None", inline=True),
                CardField("Length", f"{len(issue.body)} characters", inline=True),
            ),
            color=ORANGE,
        )
        for i, issue in enumerate(issues)
    ]


def review_buttons(count: int) -> list[Button]:
    return [
        Button(f"Create {count} Issues", custom_id=CONFIRM, style="success"),
        Button("✏️ Edit", custom_id=EDIT, style="primary"),
        Button("Cancel", custom_id=CANCEL, style="danger"),
    ]


# ----- Commit -----


def created_card(created: list[CreatedIssue]) -> Card:
    return Card(
        title=f"✅ Created {len(created)} Issues",
        fields=tuple(
            CardField(
                shorten(issue.title, 250),
                f"[View Issue #{issue.number}]({issue.url})",
                inline=True,
            )
            for issue in created[:25]
        ),
        color=GREEN,
    )


def partial_commit_text(created: int, total: int, error: BaseException | str) -> str:
    return fit(f"❌ Error: {error}\nCreated {created} of {total} issues before the failure.")


# ----- Listing -----


def listing_entry(item: ProjectItem) -> CardField:
    status = item.status.name if item.status else "No status"
    assignees = ", ".join(item.assignees) or "Unassigned"
    preview = shorten(item.body, 100) if item.body else "No description"
    return CardField(
        name=shorten(item.title, 50),
        value=(
            f"[#{item.number}]({item.url})\n**Status:** {status}\n"
            f"**Assignee:** {assignees}\n**Description:** {preview}"
        ),
    )


def listing_cards(items: list[ProjectItem], per_card: int) -> list[Card]:
    header = f"📝 Open Issues ({len(items)})"
    if not items:
        return [Card(title=header, description="No open issues.", color=BLURPLE, footer="GitHub Issues")]
    cards: list[Card] = []
    for start in range(0, len(items), per_card):
        page = items[start : start + per_card]
        cards.append(
            Card(
                title=header if start == 0 else None,
                fields=tuple(listing_entry(item) for item in page),
                color=BLURPLE,
                footer="GitHub Issues",
                timestamp=True,
            )
        )
    return cards
