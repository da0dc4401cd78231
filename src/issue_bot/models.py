"""
Session data, generated issue schema, and typed tracker records.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

EDIT_REQUEST_PREFIX = "USER EDIT REQUEST: "

Label = Annotated[str, StringConstraints(min_length=2, max_length=20)]


class SessionState(str, enum.Enum):
    OPEN = "open"
    GENERATING = "generating"
    REVIEWING = "reviewing"
    COMMITTED = "committed"
    CANCELED = "canceled"
    FAILED = "failed"


@dataclass
class Bundle:
    """Text fragments and image URLs collected for one session."""

    texts: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def add_message(self, text: str | None, image_urls: list[str] | tuple[str, ...] = ()) -> None:
        self.images.extend(image_urls)
        if text and text.strip():
            self.texts.append(text)

    def add_edit_request(self, text: str) -> None:
        self.texts.append(EDIT_REQUEST_PREFIX + text)

    def is_empty(self) -> bool:
        return not self.texts and not self.images


class GeneratedIssue(BaseModel):
    title: str = Field(min_length=10, description="Technical summary of the issue")
    body: str = Field(
        min_length=100, description="Markdown formatted issue description with sections"
    )
    labels: list[Label] = Field(
        default_factory=list, description="Relevant tags for categorizing the issue"
    )


class IssueBatch(BaseModel):
    issues: list[GeneratedIssue]


@dataclass(frozen=True)
class CreatedIssue:
    number: int
    url: str
    title: str


# ----- Tracker records -----


@dataclass(frozen=True)
class ProjectHandle:
    id: str
    number: int
    owner: str


@dataclass(frozen=True)
class StatusOption:
    id: str
    name: str


@dataclass(frozen=True)
class StatusField:
    id: str
    name: str
    options: tuple[StatusOption, ...] = ()

    def option_named(self, name: str) -> StatusOption | None:
        for opt in self.options:
            if opt.name == name:
                return opt
        return None


@dataclass(frozen=True)
class StatusValue:
    name: str
    option_id: str | None = None


@dataclass(frozen=True)
class ProjectItem:
    id: str
    number: int
    title: str
    url: str
    body: str = ""
    assignees: tuple[str, ...] = ()
    status: StatusValue | None = None
