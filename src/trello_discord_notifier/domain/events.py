"""Typed change events produced by the board diff.

Each event is a frozen dataclass carrying only what its notification needs.
`ChangeEvent` is the closed union of all variants.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Union

from trello_discord_notifier.domain.snapshot_models import LabelRef


class EventKind(str, Enum):
    BOARD_UPDATED = "board_updated"
    LIST_CREATED = "list_created"
    LIST_UPDATED = "list_updated"
    LIST_ARCHIVED = "list_archived"
    CARD_CREATED = "card_created"
    CARD_UPDATED = "card_updated"
    CARD_MOVED = "card_moved"
    CARD_DELETED = "card_deleted"
    LABEL_CHANGED = "label_changed"
    ATTACHMENT_ADDED = "attachment_added"
    ATTACHMENT_CHANGED = "attachment_changed"


@dataclass(frozen=True, slots=True)
class ValueChange:
    old: Any
    new: Any


@dataclass(frozen=True, slots=True)
class FieldChange:
    field: str
    old: Any
    new: Any


@dataclass(frozen=True, slots=True)
class BoardUpdated:
    kind: ClassVar[EventKind] = EventKind.BOARD_UPDATED

    board_name: str
    change: FieldChange


@dataclass(frozen=True, slots=True)
class ListCreated:
    kind: ClassVar[EventKind] = EventKind.LIST_CREATED

    name: str


@dataclass(frozen=True, slots=True)
class ListUpdated:
    kind: ClassVar[EventKind] = EventKind.LIST_UPDATED

    name: str
    changes: tuple[FieldChange, ...]


@dataclass(frozen=True, slots=True)
class ListArchived:
    kind: ClassVar[EventKind] = EventKind.LIST_ARCHIVED

    name: str


@dataclass(frozen=True, slots=True)
class CardCreated:
    kind: ClassVar[EventKind] = EventKind.CARD_CREATED

    name: str
    url: str
    list_name: str
    desc: str = ""
    labels: tuple[LabelRef, ...] = ()
    cover_image: str | None = None


@dataclass(frozen=True, slots=True)
class CardUpdated:
    kind: ClassVar[EventKind] = EventKind.CARD_UPDATED

    name: str
    url: str
    name_change: ValueChange | None = None
    desc_change: ValueChange | None = None
    cover_change: ValueChange | None = None

    def has_changes(self) -> bool:
        return any(
            change is not None
            for change in (self.name_change, self.desc_change, self.cover_change)
        )


@dataclass(frozen=True, slots=True)
class CardMoved:
    kind: ClassVar[EventKind] = EventKind.CARD_MOVED

    name: str
    url: str
    old_list: str
    new_list: str
    cover_image: str | None = None


@dataclass(frozen=True, slots=True)
class CardDeleted:
    kind: ClassVar[EventKind] = EventKind.CARD_DELETED

    name: str


@dataclass(frozen=True, slots=True)
class LabelChanged:
    kind: ClassVar[EventKind] = EventKind.LABEL_CHANGED

    name: str
    url: str
    old_labels: tuple[LabelRef, ...] = ()
    new_labels: tuple[LabelRef, ...] = ()
    cover_image: str | None = None


@dataclass(frozen=True, slots=True)
class AttachmentAdded:
    kind: ClassVar[EventKind] = EventKind.ATTACHMENT_ADDED

    card_name: str
    card_url: str
    attachment_name: str | None
    attachment_url: str | None = None
    mime_type: str | None = None


@dataclass(frozen=True, slots=True)
class AttachmentChanged:
    kind: ClassVar[EventKind] = EventKind.ATTACHMENT_CHANGED

    card_name: str
    card_url: str
    old_name: str | None
    new_name: str | None
    attachment_url: str | None = None
    mime_type: str | None = None


ChangeEvent = Union[
    BoardUpdated,
    ListCreated,
    ListUpdated,
    ListArchived,
    CardCreated,
    CardUpdated,
    CardMoved,
    CardDeleted,
    LabelChanged,
    AttachmentAdded,
    AttachmentChanged,
]

EVENT_TYPES: tuple[type, ...] = (
    BoardUpdated,
    ListCreated,
    ListUpdated,
    ListArchived,
    CardCreated,
    CardUpdated,
    CardMoved,
    CardDeleted,
    LabelChanged,
    AttachmentAdded,
    AttachmentChanged,
)
