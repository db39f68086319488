"""Render change events into Discord embeds.

Rendering is a pure mapping: one event in, one `NotificationPayload` out. Every event
class has exactly one render function in `_RENDERERS`.
"""
from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from trello_discord_notifier.app.notifications.models import (
    EmbedField,
    EmbedImage,
    NotificationPayload,
)
from trello_discord_notifier.domain.events import (
    AttachmentAdded,
    AttachmentChanged,
    BoardUpdated,
    CardCreated,
    CardDeleted,
    CardMoved,
    CardUpdated,
    ChangeEvent,
    EventKind,
    LabelChanged,
    ListArchived,
    ListCreated,
    ListUpdated,
)
from trello_discord_notifier.domain.snapshot_models import LabelRef
from trello_discord_notifier.domain.time_utils import format_timestamp_utc, now_utc

DEFAULT_COLOR = 3447003

EVENT_COLORS: dict[EventKind, int] = {
    EventKind.CARD_CREATED: 3066993,
    EventKind.CARD_UPDATED: 3447003,
    EventKind.CARD_MOVED: 10181046,
    EventKind.CARD_DELETED: 15158332,
    EventKind.ATTACHMENT_ADDED: 7506394,
    EventKind.ATTACHMENT_CHANGED: 16776960,
    EventKind.LIST_CREATED: 3066993,
    EventKind.LIST_UPDATED: 3447003,
    EventKind.LIST_ARCHIVED: 15158332,
    EventKind.LABEL_CHANGED: 16098851,
    EventKind.BOARD_UPDATED: 3447003,
}

# Discord embed limits.
MAX_TITLE_CHARS = 256
MAX_FIELD_NAME_CHARS = 256
MAX_FIELD_VALUE_CHARS = 1024

CREATED_DESCRIPTION_CHARS = 1024
CHANGED_DESCRIPTION_CHARS = 500

ARROW = "→"
ELLIPSIS = "..."
UNKNOWN_MIME = "Unknown"
EMPTY_VALUE = "-"


def _clip(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _field(name: str, value: str, *, inline: bool = False) -> EmbedField:
    return EmbedField(
        name=_clip(name, MAX_FIELD_NAME_CHARS) or EMPTY_VALUE,
        value=_clip(value, MAX_FIELD_VALUE_CHARS) or EMPTY_VALUE,
        inline=inline,
    )


def _bold(name: str) -> str:
    return f"**{name}**"


def _arrow(old: Any, new: Any) -> str:
    return f"{old} {ARROW} {new}"


def _label_names(labels: Iterable[LabelRef]) -> str:
    return ", ".join(label.name for label in labels) or "None"


def _readable(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return "None"
    return json.dumps(value, ensure_ascii=False, default=str)


def _image(url: str | None) -> EmbedImage | None:
    return EmbedImage(url=url) if url else None


def _is_image_mime(mime_type: str | None) -> bool:
    return bool(mime_type) and mime_type.lower().startswith("image/")


def event_title(kind: EventKind) -> str:
    return _clip(kind.value.replace("_", " ").upper(), MAX_TITLE_CHARS)


def _base(event: ChangeEvent, timestamp: str) -> NotificationPayload:
    return NotificationPayload(
        title=event_title(event.kind),
        color=EVENT_COLORS.get(event.kind, DEFAULT_COLOR),
        timestamp=timestamp,
    )


def _render_card_created(event: CardCreated, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)
    payload.url = event.url or None
    payload.fields.append(_field("List", event.list_name, inline=True))
    if event.labels:
        payload.fields.append(_field("Labels", _label_names(event.labels), inline=True))
    if event.desc:
        payload.fields.append(_field("Description", event.desc[:CREATED_DESCRIPTION_CHARS]))
    payload.image = _image(event.cover_image)


def _render_card_updated(event: CardUpdated, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)
    payload.url = event.url or None
    if event.name_change is not None:
        payload.fields.append(
            _field("Name Changed", _arrow(event.name_change.old, event.name_change.new))
        )
    if event.desc_change is not None:
        new_desc = event.desc_change.new or ""
        payload.fields.append(
            _field("Description Changed", new_desc[:CHANGED_DESCRIPTION_CHARS] + ELLIPSIS)
        )
    if event.cover_change is not None:
        new_cover = event.cover_change.new
        if new_cover:
            payload.fields.append(_field("Cover Image Changed", "See image below"))
            payload.image = _image(new_cover)
        else:
            payload.fields.append(_field("Cover Image Changed", "Cover removed"))


def _render_card_moved(event: CardMoved, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)
    payload.url = event.url or None
    payload.fields.append(_field("Moved", _arrow(event.old_list, event.new_list)))
    payload.thumbnail = _image(event.cover_image)


def _render_card_deleted(event: CardDeleted, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)


def _render_label_changed(event: LabelChanged, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)
    payload.url = event.url or None
    payload.fields.append(
        _field(
            "Labels Changed",
            _arrow(_label_names(event.old_labels), _label_names(event.new_labels)),
        )
    )
    payload.thumbnail = _image(event.cover_image)


def _render_attachment_added(event: AttachmentAdded, payload: NotificationPayload) -> None:
    payload.description = _bold(event.card_name)
    payload.url = event.card_url or None
    payload.fields.append(
        _field("Attachment Added", event.attachment_name or EMPTY_VALUE, inline=True)
    )
    payload.fields.append(_field("Type", event.mime_type or UNKNOWN_MIME, inline=True))
    if _is_image_mime(event.mime_type):
        payload.image = _image(event.attachment_url)


def _render_attachment_changed(event: AttachmentChanged, payload: NotificationPayload) -> None:
    payload.description = _bold(event.card_name)
    payload.url = event.card_url or None
    payload.fields.append(_field("Attachment Renamed", _arrow(event.old_name, event.new_name)))
    payload.fields.append(_field("Type", event.mime_type or UNKNOWN_MIME, inline=True))
    if _is_image_mime(event.mime_type):
        payload.image = _image(event.attachment_url)


def _render_list_created(event: ListCreated, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)


def _render_list_updated(event: ListUpdated, payload: NotificationPayload) -> None:
    payload.description = _bold(event.name)
    for change in event.changes:
        payload.fields.append(_field(change.field, _arrow(change.old, change.new)))


def _render_list_archived(event: ListArchived, payload: NotificationPayload) -> None:
    payload.description = f"{_bold(event.name)} was archived"


def _render_board_updated(event: BoardUpdated, payload: NotificationPayload) -> None:
    payload.description = f"Board: {_bold(event.board_name)}"
    change = event.change
    payload.fields.append(
        _field(change.field, _arrow(_readable(change.old), _readable(change.new)))
    )


_RENDERERS: dict[type, Callable[[Any, NotificationPayload], None]] = {
    BoardUpdated: _render_board_updated,
    ListCreated: _render_list_created,
    ListUpdated: _render_list_updated,
    ListArchived: _render_list_archived,
    CardCreated: _render_card_created,
    CardUpdated: _render_card_updated,
    CardMoved: _render_card_moved,
    CardDeleted: _render_card_deleted,
    LabelChanged: _render_label_changed,
    AttachmentAdded: _render_attachment_added,
    AttachmentChanged: _render_attachment_changed,
}


def render_event(event: ChangeEvent, *, timestamp: datetime | None = None) -> NotificationPayload:
    renderer = _RENDERERS.get(type(event))
    if renderer is None:
        raise TypeError(f"No renderer for event type {type(event).__name__}")

    payload = _base(event, format_timestamp_utc(timestamp or now_utc()))
    renderer(event, payload)
    return payload
