from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import ClassVar

import pytest

from trello_discord_notifier.app.notifications.embed_renderer import (
    EVENT_COLORS,
    MAX_FIELD_VALUE_CHARS,
    event_title,
    render_event,
)
from trello_discord_notifier.domain.events import (
    EVENT_TYPES,
    AttachmentAdded,
    AttachmentChanged,
    BoardUpdated,
    CardCreated,
    CardDeleted,
    CardMoved,
    CardUpdated,
    EventKind,
    FieldChange,
    LabelChanged,
    ListArchived,
    ListCreated,
    ListUpdated,
    ValueChange,
)
from trello_discord_notifier.domain.snapshot_models import LabelRef

TS = datetime(2024, 5, 1, 9, 0, 0, tzinfo=UTC)
URGENT = LabelRef(id="lblA", name="urgent")


def _fields(payload) -> dict[str, str]:
    return {field.name: field.value for field in payload.fields}


def test_label_added_renders_none_to_label_names() -> None:
    event = LabelChanged(
        name="Fix bug",
        url="https://trello.example/c/C1",
        old_labels=(),
        new_labels=(URGENT,),
    )

    payload = render_event(event, timestamp=TS)

    assert payload.title == "LABEL CHANGED"
    assert payload.color == EVENT_COLORS[EventKind.LABEL_CHANGED]
    assert payload.description == "**Fix bug**"
    assert payload.url == "https://trello.example/c/C1"
    assert _fields(payload) == {"Labels Changed": "None → urgent"}
    assert payload.timestamp == "2024-05-01T09:00:00Z"


def test_every_event_type_has_a_renderer_and_a_color() -> None:
    assert {cls.kind for cls in EVENT_TYPES} == set(EventKind)
    assert set(EVENT_COLORS) == set(EventKind)


def test_titles_are_upper_case_with_spaces() -> None:
    assert event_title(EventKind.ATTACHMENT_ADDED) == "ATTACHMENT ADDED"
    assert event_title(EventKind.BOARD_UPDATED) == "BOARD UPDATED"


def test_card_created_full() -> None:
    event = CardCreated(
        name="Write docs",
        url="https://trello.example/c/C2",
        list_name="Todo",
        desc="x" * 2000,
        labels=(URGENT, LabelRef(id="lblB", name="later")),
        cover_image="https://x/cover.png",
    )

    payload = render_event(event, timestamp=TS)
    fields = _fields(payload)

    assert payload.description == "**Write docs**"
    assert fields["List"] == "Todo"
    assert fields["Labels"] == "urgent, later"
    assert fields["Description"] == "x" * 1024
    assert payload.image is not None and payload.image.url == "https://x/cover.png"
    assert all(field.inline for field in payload.fields if field.name in {"List", "Labels"})


def test_card_created_minimal_omits_optional_fields() -> None:
    payload = render_event(CardCreated(name="Bare", url="", list_name="Unknown"), timestamp=TS)

    assert _fields(payload) == {"List": "Unknown"}
    assert payload.url is None
    assert payload.image is None
    assert "image" not in payload.to_embed()


def test_card_updated_name_and_description() -> None:
    event = CardUpdated(
        name="New",
        url="https://trello.example/c/C1",
        name_change=ValueChange("Old", "New"),
        desc_change=ValueChange("a", "b" * 600),
    )

    fields = _fields(render_event(event, timestamp=TS))

    assert fields["Name Changed"] == "Old → New"
    assert fields["Description Changed"] == "b" * 500 + "..."


def test_card_updated_cover_changed_and_removed() -> None:
    changed = render_event(
        CardUpdated(name="C", url="", cover_change=ValueChange(None, "https://x/new.png")),
        timestamp=TS,
    )
    assert _fields(changed) == {"Cover Image Changed": "See image below"}
    assert changed.image is not None and changed.image.url == "https://x/new.png"

    removed = render_event(
        CardUpdated(name="C", url="", cover_change=ValueChange("https://x/old.png", None)),
        timestamp=TS,
    )
    assert _fields(removed) == {"Cover Image Changed": "Cover removed"}
    assert removed.image is None


def test_card_moved_uses_cover_thumbnail() -> None:
    payload = render_event(
        CardMoved(
            name="Fix bug",
            url="https://trello.example/c/C1",
            old_list="Todo",
            new_list="Done",
            cover_image="https://x/c.png",
        ),
        timestamp=TS,
    )

    assert _fields(payload) == {"Moved": "Todo → Done"}
    assert payload.thumbnail is not None and payload.thumbnail.url == "https://x/c.png"
    assert payload.image is None


def test_card_deleted() -> None:
    payload = render_event(CardDeleted(name="Gone"), timestamp=TS)

    assert payload.title == "CARD DELETED"
    assert payload.description == "**Gone**"
    assert payload.fields == []
    assert payload.url is None


def test_attachment_added_image_is_embedded() -> None:
    payload = render_event(
        AttachmentAdded(
            card_name="Fix bug",
            card_url="https://trello.example/c/C1",
            attachment_name="shot.png",
            attachment_url="https://x/shot.png",
            mime_type="image/png",
        ),
        timestamp=TS,
    )

    assert _fields(payload) == {"Attachment Added": "shot.png", "Type": "image/png"}
    assert payload.image is not None and payload.image.url == "https://x/shot.png"


def test_attachment_added_non_image_has_no_image_and_unknown_type() -> None:
    payload = render_event(
        AttachmentAdded(
            card_name="Fix bug",
            card_url="",
            attachment_name="link",
            attachment_url="https://example.com",
            mime_type=None,
        ),
        timestamp=TS,
    )

    assert _fields(payload)["Type"] == "Unknown"
    assert payload.image is None


def test_attachment_renamed() -> None:
    payload = render_event(
        AttachmentChanged(
            card_name="Fix bug",
            card_url="",
            old_name="draft.txt",
            new_name="final.txt",
            attachment_url="https://x/a1",
            mime_type="text/plain",
        ),
        timestamp=TS,
    )

    assert _fields(payload) == {"Attachment Renamed": "draft.txt → final.txt", "Type": "text/plain"}
    assert payload.image is None


def test_list_events() -> None:
    created = render_event(ListCreated(name="Review"), timestamp=TS)
    assert created.description == "**Review**"

    archived = render_event(ListArchived(name="Done"), timestamp=TS)
    assert archived.description == "**Done** was archived"
    assert archived.color == EVENT_COLORS[EventKind.LIST_ARCHIVED]

    updated = render_event(
        ListUpdated(name="Backlog", changes=(FieldChange("name", "Todo", "Backlog"),)),
        timestamp=TS,
    )
    assert _fields(updated) == {"name": "Todo → Backlog"}


def test_board_updated() -> None:
    payload = render_event(
        BoardUpdated(
            board_name="Renamed Board",
            change=FieldChange("description", None, "New goals"),
        ),
        timestamp=TS,
    )

    assert payload.description == "Board: **Renamed Board**"
    assert _fields(payload) == {"description": "None → New goals"}


def test_field_values_are_clipped_to_discord_limits() -> None:
    event = CardMoved(name="x", url="", old_list="a" * 800, new_list="b" * 800)

    value = _fields(render_event(event, timestamp=TS))["Moved"]

    assert len(value) == MAX_FIELD_VALUE_CHARS
    assert value.endswith("...")


def test_empty_field_value_is_replaced() -> None:
    payload = render_event(CardCreated(name="x", url="", list_name=""), timestamp=TS)
    assert _fields(payload)["List"] == "-"


def test_to_embed_shape() -> None:
    embed = render_event(
        CardMoved(name="x", url="https://trello.example/c/1", old_list="A", new_list="B"),
        timestamp=TS,
    ).to_embed()

    assert embed == {
        "title": "CARD MOVED",
        "color": EVENT_COLORS[EventKind.CARD_MOVED],
        "timestamp": "2024-05-01T09:00:00Z",
        "description": "**x**",
        "url": "https://trello.example/c/1",
        "fields": [{"name": "Moved", "value": "A → B", "inline": False}],
    }


def test_unknown_event_type_raises_type_error() -> None:
    @dataclass(frozen=True)
    class Bogus:
        kind: ClassVar[EventKind] = EventKind.CARD_DELETED

    with pytest.raises(TypeError):
        render_event(Bogus(), timestamp=TS)
