"""Snapshot diff: previous persisted state vs. freshly fetched board.

Checks run board → lists → cards → deletions, and the resulting event order is the
delivery order. The function is pure; the only time-dependent value (`lastCheck`)
is supplied by the caller of `build_next_snapshot`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from trello_discord_notifier.adapters.trello.models import Board, Card
from trello_discord_notifier.domain.events import (
    AttachmentAdded,
    AttachmentChanged,
    BoardUpdated,
    CardCreated,
    CardDeleted,
    CardMoved,
    CardUpdated,
    ChangeEvent,
    FieldChange,
    LabelChanged,
    ListArchived,
    ListCreated,
    ListUpdated,
    ValueChange,
)
from trello_discord_notifier.domain.snapshot_models import (
    AttachmentRecord,
    BoardMeta,
    CardRecord,
    LabelRecord,
    LabelRef,
    ListRecord,
    Snapshot,
)
from trello_discord_notifier.domain.time_utils import format_timestamp_utc

UNKNOWN_LIST = "Unknown"


@dataclass(slots=True)
class BoardDiff:
    events: list[ChangeEvent] = field(default_factory=list)
    cards: dict[str, CardRecord] = field(default_factory=dict)
    lists: dict[str, ListRecord] = field(default_factory=dict)


def card_record_from_board(card: Card) -> CardRecord:
    return CardRecord(
        name=card.name,
        desc=card.desc,
        id_list=card.id_list,
        labels=[LabelRef(id=label.id, name=label.name) for label in card.labels],
        id_attachment_cover=card.id_attachment_cover,
        attachments=[
            AttachmentRecord(
                id=attachment.id,
                name=attachment.name,
                file_name=attachment.file_name,
                url=attachment.url,
                mime_type=attachment.mime_type,
            )
            for attachment in card.attachments
        ],
        url=card.url,
        closed=card.closed,
    )


def _resolve_list_name(list_id: str | None, board: Board, previous: Snapshot) -> str:
    name = board.list_name(list_id)
    if name is not None:
        return name
    if list_id is not None:
        known = previous.lists.get(list_id)
        if known is not None and known.name:
            return known.name
    return UNKNOWN_LIST


def _diff_board_meta(previous: Snapshot, board: Board) -> list[ChangeEvent]:
    old = previous.board
    events: list[ChangeEvent] = []
    # No name to compare against on the first run.
    if old.name is not None and old.name != board.name:
        events.append(
            BoardUpdated(
                board_name=board.name,
                change=FieldChange(field="name", old=old.name, new=board.name),
            )
        )
    if (old.desc or "") != board.desc:
        events.append(
            BoardUpdated(
                board_name=board.name,
                change=FieldChange(field="description", old=old.desc, new=board.desc),
            )
        )
    return events


def _diff_lists(previous: Snapshot, board: Board, result: BoardDiff) -> None:
    for board_list in board.lists:
        result.lists[board_list.id] = ListRecord(
            id=board_list.id, name=board_list.name, closed=board_list.closed
        )

        old = previous.lists.get(board_list.id)
        if old is None:
            result.events.append(ListCreated(name=board_list.name))
            continue

        if board_list.closed and not old.closed:
            result.events.append(ListArchived(name=board_list.name))
            continue

        if old.name != board_list.name:
            result.events.append(
                ListUpdated(
                    name=board_list.name,
                    changes=(FieldChange(field="name", old=old.name, new=board_list.name),),
                )
            )


def _diff_existing_card(
    old: CardRecord,
    new: CardRecord,
    *,
    board: Board,
    previous: Snapshot,
) -> list[ChangeEvent]:
    events: list[ChangeEvent] = []
    cover_image = new.cover_image_url()

    name_change = ValueChange(old.name, new.name) if old.name != new.name else None
    desc_change = ValueChange(old.desc, new.desc) if old.desc != new.desc else None

    if old.id_list != new.id_list:
        events.append(
            CardMoved(
                name=new.name,
                url=new.url,
                old_list=_resolve_list_name(old.id_list, board, previous),
                new_list=_resolve_list_name(new.id_list, board, previous),
                cover_image=cover_image,
            )
        )

    if old.sorted_label_ids() != new.sorted_label_ids():
        events.append(
            LabelChanged(
                name=new.name,
                url=new.url,
                old_labels=tuple(old.labels),
                new_labels=tuple(new.labels),
                cover_image=cover_image,
            )
        )

    cover_change = None
    if old.id_attachment_cover != new.id_attachment_cover:
        old_cover = old.cover_image_url()
        if old_cover != cover_image:
            cover_change = ValueChange(old_cover, cover_image)

    old_attachments = {attachment.id: attachment for attachment in old.attachments}
    new_attachments = {attachment.id: attachment for attachment in new.attachments}

    for attachment_id, attachment in new_attachments.items():
        if attachment_id not in old_attachments:
            events.append(
                AttachmentAdded(
                    card_name=new.name,
                    card_url=new.url,
                    attachment_name=attachment.display_name,
                    attachment_url=attachment.url,
                    mime_type=attachment.mime_type,
                )
            )

    # Removed attachments are not reported.
    for attachment_id, old_attachment in old_attachments.items():
        current = new_attachments.get(attachment_id)
        if current is not None and current.name != old_attachment.name:
            events.append(
                AttachmentChanged(
                    card_name=new.name,
                    card_url=new.url,
                    old_name=old_attachment.name,
                    new_name=current.name,
                    attachment_url=current.url,
                    mime_type=current.mime_type,
                )
            )

    updated = CardUpdated(
        name=new.name,
        url=new.url,
        name_change=name_change,
        desc_change=desc_change,
        cover_change=cover_change,
    )
    if updated.has_changes():
        events.append(updated)

    return events


def _diff_cards(previous: Snapshot, board: Board, result: BoardDiff) -> None:
    for card in board.cards:
        record = card_record_from_board(card)
        result.cards[card.id] = record

        old = previous.cards.get(card.id)
        if old is None:
            result.events.append(
                CardCreated(
                    name=record.name,
                    url=record.url,
                    list_name=_resolve_list_name(record.id_list, board, previous),
                    desc=record.desc,
                    labels=tuple(record.labels),
                    cover_image=record.cover_image_url(),
                )
            )
            continue

        result.events.extend(_diff_existing_card(old, record, board=board, previous=previous))


def _diff_deleted_cards(previous: Snapshot, result: BoardDiff) -> None:
    # Archived cards are still part of the export, so only vanished ids count as deleted.
    for card_id, old in previous.cards.items():
        if card_id not in result.cards:
            result.events.append(CardDeleted(name=old.name))


def diff_board(previous: Snapshot, board: Board) -> BoardDiff:
    result = BoardDiff()
    result.events.extend(_diff_board_meta(previous, board))
    _diff_lists(previous, board, result)
    _diff_cards(previous, board, result)
    _diff_deleted_cards(previous, result)
    return result


def build_next_snapshot(board: Board, diff: BoardDiff, *, checked_at: datetime) -> Snapshot:
    return Snapshot(
        cards=diff.cards,
        lists=diff.lists,
        labels={
            label.id: LabelRecord(name=label.name, color=label.color) for label in board.labels
        },
        board=BoardMeta(name=board.name, desc=board.desc, url=board.url),
        last_check=format_timestamp_utc(checked_at),
    )
