from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _none_to_empty_str(value: Any) -> Any:
    return "" if value is None else value


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


# Trello sends `null` for unset text and occasionally for collections.
OptionalText = Annotated[str, BeforeValidator(_none_to_empty_str)]


class _TrelloModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BoardLabel(_TrelloModel):
    id: str
    name: OptionalText = ""
    color: str | None = None


class CardLabel(_TrelloModel):
    id: str
    name: OptionalText = ""


class Attachment(_TrelloModel):
    id: str
    name: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
    url: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")

    @property
    def display_name(self) -> str | None:
        return self.name or self.file_name


class BoardList(_TrelloModel):
    id: str
    name: OptionalText = ""
    closed: bool = False


class Card(_TrelloModel):
    id: str
    name: OptionalText = ""
    desc: OptionalText = ""
    id_list: str | None = Field(default=None, alias="idList")
    labels: Annotated[list[CardLabel], BeforeValidator(_none_to_empty_list)] = Field(
        default_factory=list
    )
    id_attachment_cover: str | None = Field(default=None, alias="idAttachmentCover")
    attachments: Annotated[list[Attachment], BeforeValidator(_none_to_empty_list)] = Field(
        default_factory=list
    )
    url: OptionalText = ""
    closed: bool = False


class Board(_TrelloModel):
    """Subset of the Trello board export (`/b/<id>.json`) used for diffing."""

    id: str | None = None
    name: OptionalText = ""
    desc: OptionalText = ""
    url: OptionalText = ""
    lists: Annotated[list[BoardList], BeforeValidator(_none_to_empty_list)] = Field(
        default_factory=list
    )
    cards: Annotated[list[Card], BeforeValidator(_none_to_empty_list)] = Field(
        default_factory=list
    )
    labels: Annotated[list[BoardLabel], BeforeValidator(_none_to_empty_list)] = Field(
        default_factory=list
    )

    def list_name(self, list_id: str | None) -> str | None:
        if list_id is None:
            return None
        for board_list in self.lists:
            if board_list.id == list_id:
                return board_list.name or None
        return None
