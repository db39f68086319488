from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _SnapshotModel(BaseModel):
    # Field aliases mirror the on-disk camelCase keys so older state files stay readable.
    # Unknown keys (e.g. raw list objects persisted by earlier versions) are dropped.
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LabelRef(_SnapshotModel):
    id: str
    name: str = ""


class AttachmentRecord(_SnapshotModel):
    id: str
    name: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
    url: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")

    @property
    def display_name(self) -> str | None:
        return self.name or self.file_name


class CardRecord(_SnapshotModel):
    name: str = ""
    desc: str = ""
    id_list: str | None = Field(default=None, alias="idList")
    labels: list[LabelRef] = Field(default_factory=list)
    id_attachment_cover: str | None = Field(default=None, alias="idAttachmentCover")
    attachments: list[AttachmentRecord] = Field(default_factory=list)
    url: str = ""
    closed: bool = False

    @field_validator("name", "desc", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("labels", "attachments", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def cover_image_url(self) -> str | None:
        if not self.id_attachment_cover:
            return None
        for attachment in self.attachments:
            if attachment.id == self.id_attachment_cover:
                return attachment.url
        return None

    def sorted_label_ids(self) -> list[str]:
        return sorted(label.id for label in self.labels)


class ListRecord(_SnapshotModel):
    id: str = ""
    name: str = ""
    closed: bool = False


class LabelRecord(_SnapshotModel):
    name: str = ""
    color: str | None = None


class BoardMeta(_SnapshotModel):
    name: str | None = None
    desc: str | None = None
    url: str | None = None


class Snapshot(_SnapshotModel):
    cards: dict[str, CardRecord] = Field(default_factory=dict)
    lists: dict[str, ListRecord] = Field(default_factory=dict)
    labels: dict[str, LabelRecord] = Field(default_factory=dict)
    board: BoardMeta = Field(default_factory=BoardMeta)
    last_check: str | None = Field(default=None, alias="lastCheck")

    def to_json_dict(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)
