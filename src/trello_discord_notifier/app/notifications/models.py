from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _EmbedModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class EmbedField(_EmbedModel):
    name: str
    value: str
    inline: bool = False


class EmbedImage(_EmbedModel):
    url: str


class NotificationPayload(_EmbedModel):
    """One Discord embed; the webhook body wraps it as `{"embeds": [payload]}`."""

    title: str
    color: int
    timestamp: str
    description: str | None = None
    url: str | None = None
    fields: list[EmbedField] = Field(default_factory=list)
    image: EmbedImage | None = None
    thumbnail: EmbedImage | None = None

    def to_embed(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
