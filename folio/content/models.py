"""Typed representations of folio content entries."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """Language an entry is written in."""

    EN = "en"
    ES = "es"


_LANGUAGE_ALIASES = {
    "en": Language.EN,
    "english": Language.EN,
    "es": Language.ES,
    "spanish": Language.ES,
}


class ContentMetadata(BaseModel):
    """Front-matter metadata for a blog entry."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(description="Display title.")
    date: dt.date = Field(description="Publication date used for ordering and feeds.")
    draft: bool = Field(default=False, description="Hide the entry from production builds.")
    topics: list[str] = Field(default_factory=list, description="Free-form topics.")
    lang: Language = Field(default=Language.EN)
    numbered_headings: Optional[bool] = Field(
        default=None, description="Render section numbers in front of headings."
    )

    @field_validator("title")
    def _normalize_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title cannot be empty")
        return cleaned

    @field_validator("topics", mode="before")
    def _coerce_topics(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("lang", mode="before")
    def _normalize_lang(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LANGUAGE_ALIASES.get(value.strip().lower(), value)
        return value


class ContentEntry(BaseModel):
    """A rendered entry; built once by the loader and never mutated."""

    model_config = ConfigDict(frozen=True)

    slug: str
    metadata: ContentMetadata
    html: str = Field(description="Rendered body HTML.")
    summary: str = Field(default="", description="Plain-text prefix of the body.")
    word_count: int = Field(default=0, ge=0)

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def date(self) -> dt.date:
        return self.metadata.date

    @property
    def is_draft(self) -> bool:
        return self.metadata.draft

    @property
    def reading_minutes(self) -> int:
        return max(1, round(self.word_count / 200))
