"""Turn raw content files into rendered entries or explicit skip decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from ..markdown import MarkdownTransformer
from .frontmatter import InvalidFrontMatterError, MissingFrontMatterError, parse_metadata
from .models import ContentEntry

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT")


class SkipReason(str, Enum):
    """Why a content file produced no entry."""

    MISSING_FRONT_MATTER = "missing_front_matter"
    INVALID_FRONT_MATTER = "invalid_front_matter"
    DRAFT = "draft"


@dataclass(slots=True)
class LoadOutcome(Generic[EntryT]):
    """Either a loaded entry or the reason the file was skipped."""

    entry: EntryT | None = None
    skipped: SkipReason | None = None
    detail: str | None = None
    assets: list[str] = field(default_factory=list)

    @classmethod
    def skip(cls, reason: SkipReason, detail: str | None = None) -> "LoadOutcome[EntryT]":
        return cls(skipped=reason, detail=detail)

    @property
    def loaded(self) -> bool:
        return self.entry is not None


def load_entry(
    slug: str,
    text: str,
    *,
    transformer: MarkdownTransformer,
    include_drafts: bool,
) -> LoadOutcome[ContentEntry]:
    """Parse and render one blog entry.

    Front matter problems and excluded drafts come back as skipped outcomes.
    Rendering failures (for example ``MathRenderError``) propagate.
    """
    try:
        metadata, body = parse_metadata(text)
    except MissingFrontMatterError as exc:
        return LoadOutcome.skip(SkipReason.MISSING_FRONT_MATTER, str(exc))
    except InvalidFrontMatterError as exc:
        return LoadOutcome.skip(SkipReason.INVALID_FRONT_MATTER, str(exc))

    if metadata.draft and not include_drafts:
        return LoadOutcome.skip(SkipReason.DRAFT)

    result = transformer.transform(body, front_matter=False)
    entry = ContentEntry(
        slug=slug,
        metadata=metadata,
        html=result.html,
        summary=result.summary,
        word_count=result.word_count,
    )
    logger.debug("Loaded %s (%d words, %d assets)", slug, result.word_count, len(result.assets))
    return LoadOutcome(entry=entry, assets=result.assets)
