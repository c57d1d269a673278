"""Utilities for scaffolding new folio content."""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

from .config import Config
from .content.frontmatter import DELIMITER, dump_front_matter
from .content.models import ContentMetadata

SLUG_PATTERN = re.compile(r"[^a-z0-9-]+")
WHITESPACE_PATTERN = re.compile(r"\s+")


class ScaffoldError(RuntimeError):
    """Raised when scaffolding cannot continue."""


@dataclass(slots=True)
class ScaffoldResult:
    """Details about filesystem writes performed during scaffolding."""

    created: list[Path] = field(default_factory=list)
    updated: list[Path] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def record(self, path: Path, existed: bool) -> None:
        if existed:
            self.updated.append(path)
        else:
            self.created.append(path)


ContentKind = Literal["post", "review"]


def slugify(value: str) -> str:
    """Convert arbitrary text into a filesystem-safe slug."""
    text = value.strip().lower()
    text = WHITESPACE_PATTERN.sub("-", text)
    text = re.sub(r"_+", "-", text)
    text = SLUG_PATTERN.sub("-", text)
    text = re.sub(r"-{2,}", "-", text)
    return text.strip("-")


def normalize_slug(raw: str) -> str:
    slug = slugify(raw)
    if not slug:
        raise ScaffoldError("Unable to derive a valid slug. Provide letters, numbers, or hyphens.")
    return slug


def default_title(slug: str) -> str:
    """Generate a human-friendly title from a slug."""
    words = [word.capitalize() for word in slug.replace("_", " ").replace("-", " ").split()]
    return " ".join(words) or "Untitled"


def scaffold_content(
    config: Config,
    kind: ContentKind,
    slug: str,
    title: str | None = None,
    *,
    force: bool = False,
    today: dt.date | None = None,
) -> ScaffoldResult:
    """Create a new blog post or media log review."""
    slug = normalize_slug(slug)
    title = title.strip() if title else ""
    if not title:
        title = default_title(slug)
    today = today or dt.date.today()

    if kind == "post":
        return scaffold_post(config, slug, title, today=today, force=force)
    if kind == "review":
        return scaffold_review(config, slug, title, today=today, force=force)
    raise ScaffoldError(f"Unsupported content type: {kind}")


def scaffold_post(config: Config, slug: str, title: str, *, today: dt.date, force: bool = False) -> ScaffoldResult:
    path = config.blog.source_dir / f"{slug}.md"
    meta = ContentMetadata(title=title, date=today, draft=True)
    body = "Write the post here. Images placed next to this file can be referenced as `![alt](image.png)`.\n"
    existed = _write_text(path, f"{dump_front_matter(meta)}\n{body}", force=force)

    result = ScaffoldResult()
    result.record(path, existed)
    result.notes.append("The post starts as a draft; remove 'draft: true' to publish it.")
    return result


def scaffold_review(config: Config, slug: str, title: str, *, today: dt.date, force: bool = False) -> ScaffoldResult:
    path = config.media_log.source_dir / f"{slug}.md"
    front = yaml.safe_dump(
        {
            "title": title,
            "type": "book",
            "rating": 3.5,
            "date": today,
            "urls": [],
        },
        sort_keys=False,
        allow_unicode=True,
    )
    body = "Write the review here.\n"
    existed = _write_text(path, f"{DELIMITER}\n{front}{DELIMITER}\n\n{body}", force=force)

    result = ScaffoldResult()
    result.record(path, existed)
    result.notes.append(
        "Set 'type', 'rating', and add a Wikipedia link to 'urls' so a cover image can be found."
    )
    return result


def _write_text(path: Path, content: str, *, force: bool) -> bool:
    existed = path.exists()
    if existed and not force:
        raise ScaffoldError(f"Path already exists: {path}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ScaffoldError(f"Cannot write {path} ({exc.strerror or exc})") from exc
    return existed
