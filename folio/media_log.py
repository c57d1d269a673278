"""The media log: short reviews of books, films, games, and records."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Callable, Iterable, Sequence
from contextlib import nullcontext
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from urllib.parse import unquote, urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import Config
from .content.frontmatter import InvalidFrontMatterError, MissingFrontMatterError, parse_front_matter
from .content.loader import LoadOutcome, SkipReason
from .ingest import walk_content
from .markdown import MarkdownTransformer
from .math import MathRenderer
from .output import SectionResult, ensure_directory, write_text
from .remote import FetchError, create_client, get_json
from .staging import copy_referenced_assets
from .templates import PageRenderer, format_date

logger = logging.getLogger(__name__)

CoverResolver = Callable[[Sequence[str], str], Optional[str]]


class CoverImageError(FetchError):
    """Raised when no cover image can be found for a media log entry."""


class MediaType(str, Enum):
    BOOK = "book"
    MOVIE = "movie"
    VIDEOGAME = "videogame"
    MUSIC = "music"


class MediaDate(BaseModel):
    """A single day or an inclusive range of days."""

    model_config = ConfigDict(frozen=True)

    start: dt.date
    end: Optional[dt.date] = None

    @model_validator(mode="after")
    def _check_order(self) -> "MediaDate":
        if self.end is not None and self.end < self.start:
            raise ValueError("date range ends before it starts")
        return self

    @property
    def is_range(self) -> bool:
        return self.end is not None

    def sort_key(self) -> tuple[dt.date, int, dt.date]:
        return (self.start, 1 if self.is_range else 0, self.end or self.start)

    def __str__(self) -> str:
        if self.end is None:
            return format_date(self.start)
        return f"{format_date(self.start)} - {format_date(self.end)}"


class MediaLogMetadata(BaseModel):
    """Front matter of a media log file."""

    model_config = ConfigDict(extra="ignore")

    title: str
    type: MediaType
    rating: float = Field(ge=0, le=5)
    date: MediaDate
    urls: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _reject_review(cls, data: Any) -> Any:
        if isinstance(data, dict) and "review" in data:
            raise ValueError("`review` must be written as the file body, not in front matter")
        return data

    @field_validator("rating")
    def _half_steps(cls, value: float) -> float:
        if (value * 2) != int(value * 2):
            raise ValueError("rating must be a multiple of 0.5")
        return value

    @field_validator("date", mode="before")
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("a date range needs exactly two dates: [start, end]")
            return {"start": value[0], "end": value[1]}
        if isinstance(value, (str, dt.date)):
            return {"start": value}
        return value


class MediaLogEntry(BaseModel):
    """A loaded review with its rendered body and resolved cover image."""

    model_config = ConfigDict(frozen=True)

    slug: str
    metadata: MediaLogMetadata
    review_html: Optional[str] = None
    summary: str = ""
    image_url: Optional[str] = None

    @property
    def title(self) -> str:
        return self.metadata.title

    @property
    def date(self) -> MediaDate:
        return self.metadata.date


def parse_media_log(text: str) -> tuple[MediaLogMetadata, str]:
    return parse_front_matter(text, MediaLogMetadata)


def load_media_log(
    slug: str,
    text: str,
    *,
    transformer: MarkdownTransformer,
    resolve_cover: CoverResolver,
) -> LoadOutcome[MediaLogEntry]:
    try:
        metadata, body = parse_media_log(text)
    except MissingFrontMatterError as exc:
        return LoadOutcome.skip(SkipReason.MISSING_FRONT_MATTER, str(exc))
    except InvalidFrontMatterError as exc:
        return LoadOutcome.skip(SkipReason.INVALID_FRONT_MATTER, str(exc))

    result = transformer.transform(body, front_matter=False)
    entry = MediaLogEntry(
        slug=slug,
        metadata=metadata,
        review_html=result.html if body.strip() else None,
        summary=result.summary.strip(),
        image_url=resolve_cover(metadata.urls, slug),
    )
    return LoadOutcome(entry=entry, assets=result.assets)


def sort_media_log(entries: Iterable[MediaLogEntry]) -> list[MediaLogEntry]:
    return sorted(entries, key=lambda entry: entry.date.sort_key(), reverse=True)


def cached_cover_image(cache_dir: Path, slug: str) -> str | None:
    cache_file = _cover_cache_file(cache_dir, slug)
    if not cache_file.is_file():
        return None
    return cache_file.read_text(encoding="utf-8").strip() or None


def _cover_cache_file(cache_dir: Path, slug: str) -> Path:
    return cache_dir / "media-log" / slug


def resolve_cover_image(
    urls: Sequence[str],
    slug: str,
    *,
    cache_dir: Path,
    client: httpx.Client,
    api_template: str = "https://{lang}.wikipedia.org/w/api.php",
) -> str:
    """Return the cover image URL for ``slug``, consulting the cache first.

    The first Wikipedia link in ``urls`` is resolved and the result stored in
    ``cache_dir/media-log/<slug>``; later builds read it back without any
    network access.
    """
    cached = cached_cover_image(cache_dir, slug)
    if cached:
        return cached

    for url in urls:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if not host.endswith("wikipedia.org"):
            continue
        title = unquote(parts.path.rstrip("/").rsplit("/", 1)[-1])
        if not title:
            continue
        lang = host.split(".")[0] if host.count(".") >= 2 else "en"
        image_url = wikipedia_image(title, client, api_template.format(lang=lang))
        write_text(_cover_cache_file(cache_dir, slug), image_url)
        logger.info("Resolved cover image for %s: %s", slug, image_url)
        return image_url

    raise CoverImageError(f"No cover image found for '{slug}'")


def wikipedia_image(title: str, client: httpx.Client, api_url: str) -> str:
    """Find the lead image of a Wikipedia article."""
    data = get_json(
        client,
        api_url,
        params={"action": "query", "titles": title, "prop": "pageprops", "format": "json"},
    )
    for page in _pages(data):
        page_image = (page.get("pageprops") or {}).get("page_image")
        if not page_image:
            continue
        image_url = _image_file_url(f"File:{page_image}", client, api_url)
        if image_url:
            return image_url

    data = get_json(
        client,
        api_url,
        params={
            "action": "query",
            "titles": title,
            "prop": "pageimages",
            "piprop": "original",
            "format": "json",
        },
    )
    for page in _pages(data):
        source = (page.get("original") or {}).get("source")
        if source:
            return str(source)

    raise CoverImageError(f"Wikipedia article '{title}' has no image")


def _image_file_url(file_title: str, client: httpx.Client, api_url: str) -> str | None:
    data = get_json(
        client,
        api_url,
        params={
            "action": "query",
            "titles": file_title,
            "prop": "imageinfo",
            "iiprop": "url",
            "format": "json",
        },
    )
    for page in _pages(data):
        info = page.get("imageinfo") or []
        if info and info[0].get("url"):
            return str(info[0]["url"])
    return None


def _pages(data: Any) -> list[dict[str, Any]]:
    if not isinstance(data, dict):
        raise FetchError("Unexpected Wikipedia API response")
    pages = (data.get("query") or {}).get("pages") or {}
    return [page for page in pages.values() if isinstance(page, dict)]


def generate_media_log(
    config: Config,
    renderer: PageRenderer,
    *,
    math_renderer: MathRenderer | None = None,
    client: httpx.Client | None = None,
) -> SectionResult:
    """Build the media log index and one page per review."""
    settings = config.media_log
    transformer = MarkdownTransformer(
        f"/{settings.section}",
        math_renderer=math_renderer,
        summary_length=settings.summary_length,
    )

    if client is not None or not settings.resolve_covers:
        http_context = nullcontext(client)
    else:
        http_context = create_client()

    with http_context as http:

        def _resolve(urls: Sequence[str], slug: str) -> str | None:
            if http is None:
                return cached_cover_image(config.cache_dir, slug)
            return resolve_cover_image(
                urls,
                slug,
                cache_dir=config.cache_dir,
                client=http,
                api_template=settings.wikipedia_api,
            )

        def _load(slug: str, text: str) -> LoadOutcome[MediaLogEntry]:
            return load_media_log(slug, text, transformer=transformer, resolve_cover=_resolve)

        walk = walk_content(settings.source_dir, _load)

    entries = sort_media_log(walk.entries)
    result = SectionResult(
        section=settings.section,
        entries=len(entries),
        skipped=len(walk.skipped),
        failures=list(walk.failures),
    )

    output_root = config.output_dir
    section_dir = ensure_directory(output_root / settings.section)
    for entry in entries:
        result.pages.append(
            renderer.render_page(
                output_root,
                f"{settings.section}/{entry.slug}/",
                "media_entry.html",
                entry=entry,
                section=settings,
            )
        )
    result.pages.append(
        renderer.render_page(
            output_root,
            f"{settings.section}/",
            "media_index.html",
            entries=entries,
            media_types=list(MediaType),
            section=settings,
        )
    )
    result.assets = copy_referenced_assets(walk.assets, settings.source_dir, section_dir)

    logger.info(
        "Media log: %d entries written, %d skipped, %d failed",
        result.entries,
        result.skipped,
        len(result.failures),
    )
    return result
