"""Generate the blog section: entry pages, index, feeds, and referenced images."""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable

from .config import Config
from .content.loader import LoadOutcome, load_entry
from .content.models import ContentEntry
from .feeds import SiteMetadata, build_feed_entries, render_atom, render_rss, resolve_timezone
from .ingest import walk_content
from .markdown import MarkdownTransformer
from .math import MathRenderer
from .output import SectionResult, ensure_directory, write_text
from .staging import copy_referenced_assets
from .templates import PageRenderer

logger = logging.getLogger(__name__)


def sort_entries(entries: Iterable[ContentEntry]) -> list[ContentEntry]:
    """Newest first; entries sharing a date keep their traversal order."""
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


def blog_transformer(config: Config, math_renderer: MathRenderer | None = None) -> MarkdownTransformer:
    return MarkdownTransformer(
        f"/{config.blog.section}",
        math_renderer=math_renderer,
        summary_length=config.blog.summary_length,
    )


def generate_blog(
    config: Config,
    renderer: PageRenderer,
    transformer: MarkdownTransformer | None = None,
    *,
    now: dt.datetime | None = None,
) -> SectionResult:
    """Build every page of the blog section.

    Files that fail to load are logged and left out. Any failure while writing
    output (pages, feeds, or asset copies) raises ``OutputError``.
    """
    settings = config.blog
    transformer = transformer or blog_transformer(config)
    include_drafts = config.include_drafts

    def _load(slug: str, text: str) -> LoadOutcome[ContentEntry]:
        return load_entry(slug, text, transformer=transformer, include_drafts=include_drafts)

    walk = walk_content(settings.source_dir, _load)
    entries = sort_entries(walk.entries)
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
                "blog_entry.html",
                entry=entry,
                section=settings,
            )
        )
    result.pages.append(
        renderer.render_page(
            output_root,
            f"{settings.section}/",
            "blog_index.html",
            entries=entries,
            section=settings,
        )
    )

    if config.feeds.enabled:
        site = section_metadata(config)
        feed_entries = build_feed_entries(
            entries,
            base_url=config.site.base_url,
            section=settings.section,
            tz=resolve_timezone(config.feeds.timezone),
            limit=config.feeds.limit,
        )
        result.feeds.append(write_text(section_dir / "rss.xml", render_rss(site, feed_entries, now=now)))
        result.feeds.append(write_text(section_dir / "atom.xml", render_atom(site, feed_entries, now=now)))

    result.assets = copy_referenced_assets(walk.assets, settings.source_dir, section_dir)

    logger.info(
        "Blog: %d entries written, %d skipped, %d failed, %d assets copied",
        result.entries,
        result.skipped,
        len(result.failures),
        len(result.assets),
    )
    return result


def section_metadata(config: Config) -> SiteMetadata:
    site = config.site
    section_url = f"{site.base_url}/{config.blog.section}"
    return SiteMetadata(
        title=f"{site.title}: {config.blog.title}",
        link=section_url,
        description=config.blog.description,
        language=site.language,
        rss_url=f"{section_url}/rss.xml",
        atom_url=f"{section_url}/atom.xml",
        author_name=site.author_name,
        author_email=site.author_email,
    )
