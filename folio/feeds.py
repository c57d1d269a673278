"""Syndication feed generation helpers for folio."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from email.utils import format_datetime as format_rfc2822
from html import escape
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from .content.models import ContentEntry

GENERATOR_NAME = "folio"
GENERATOR_URI = "https://pypi.org/project/folio-site/"


@dataclass(slots=True)
class SiteMetadata:
    """Channel-level values shared by the RSS and Atom documents."""

    title: str
    link: str
    description: str
    language: str = "en"
    rss_url: str = ""
    atom_url: str = ""
    author_name: str | None = None
    author_email: str | None = None


@dataclass(slots=True)
class FeedEntry:
    """Normalized feed entry derived from a content entry."""

    title: str
    url: str
    summary: str
    html: str
    published: dt.datetime | None
    topics: list[str] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        return self.url


def zoned_date(value: dt.date, tz: dt.tzinfo | None = None) -> dt.datetime:
    """Return local midnight of ``value`` as an aware datetime.

    The UTC offset is the one in force on that date, not on the day the site is
    built: a ``ZoneInfo`` resolves it from its transition table, and with no
    zone the platform resolves it for that instant through ``astimezone``.
    """
    midnight = dt.datetime.combine(value, dt.time())
    if tz is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=tz)


def resolve_timezone(name: str | None) -> dt.tzinfo | None:
    if not name:
        return None
    return ZoneInfo(name)


def entry_url(base_url: str, section: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/{section.strip('/')}/{slug}/"


def build_feed_entries(
    entries: Iterable[ContentEntry],
    *,
    base_url: str,
    section: str,
    tz: dt.tzinfo | None = None,
    limit: int | None = None,
) -> list[FeedEntry]:
    """Convert ordered content entries into feed entries, keeping their order."""
    collected: list[FeedEntry] = []
    for entry in entries:
        if limit is not None and len(collected) >= limit:
            break
        published = zoned_date(entry.date, tz) if entry.date is not None else None
        collected.append(
            FeedEntry(
                title=entry.title,
                url=entry_url(base_url, section, entry.slug),
                summary=entry.summary.strip(),
                html=entry.html,
                published=published,
                topics=list(entry.metadata.topics),
            )
        )
    return collected


def render_rss(site: SiteMetadata, entries: Sequence[FeedEntry], *, now: dt.datetime | None = None) -> str:
    built = now or dt.datetime.now().astimezone()
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">',
        "  <channel>",
        f"    <title>{escape(site.title)}</title>",
        f"    <link>{escape(site.link)}</link>",
        f"    <description>{escape(site.description)}</description>",
        f"    <language>{escape(site.language)}</language>",
    ]
    if site.author_email:
        contact = site.author_email
        if site.author_name:
            contact = f"{contact} ({site.author_name})"
        parts.append(f"    <webMaster>{escape(contact)}</webMaster>")
    parts.append(f"    <lastBuildDate>{format_rfc2822(built)}</lastBuildDate>")
    parts.append(f"    <generator>{escape(GENERATOR_NAME)}</generator>")
    if site.rss_url:
        parts.append(
            f'    <atom:link href="{escape(site.rss_url)}" rel="self" type="application/rss+xml" />'
        )

    for entry in entries:
        parts.extend(
            [
                "    <item>",
                f"      <title>{escape(entry.title)}</title>",
                f"      <link>{escape(entry.url)}</link>",
                f"      <description>{escape(entry.summary)}</description>",
            ]
        )
        if entry.published is not None:
            parts.append(f"      <pubDate>{format_rfc2822(entry.published)}</pubDate>")
        parts.append(f'      <guid isPermaLink="true">{escape(entry.identifier)}</guid>')
        for topic in entry.topics:
            parts.append(f"      <category>{escape(topic)}</category>")
        parts.append("    </item>")

    parts.extend(["  </channel>", "</rss>"])
    return "\n".join(parts) + "\n"


def render_atom(site: SiteMetadata, entries: Sequence[FeedEntry], *, now: dt.datetime | None = None) -> str:
    updated = now or dt.datetime.now().astimezone()
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<feed xmlns="http://www.w3.org/2005/Atom">',
        f"  <title>{escape(site.title)}</title>",
        f'  <link href="{escape(site.link)}" rel="alternate" />',
    ]
    if site.atom_url:
        parts.append(f'  <link href="{escape(site.atom_url)}" rel="self" />')
    parts.append(f"  <id>{escape(site.link)}</id>")
    # Atom requires an author on the feed when entries carry none.
    parts.append("  <author>")
    parts.append(f"    <name>{escape(site.author_name or site.title)}</name>")
    if site.author_email:
        parts.append(f"    <email>{escape(site.author_email)}</email>")
    parts.append("  </author>")
    if site.description:
        parts.append(f"  <subtitle>{escape(site.description)}</subtitle>")
    parts.append(f"  <updated>{_format_iso(updated)}</updated>")
    parts.append(f'  <generator uri="{escape(GENERATOR_URI)}">{escape(GENERATOR_NAME)}</generator>')

    for entry in entries:
        parts.extend(
            [
                "  <entry>",
                f"    <title>{escape(entry.title)}</title>",
                f'    <link href="{escape(entry.url)}" />',
                f"    <id>{escape(entry.identifier)}</id>",
            ]
        )
        if entry.published is not None:
            parts.append(f"    <updated>{_format_iso(entry.published)}</updated>")
            parts.append(f"    <published>{_format_iso(entry.published)}</published>")
        parts.append(f"    <summary>{escape(entry.summary)}</summary>")
        parts.append(f'    <content type="html">{escape(entry.html)}</content>')
        for topic in entry.topics:
            parts.append(f'    <category term="{escape(topic)}" />')
        parts.append("  </entry>")

    parts.append("</feed>")
    return "\n".join(parts) + "\n"


def _format_iso(value: dt.datetime) -> str:
    normalized = value
    if normalized.tzinfo is None:
        normalized = normalized.replace(tzinfo=dt.timezone.utc)
    return normalized.isoformat(timespec="seconds").replace("+00:00", "Z")
