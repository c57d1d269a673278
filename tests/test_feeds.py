from __future__ import annotations

import datetime as dt
import time
import xml.etree.ElementTree as ET
from zoneinfo import ZoneInfo

import pytest

from folio.blog import sort_entries
from folio.content.loader import load_entry
from folio.feeds import (
    SiteMetadata,
    build_feed_entries,
    entry_url,
    render_atom,
    render_rss,
    zoned_date,
)
from folio.markdown import MarkdownTransformer

MADRID = ZoneInfo("Europe/Madrid")
NOW = dt.datetime(2024, 7, 1, 9, 30, tzinfo=dt.timezone.utc)
ATOM = "{http://www.w3.org/2005/Atom}"

SITE = SiteMetadata(
    title="Example: Blog",
    link="https://example.com/blog",
    description="Posts & notes",
    language="en",
    rss_url="https://example.com/blog/rss.xml",
    atom_url="https://example.com/blog/atom.xml",
    author_name="Ada",
    author_email="ada@example.com",
)


def _entries():
    transformer = MarkdownTransformer("/blog")
    loaded = [
        load_entry(
            slug,
            f"---\ntitle: {title}\ndate: {date}\ntopics: [food]\n---\n{body}\n",
            transformer=transformer,
            include_drafts=False,
        ).entry
        for slug, title, date, body in [
            ("winter", "Fish & Chips", "2024-01-01", "A <em>cold</em> day."),
            ("summer", "Summer", "2024-06-01", "Warm."),
        ]
    ]
    return sort_entries(loaded)


def test_zoned_date_uses_offset_in_force_on_that_date() -> None:
    assert zoned_date(dt.date(2024, 1, 1), MADRID).utcoffset() == dt.timedelta(hours=1)
    assert zoned_date(dt.date(2024, 6, 1), MADRID).utcoffset() == dt.timedelta(hours=2)


def test_zoned_date_without_zone_is_local_midnight() -> None:
    value = zoned_date(dt.date(2024, 6, 1))
    assert value.tzinfo is not None
    assert (value.year, value.month, value.day, value.hour, value.minute) == (2024, 6, 1, 0, 0)


@pytest.fixture
def madrid_local_time(monkeypatch: pytest.MonkeyPatch):
    # POSIX rule for Europe/Madrid, usable without a system zoneinfo database.
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="time.tzset is unavailable on this platform")
def test_zoned_date_without_zone_uses_local_offset_of_that_date(madrid_local_time) -> None:
    assert zoned_date(dt.date(2024, 1, 1)).utcoffset() == dt.timedelta(hours=1)
    assert zoned_date(dt.date(2024, 6, 1)).utcoffset() == dt.timedelta(hours=2)


def test_entry_url_shape() -> None:
    assert entry_url("https://example.com/", "/blog/", "hello") == "https://example.com/blog/hello/"


def test_rss_lists_newest_first_with_historical_offsets() -> None:
    items = build_feed_entries(_entries(), base_url="https://example.com", section="blog", tz=MADRID)
    xml = render_rss(SITE, items, now=NOW)

    assert xml.index("Sat, 01 Jun 2024 00:00:00 +0200") < xml.index("Mon, 01 Jan 2024 00:00:00 +0100")
    assert "<title>Fish &amp; Chips</title>" in xml
    assert '<guid isPermaLink="true">https://example.com/blog/summer/</guid>' in xml
    assert "<webMaster>ada@example.com (Ada)</webMaster>" in xml
    assert "<category>food</category>" in xml

    channel = ET.fromstring(xml).find("channel")
    assert channel is not None
    assert [item.findtext("link") for item in channel.findall("item")] == [
        "https://example.com/blog/summer/",
        "https://example.com/blog/winter/",
    ]
    assert channel.findtext("lastBuildDate") == "Mon, 01 Jul 2024 09:30:00 +0000"


def test_atom_escapes_html_content_and_uses_iso_dates() -> None:
    items = build_feed_entries(_entries(), base_url="https://example.com", section="blog", tz=MADRID)
    xml = render_atom(SITE, items, now=NOW)

    root = ET.fromstring(xml)
    assert root.findtext(f"{ATOM}updated") == "2024-07-01T09:30:00Z"
    assert root.findtext(f"{ATOM}author/{ATOM}name") == "Ada"
    entries = root.findall(f"{ATOM}entry")
    assert [entry.findtext(f"{ATOM}published") for entry in entries] == [
        "2024-06-01T00:00:00+02:00",
        "2024-01-01T00:00:00+01:00",
    ]
    content = entries[1].find(f"{ATOM}content")
    assert content is not None
    assert content.get("type") == "html"
    assert "<em>cold</em>" in (content.text or "")
    assert "&lt;em&gt;cold&lt;/em&gt;" in xml


def test_feed_summary_is_trimmed_and_limit_applies() -> None:
    items = build_feed_entries(_entries(), base_url="https://example.com", section="blog", tz=MADRID, limit=1)
    assert [item.title for item in items] == ["Summer"]
    assert items[0].summary == "Warm."


def test_atom_author_falls_back_to_title() -> None:
    site = SiteMetadata(title="Anonymous", link="https://example.com/blog", description="")
    xml = render_atom(site, [], now=NOW)
    assert "<name>Anonymous</name>" in xml
    assert "<subtitle>" not in xml
