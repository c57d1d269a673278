from __future__ import annotations

import datetime as dt
from pathlib import Path

import httpx
import pytest

from folio.config import Config
from folio.content.frontmatter import InvalidFrontMatterError
from folio.content.loader import SkipReason
from folio.markdown import MarkdownTransformer
from folio.media_log import (
    CoverImageError,
    MediaDate,
    MediaType,
    generate_media_log,
    load_media_log,
    parse_media_log,
    resolve_cover_image,
    sort_media_log,
)
from folio.templates import PageRenderer, rating_stars

COVER = "https://upload.wikimedia.org/wikipedia/en/cover.jpg"


def _write(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def _review(title: str = "Dune", date: str = "2024-01-01", rating: float = 4.5, urls: str = "[]") -> str:
    return f"---\ntitle: {title}\ntype: book\nrating: {rating}\ndate: {date}\nurls: {urls}\n---\nGreat read.\n"


def _wikipedia(requests: list[httpx.Request]) -> httpx.Client:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        prop = request.url.params.get("prop")
        if prop == "pageprops":
            return httpx.Response(200, json={"query": {"pages": {"1": {"pageprops": {"page_image": "Cover.jpg"}}}}})
        if prop == "imageinfo":
            return httpx.Response(200, json={"query": {"pages": {"-1": {"imageinfo": [{"url": COVER}]}}}})
        return httpx.Response(404)

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_parse_media_log_accepts_single_dates_and_ranges() -> None:
    meta, body = parse_media_log(_review(date="[2024-01-01, 2024-01-05]", urls='["https://example.org"]'))
    assert meta.type is MediaType.BOOK
    assert meta.date == MediaDate(start=dt.date(2024, 1, 1), end=dt.date(2024, 1, 5))
    assert meta.date.is_range
    assert str(meta.date) == "01 Jan, 2024 - 05 Jan, 2024"
    assert meta.urls == ["https://example.org"]
    assert body.strip() == "Great read."


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: Dune\ntype: book\nrating: 4\ndate: 2024-01-01\nreview: inline\n---\n",
        _review(rating=3.3),
        _review(rating=5.5),
        _review(date="[2024-02-01, 2024-01-01]"),
        "---\ntitle: Dune\ntype: podcast\nrating: 4\ndate: 2024-01-01\n---\n",
    ],
)
def test_invalid_media_log_front_matter(text: str) -> None:
    with pytest.raises(InvalidFrontMatterError):
        parse_media_log(text)


def test_rating_stars() -> None:
    assert rating_stars(4.5) == "★★★★⯨"
    assert rating_stars(3) == "★★★"
    assert rating_stars(0) == ""


def test_sort_puts_newest_first_and_singles_before_ranges() -> None:
    transformer = MarkdownTransformer()

    def entry(slug: str, date: str):
        return load_media_log(slug, _review(date=date), transformer=transformer, resolve_cover=lambda urls, s: None).entry

    entries = [
        entry("single", "2024-01-01"),
        entry("range", "[2024-01-01, 2024-01-05]"),
        entry("later", "2024-02-01"),
    ]
    assert [e.slug for e in sort_media_log(entries)] == ["later", "range", "single"]


def test_load_media_log_skips_missing_front_matter() -> None:
    outcome = load_media_log(
        "notes", "Nothing here", transformer=MarkdownTransformer(), resolve_cover=lambda urls, s: None
    )
    assert outcome.skipped is SkipReason.MISSING_FRONT_MATTER


def test_review_opening_with_a_rule_keeps_its_text() -> None:
    text = "---\ntitle: Dune\ntype: book\nrating: 4\ndate: 2024-01-01\n---\n---\nOpening.\n\n---\n\nClosing.\n"
    outcome = load_media_log("dune", text, transformer=MarkdownTransformer(), resolve_cover=lambda urls, s: None)
    assert "<p>Opening.</p>" in (outcome.entry.review_html or "")
    assert "<p>Closing.</p>" in (outcome.entry.review_html or "")


def test_cover_image_resolved_once_then_cached(tmp_path: Path) -> None:
    requests: list[httpx.Request] = []
    urls = ["https://example.org/dune", "https://es.wikipedia.org/wiki/Cien_a%C3%B1os_de_soledad"]

    with _wikipedia(requests) as client:
        first = resolve_cover_image(urls, "cien-anos", cache_dir=tmp_path, client=client)
        assert first == COVER
        assert len(requests) == 2
        assert requests[0].url.host == "es.wikipedia.org"
        assert requests[0].url.params["titles"] == "Cien_años_de_soledad"
        assert requests[1].url.params["titles"] == "File:Cover.jpg"

        second = resolve_cover_image(urls, "cien-anos", cache_dir=tmp_path, client=client)

    assert second == COVER
    assert len(requests) == 2
    assert (tmp_path / "media-log" / "cien-anos").read_text(encoding="utf-8") == COVER


def test_cover_falls_back_to_original_page_image(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("prop") == "pageimages":
            return httpx.Response(200, json={"query": {"pages": {"7": {"original": {"source": COVER}}}}})
        return httpx.Response(200, json={"query": {"pages": {"7": {}}}})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        url = resolve_cover_image(["https://en.wikipedia.org/wiki/Dune"], "dune", cache_dir=tmp_path, client=client)
    assert url == COVER


def test_no_wikipedia_link_is_an_error(tmp_path: Path) -> None:
    with _wikipedia([]) as client, pytest.raises(CoverImageError):
        resolve_cover_image(["https://example.org"], "dune", cache_dir=tmp_path, client=client)


def test_generate_media_log_with_client(site_config: Config) -> None:
    source = site_config.media_log.source_dir
    _write(source / "dune.md", _review(urls='["https://en.wikipedia.org/wiki/Dune_(novel)"]'))
    _write(source / "nolink.md", _review(title="Mystery"))
    requests: list[httpx.Request] = []

    with _wikipedia(requests) as client:
        result = generate_media_log(site_config, PageRenderer(site_config), client=client)

    assert result.entries == 1
    assert [path.name for path, _ in result.failures] == ["nolink.md"]
    page = (site_config.output_dir / "media-log" / "dune" / "index.html").read_text(encoding="utf-8")
    assert COVER in page
    assert "★★★★⯨" in page
    index = (site_config.output_dir / "media-log" / "index.html").read_text(encoding="utf-8")
    assert "media-log-entry topic-book" in index
    assert 'data-filter="topic-videogame"' in index


def test_generate_media_log_offline_uses_cache_only(site_config: Config) -> None:
    source = site_config.media_log.source_dir
    _write(source / "dune.md", _review(urls='["https://en.wikipedia.org/wiki/Dune_(novel)"]'))
    _write(site_config.cache_dir / "media-log" / "dune", COVER + "\n")
    _write(source / "other.md", _review(title="Other", date="2023-05-05"))

    result = generate_media_log(site_config, PageRenderer(site_config))

    assert result.entries == 2
    assert result.failures == []
    index = (site_config.output_dir / "media-log" / "index.html").read_text(encoding="utf-8")
    assert COVER in index
    assert index.index("/media-log/dune/") < index.index("/media-log/other/")
