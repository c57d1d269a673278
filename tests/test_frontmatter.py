from __future__ import annotations

import datetime as dt

import pytest

from folio.content.frontmatter import (
    InvalidFrontMatterError,
    MissingFrontMatterError,
    dump_front_matter,
    parse_metadata,
    split_front_matter,
)
from folio.content.models import ContentMetadata, Language


def test_split_returns_mapping_and_body() -> None:
    data, body = split_front_matter("---\ntitle: Hello\n---\nBody text\n")
    assert data == {"title": "Hello"}
    assert body == "Body text"


def test_byte_order_mark_is_ignored() -> None:
    data, _ = split_front_matter("\ufeff---\ntitle: Hello\n---\n")
    assert data["title"] == "Hello"


def test_missing_opening_delimiter_is_distinct_from_invalid() -> None:
    with pytest.raises(MissingFrontMatterError):
        split_front_matter("# Just markdown\n")
    with pytest.raises(MissingFrontMatterError):
        split_front_matter("")


@pytest.mark.parametrize(
    "text",
    [
        "---\ntitle: Hello\nno closing delimiter\n",
        "---\ntitle: [unclosed\n---\n",
        "---\n- a list\n- not a mapping\n---\n",
    ],
)
def test_malformed_blocks_are_invalid(text: str) -> None:
    with pytest.raises(InvalidFrontMatterError):
        split_front_matter(text)


def test_parse_metadata_validates_required_fields() -> None:
    with pytest.raises(InvalidFrontMatterError) as excinfo:
        parse_metadata("---\ntitle: No date\n---\nBody")
    assert "date" in str(excinfo.value)


def test_parse_metadata_defaults_and_aliases() -> None:
    meta, body = parse_metadata(
        "---\ntitle: '  Hola  '\ndate: 2024-03-01\ntopics: travel\nlang: Spanish\nextra: ignored\n---\n\nCuerpo"
    )
    assert meta.title == "Hola"
    assert meta.date == dt.date(2024, 3, 1)
    assert meta.draft is False
    assert meta.topics == ["travel"]
    assert meta.lang is Language.ES
    assert meta.numbered_headings is None
    assert body.strip() == "Cuerpo"


def test_dump_front_matter_parses_back_to_equal_metadata() -> None:
    meta = ContentMetadata(
        title="Notes: on YAML",
        date=dt.date(2023, 12, 24),
        draft=True,
        topics=["python", "static sites"],
        lang=Language.ES,
        numbered_headings=True,
    )
    parsed, body = parse_metadata(dump_front_matter(meta) + "Body")
    assert parsed == meta
    assert body == "Body"
