from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest

from folio.config import load_config
from folio.content.frontmatter import parse_metadata
from folio.media_log import parse_media_log
from folio.scaffold import ScaffoldError, default_title, normalize_slug, scaffold_content, slugify

TODAY = dt.date(2024, 6, 1)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Hello World", "hello-world"),
        ("  snake_case__name ", "snake-case-name"),
        ("Ñandú & co!", "and-co"),
        ("---", ""),
    ],
)
def test_slugify(raw: str, expected: str) -> None:
    assert slugify(raw) == expected


def test_normalize_slug_rejects_empty_result() -> None:
    with pytest.raises(ScaffoldError):
        normalize_slug("!!!")


def test_default_title() -> None:
    assert default_title("my-first_post") == "My First Post"


def test_scaffold_post_is_a_parseable_draft(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    result = scaffold_content(config, "post", "first-steps", today=TODAY)

    path = tmp_path / "content" / "blog" / "first-steps.md"
    assert result.created == [path]
    meta, body = parse_metadata(path.read_text(encoding="utf-8"))
    assert meta.title == "First Steps"
    assert meta.date == TODAY
    assert meta.draft is True
    assert "Write the post here." in body


def test_scaffold_review_is_a_parseable_media_log_entry(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    scaffold_content(config, "review", "dune", title="Dune", today=TODAY)

    meta, _ = parse_media_log((tmp_path / "content" / "media-log" / "dune.md").read_text(encoding="utf-8"))
    assert meta.title == "Dune"
    assert meta.rating == 3.5
    assert meta.date.start == TODAY


def test_existing_file_requires_force(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    scaffold_content(config, "post", "again", today=TODAY)

    with pytest.raises(ScaffoldError, match="already exists"):
        scaffold_content(config, "post", "again", today=TODAY)

    result = scaffold_content(config, "post", "again", title="Again, updated", force=True, today=TODAY)
    assert result.updated == [tmp_path / "content" / "blog" / "again.md"]
    assert result.created == []


def test_unwritable_target_is_a_scaffold_error(tmp_path: Path) -> None:
    config = load_config(tmp_path)
    config.blog.source_dir.parent.mkdir(parents=True, exist_ok=True)
    config.blog.source_dir.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ScaffoldError, match="Cannot write"):
        scaffold_content(config, "post", "blocked", today=TODAY)
