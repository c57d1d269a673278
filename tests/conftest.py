from __future__ import annotations

from pathlib import Path

import pytest

from folio.config import BlogConfig, Config, MediaLogConfig, SiteConfig


class FakeMath:
    """Stand-in for KaTeX that records every literal it typesets."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []

    def __call__(self, latex: str, display_mode: bool) -> str:
        self.calls.append((latex, display_mode))
        kind = "display" if display_mode else "inline"
        return f"<katex {kind}>{latex}</katex>"


@pytest.fixture
def fake_math() -> FakeMath:
    return FakeMath()


@pytest.fixture
def site_config(tmp_path: Path) -> Config:
    return Config(
        output_dir=tmp_path / "site",
        cache_dir=tmp_path / ".cache",
        static_dir=tmp_path / "static",
        about_path=tmp_path / "content" / "about.md",
        site=SiteConfig(title="Example", base_url="https://example.com/", author_name="Ada"),
        blog=BlogConfig(source_dir=tmp_path / "content" / "blog"),
        media_log=MediaLogConfig(source_dir=tmp_path / "content" / "media-log", resolve_covers=False),
    )
