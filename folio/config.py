from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "folio.yml"


class BuildMode(str, Enum):
    """Build profile controlling draft visibility."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @property
    def include_drafts(self) -> bool:
        return self is BuildMode.DEVELOPMENT


class SiteConfig(BaseModel):
    """Site-wide metadata used by pages and feeds."""

    title: str = Field(default="folio")
    description: str = Field(default="Personal website")
    base_url: str = Field(
        default="http://localhost:8000",
        description="Canonical site URL used for absolute links (e.g., 'https://example.com').",
    )
    language: str = Field(default="en")
    author_name: str | None = Field(default=None)
    author_email: str | None = Field(default=None)

    @field_validator("base_url")
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class BlogConfig(BaseModel):
    """Configuration for the blog section."""

    enabled: bool = Field(default=True)
    source_dir: Path = Field(default=Path("content/blog"))
    section: str = Field(default="blog", description="URL segment the section is published under.")
    title: str = Field(default="Blog")
    description: str = Field(default="Posts and notes.")
    summary_length: int = Field(default=250, ge=1)

    @field_validator("source_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("section")
    def _strip_slashes(cls, value: str) -> str:
        text = value.strip("/")
        if not text:
            raise ValueError("Section name must not be empty.")
        return text


class MediaLogConfig(BaseModel):
    """Configuration for the media log (reviews of books, films, games, and music)."""

    enabled: bool = Field(default=True)
    source_dir: Path = Field(default=Path("content/media-log"))
    section: str = Field(default="media-log")
    title: str = Field(default="Media log")
    summary_length: int = Field(default=180, ge=1)
    resolve_covers: bool = Field(
        default=True,
        description="Look up cover images on Wikipedia for entries without a cached cover.",
    )
    wikipedia_api: str = Field(default="https://{lang}.wikipedia.org/w/api.php")

    @field_validator("source_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)


class ProjectsConfig(BaseModel):
    """Configuration for the GitHub-backed projects page."""

    enabled: bool = Field(default=False)
    owner: str = Field(default="", description="GitHub user or organisation owning the repositories.")
    names: list[str] = Field(default_factory=list)
    snapshot_path: Path = Field(default=Path("projects.json"))
    api_url: str = Field(default="https://api.github.com")

    @field_validator("snapshot_path", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("api_url")
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class PicsConfig(BaseModel):
    """Configuration for the Immich-backed pictures page."""

    enabled: bool = Field(default=False)
    immich_url: str = Field(default="")
    album_id: str = Field(default="")
    images_subdir: str = Field(
        default="static/pics",
        description="Path (relative to site output) where converted images are written.",
    )
    quality: int = Field(default=85, ge=1, le=100)

    @field_validator("immich_url")
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("images_subdir")
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")


class FeedConfig(BaseModel):
    """Options controlling feed generation."""

    enabled: bool = Field(default=True, description="Toggle syndication feed generation.")
    limit: int | None = Field(
        default=None,
        ge=1,
        description="Maximum number of entries to include per feed; unset includes every entry.",
    )
    timezone: str | None = Field(
        default=None,
        description="IANA zone used to turn entry dates into instants; unset uses the system zone.",
    )


class MathConfig(BaseModel):
    """Command used to typeset math literals."""

    command: list[str] = Field(default_factory=lambda: ["npx", "--yes", "katex"])
    timeout: float = Field(default=30.0, gt=0)


class Config(BaseModel):
    mode: BuildMode = Field(default=BuildMode.PRODUCTION)
    output_dir: Path = Field(default=Path("site"))
    cache_dir: Path = Field(default=Path(".cache"))
    static_dir: Path = Field(
        default=Path("static"),
        description="User files copied verbatim to the output root (favicons, robots.txt, ...).",
    )
    templates_dir: Path | None = Field(
        default=None,
        description="Optional directory whose templates override the built-in ones by name.",
    )
    about_path: Path | None = Field(default=Path("content/about.md"))
    site: SiteConfig = Field(default_factory=SiteConfig)
    blog: BlogConfig = Field(default_factory=BlogConfig)
    media_log: MediaLogConfig = Field(default_factory=MediaLogConfig)
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig)
    pics: PicsConfig = Field(default_factory=PicsConfig)
    feeds: FeedConfig = Field(default_factory=FeedConfig)
    math: MathConfig = Field(default_factory=MathConfig)

    @field_validator("output_dir", "cache_dir", "static_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("templates_dir", "about_path", mode="before")
    def _ensure_optional_path(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        return Path(value)

    @property
    def include_drafts(self) -> bool:
        return self.mode.include_drafts


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/site/folio.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    if candidate.is_dir():
        # A project directory without a config file builds with defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    cfg = Config(**data)

    def _abs_required(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    def _abs_optional(value: Path | None) -> Path | None:
        if value is None:
            return None
        return _abs_required(value)

    cfg.output_dir = _abs_required(cfg.output_dir)
    cfg.cache_dir = _abs_required(cfg.cache_dir)
    cfg.static_dir = _abs_required(cfg.static_dir)
    cfg.templates_dir = _abs_optional(cfg.templates_dir)
    cfg.about_path = _abs_optional(cfg.about_path)
    cfg.blog.source_dir = _abs_required(cfg.blog.source_dir)
    cfg.media_log.source_dir = _abs_required(cfg.media_log.source_dir)
    cfg.projects.snapshot_path = _abs_required(cfg.projects.snapshot_path)

    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping.")
    return data
