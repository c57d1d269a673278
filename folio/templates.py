"""Jinja2 page rendering with user overrides layered over the built-in theme."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from .config import Config
from .output import write_page

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "theme"

REQUIRED_TEMPLATES = ("base.html", "blog_entry.html", "blog_index.html")


class TemplateError(RuntimeError):
    """Raised when a page template cannot be located."""


def format_date(value: dt.date | None) -> str:
    """Render a date as ``01 Jun, 2024``."""
    if value is None:
        return ""
    return value.strftime("%d %b, %Y")


def rating_stars(value: float) -> str:
    """Render a 0-5 rating as full stars plus a half-star glyph."""
    whole = int(value)
    half = value - whole >= 0.5
    return "★" * whole + ("⯨" if half else "")


class PageRenderer:
    """Render named templates and write them below the output directory."""

    def __init__(self, config: Config) -> None:
        self.config = config
        search_paths: list[Path] = []
        if config.templates_dir is not None:
            if config.templates_dir.exists():
                search_paths.append(config.templates_dir)
            else:
                logger.warning("Templates directory %s not found; using built-in templates.", config.templates_dir)
        search_paths.append(BUILTIN_TEMPLATES_DIR)

        self.environment = Environment(
            loader=FileSystemLoader([str(path) for path in search_paths]),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.environment.filters["format_date"] = format_date
        self.environment.filters["stars"] = rating_stars
        self.environment.globals["site"] = config.site
        self.environment.globals["navigation"] = self._navigation()
        self.environment.globals["development"] = config.include_drafts
        self.ensure_templates(REQUIRED_TEMPLATES)

    def ensure_templates(self, names: tuple[str, ...]) -> None:
        for name in names:
            try:
                self.environment.get_template(name)
            except TemplateNotFound as exc:
                raise TemplateError(f"Required template '{name}' not found.") from exc

    def render(self, template: str, **context: Any) -> str:
        try:
            compiled = self.environment.get_template(template)
        except TemplateNotFound as exc:
            raise TemplateError(f"Template '{template}' not found.") from exc
        return compiled.render(**context)

    def render_page(self, output_root: Path, relative: str, template: str, **context: Any) -> Path:
        """Render ``template`` and write it to ``output_root/relative``."""
        return write_page(output_root, relative, self.render(template, **context))

    def _navigation(self) -> list[dict[str, str]]:
        config = self.config
        links = [{"label": "Home", "href": "/"}]
        if config.blog.enabled:
            links.append({"label": config.blog.title, "href": f"/{config.blog.section}/"})
        if config.media_log.enabled:
            links.append({"label": config.media_log.title, "href": f"/{config.media_log.section}/"})
        if config.projects.enabled:
            links.append({"label": "Projects", "href": "/projects/"})
        if config.pics.enabled:
            links.append({"label": "Pictures", "href": "/pics/"})
        if config.about_path is not None and config.about_path.exists():
            links.append({"label": "About", "href": "/about/"})
        return links
