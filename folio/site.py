"""Build the whole site: every enabled section, the shared pages, and static files."""

from __future__ import annotations

import datetime as dt
import logging
import time

import httpx

from .blog import blog_transformer, generate_blog
from .config import Config
from .markdown import MarkdownTransformer
from .math import KatexRenderer, MathRenderer
from .media_log import generate_media_log
from .output import SectionResult, ensure_directory
from .pics import generate_pics_page
from .projects import generate_projects_page
from .reporting import BuildReport, assemble_report, write_report
from .staging import copy_referenced_assets, reset_directory, stage_static_files
from .templates import PageRenderer

logger = logging.getLogger(__name__)


def build_site(
    config: Config,
    *,
    math_renderer: MathRenderer | None = None,
    http_client: httpx.Client | None = None,
    immich_api_key: str | None = None,
    clean: bool = False,
    now: dt.datetime | None = None,
) -> BuildReport:
    """Generate the site into ``config.output_dir`` and write ``build-report.json``.

    Per-entry problems are recorded in the report. Output failures
    (``OutputError``) and failures of remote collaborators a section depends on
    (``FetchError``) propagate and abort the build.
    """
    started = time.perf_counter()
    output_root = config.output_dir
    if clean:
        reset_directory(output_root)
    else:
        ensure_directory(output_root)

    renderer = PageRenderer(config)
    math = math_renderer or KatexRenderer(config.math.command, timeout=config.math.timeout)

    sections: list[SectionResult] = []
    if config.blog.enabled:
        sections.append(generate_blog(config, renderer, blog_transformer(config, math), now=now))
    if config.media_log.enabled:
        sections.append(generate_media_log(config, renderer, math_renderer=math, client=http_client))
    if config.projects.enabled:
        sections.append(generate_projects_page(config, renderer))
    if config.pics.enabled:
        sections.append(generate_pics_page(config, renderer, api_key=immich_api_key, client=http_client))

    about = generate_about_page(config, renderer, math)
    if about is not None:
        sections.append(about)
    renderer.render_page(output_root, "index.html", "home.html")

    staged = stage_static_files(output_root, config.static_dir)

    report = assemble_report(
        project=config.site.title,
        mode=config.mode.value,
        duration_seconds=time.perf_counter() - started,
        sections=sections,
        static_files=staged.total,
    )
    write_report(report, output_root)
    logger.info("Built %s in %.2fs", output_root, report.duration_seconds)
    return report


def generate_about_page(
    config: Config, renderer: PageRenderer, math_renderer: MathRenderer | None = None
) -> SectionResult | None:
    """Render ``about.md`` (when present) to ``about/index.html``."""
    source = config.about_path
    if source is None or not source.is_file():
        return None

    transformer = MarkdownTransformer("/about", math_renderer=math_renderer)
    rendered = transformer.transform(source.read_text(encoding="utf-8"))
    result = SectionResult(section="about", entries=1)
    result.pages.append(renderer.render_page(config.output_dir, "about/", "about.html", body=rendered.html))
    result.assets = copy_referenced_assets(rendered.assets, source.parent, config.output_dir / "about")
    return result
