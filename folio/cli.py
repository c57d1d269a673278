"""CLI entrypoints for folio."""

import contextlib
import logging
import shutil
import webbrowser
from enum import Enum
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Annotated, Any, Iterator

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import BuildMode, Config, load_config
from .math import MathRenderError
from .output import OutputError
from .projects import SnapshotError, fetch_projects, load_snapshot, save_snapshot
from .remote import FetchError, create_client
from .reporting import REPORT_FILENAME, BuildReport
from .scaffold import ScaffoldError, ScaffoldResult, normalize_slug, scaffold_content
from .site import build_site
from .templates import TemplateError

console = Console()
app = typer.Typer(help="folio static site generator.")


class NewContentType(str, Enum):
    """Kinds of content that can be scaffolded from the CLI."""

    POST = "post"
    REVIEW = "review"


ConfigPathOption = Annotated[
    str,
    typer.Option("--config", "-c", help="Path to the configuration file or project directory."),
]
TitleOption = Annotated[
    str | None,
    typer.Option("--title", "-t", help="Override the default title derived from the slug."),
]
ForceFlag = Annotated[
    bool,
    typer.Option("--force", "-f", help="Overwrite existing files if they already exist."),
]
VerboseFlag = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show debug logging."),
]


@app.command()
def build(
    config_path: ConfigPathOption = ".",
    mode: Annotated[
        BuildMode | None,
        typer.Option("--mode", "-m", help="Override the configured build mode (development includes drafts)."),
    ] = None,
    output_dir: Annotated[
        Path | None,
        typer.Option(
            "--output-dir",
            "-o",
            envvar="FOLIO_OUTPUT_PATH",
            help="Override the configured output directory.",
        ),
    ] = None,
    clean: Annotated[
        bool,
        typer.Option("--clean", help="Empty the output directory before building."),
    ] = False,
    immich_api_key: Annotated[
        str | None,
        typer.Option("--immich-api-key", envvar="IMMICH_API_KEY", show_default=False, help="Immich API key."),
    ] = None,
    verbose: VerboseFlag = False,
) -> None:
    """Generate the whole site."""
    _configure_logging(verbose)
    config: Config = _load(config_path)
    if mode is not None:
        config.mode = mode
    if output_dir is not None:
        config.output_dir = output_dir.resolve()

    if clean:
        console.print(f"[bold yellow]Clean build[/]: clearing {_display_path(config.output_dir)}")

    try:
        report = build_site(config, immich_api_key=immich_api_key, clean=clean)
    except (OutputError, FetchError, SnapshotError, TemplateError, MathRenderError) as exc:
        console.print(f"[bold red]Build failed[/]: {exc}")
        raise typer.Exit(code=1) from exc

    _print_build_summary(config, report)


@app.command("fetch-projects")
def fetch_projects_command(
    config_path: ConfigPathOption = ".",
    token: Annotated[
        str | None,
        typer.Option("--token", envvar="GITHUB_TOKEN", show_default=False, help="GitHub API token."),
    ] = None,
    verbose: VerboseFlag = False,
) -> None:
    """Fetch repository metadata from GitHub into the projects snapshot."""
    _configure_logging(verbose)
    config: Config = _load(config_path)
    settings = config.projects
    if not settings.owner or not settings.names:
        console.print("[bold red]Nothing to fetch[/]: set projects.owner and projects.names in the configuration.")
        raise typer.Exit(code=1)

    previous = None
    if settings.snapshot_path.exists():
        try:
            previous = load_snapshot(settings.snapshot_path)
        except SnapshotError as exc:
            console.print(f"[bold yellow]Warning[/]: ignoring existing snapshot ({exc})")

    try:
        with create_client() as client:
            snapshot = fetch_projects(
                settings.names,
                owner=settings.owner,
                client=client,
                token=token,
                api_url=settings.api_url,
                previous=previous,
            )
        path = save_snapshot(snapshot, settings.snapshot_path)
    except (FetchError, OutputError) as exc:
        console.print(f"[bold red]Fetch failed[/]: {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        f"[bold green]Projects[/]: {len(snapshot.projects)} project(s) written to {_display_path(path)}"
    )


@app.command()
def new(
    kind: Annotated[
        NewContentType,
        typer.Argument(..., help="Content type to scaffold."),
    ],
    slug: Annotated[
        str,
        typer.Argument(..., help="Slug identifier used for the file name."),
    ],
    title: TitleOption = None,
    config_path: ConfigPathOption = ".",
    force: ForceFlag = False,
) -> None:
    """Create a new blog post or media log review."""
    try:
        normalized_slug = normalize_slug(slug)
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {exc}")
        raise typer.Exit(code=1) from exc

    config: Config = _load(config_path)

    try:
        result = scaffold_content(
            config=config,
            kind=kind.value,
            slug=normalized_slug,
            title=title,
            force=force,
        )
    except ScaffoldError as exc:
        console.print(f"[bold red]Cannot scaffold[/]: {exc}")
        raise typer.Exit(code=1) from exc

    if normalized_slug != slug:
        console.print(f"[bold yellow]Note[/]: slug normalized to '{normalized_slug}'.")

    _print_scaffold_summary(kind, normalized_slug, result)


@app.command()
def preview(
    config_path: ConfigPathOption = ".",
    host: Annotated[
        str,
        typer.Option("--host", help="Host interface to bind the preview server."),
    ] = "127.0.0.1",
    port: Annotated[
        int,
        typer.Option("--port", "-p", help="Port for the preview server."),
    ] = 8000,
    open_browser: Annotated[
        bool,
        typer.Option(
            "--open-browser/--no-open-browser",
            help="Automatically open the site in a browser after starting.",
        ),
    ] = False,
) -> None:
    """Serve the generated site directory with a simple HTTP server."""
    config: Config = _load(config_path)
    if port < 0 or port > 65535:
        raise typer.BadParameter("Port must be between 0 and 65535.")

    output_dir = Path(config.output_dir)
    if not output_dir.exists():
        console.print(f"[bold red]Site output not found[/]: {output_dir}")
        console.print("Run 'folio build' to generate the site before previewing.")
        raise typer.Exit(code=1)

    handler = _make_request_handler(output_dir)

    try:
        with _serve(host, port, handler) as server:
            bound_host, bound_port = server.server_address[:2]
            url_host = "127.0.0.1" if bound_host in {"0.0.0.0", ""} else bound_host
            site_url = f"http://{url_host}:{bound_port}/"
            console.print(
                f"[bold green]Preview server[/]: serving {output_dir} at {site_url} "
                "(press Ctrl+C to stop)"
            )
            if open_browser:
                webbrowser.open(site_url)
            try:
                server.serve_forever()
            except KeyboardInterrupt:
                console.print("\n[bold yellow]Stopping preview server...[/]")
    except OSError as exc:
        console.print(f"[bold red]Failed to start preview server[/]: {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def clean(
    config_path: ConfigPathOption = ".",
    include_cache: Annotated[
        bool,
        typer.Option("--cache", help="Also remove the cache (cover images and album metadata)."),
    ] = False,
) -> None:
    """Remove the generated site and, optionally, the cache."""
    config: Config = _load(config_path)
    targets: list[tuple[str, Path]] = [("site output", Path(config.output_dir))]
    if include_cache:
        targets.append(("cache", Path(config.cache_dir)))

    removed = 0
    for label, path in targets:
        if path.exists():
            console.print(f"[bold green]Removing[/]: {label} ({path})")
            _remove_path(path)
            removed += 1
        else:
            console.print(f"[bold yellow]Skipping[/]: {label} ({path}) not found")

    noun = "directory" if removed == 1 else "directories"
    console.print(f"[bold green]Clean complete[/]: removed {removed} {noun}.")


def _print_build_summary(config: Config, report: BuildReport) -> None:
    console.print(f"[bold green]Mode[/]: {report.mode}")
    for section in report.sections:
        line = (
            f"[bold green]{section.section}[/]: {section.written} written, "
            f"{section.skipped} skipped, {section.failed} failed"
        )
        if section.assets_copied:
            line += f"; {section.assets_copied} asset(s) copied"
        console.print(line)
    console.print(f"[bold green]Static files[/]: {report.static_files} staged")
    console.print(
        f"[bold green]Report[/]: {_display_path(config.output_dir / REPORT_FILENAME)} "
        f"({report.duration_seconds:.2f}s)"
    )
    for warning in report.warnings:
        console.print(f"[bold yellow]Warning[/]: {escape(warning)}")
    if report.total_failures:
        console.print(f"[bold yellow]Failed entries[/]: {report.total_failures} (see warnings above)")


def _print_scaffold_summary(kind: NewContentType, slug: str, result: ScaffoldResult) -> None:
    console.print(f"[bold green]Scaffold ready[/]: {kind.value} '{slug}'")

    for path in result.created:
        console.print(f"- {_display_path(path)} (new)")
    for path in result.updated:
        console.print(f"- {_display_path(path)} (updated)")

    if result.notes:
        console.print("[bold blue]Next steps[/]:")
        for note in result.notes:
            console.print(f"- {note}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _display_path(path: Path) -> str:
    try:
        return path.relative_to(Path.cwd()).as_posix()
    except ValueError:
        return path.as_posix()


def _load(path: str) -> Config:
    try:
        return load_config(path)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"Config file not found: {path}") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


class _ThreadingHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def _make_request_handler(directory: Path) -> type[SimpleHTTPRequestHandler]:
    directory_path = str(directory)

    class PreviewRequestHandler(SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=directory_path, **kwargs)

    return PreviewRequestHandler


@contextlib.contextmanager
def _serve(
    host: str,
    port: int,
    handler: type[SimpleHTTPRequestHandler],
) -> Iterator[ThreadingHTTPServer]:
    server = _ThreadingHTTPServer((host, port), handler)
    try:
        yield server
    finally:
        server.server_close()


def _remove_path(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists():
        path.unlink(missing_ok=True)
