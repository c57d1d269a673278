"""Utilities for copying static files and referenced assets into the output tree."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote, urlsplit

from .output import OutputError, ensure_directory

logger = logging.getLogger(__name__)

BUILTIN_STATIC_DIR = Path(__file__).parent / "static"


@dataclass
class StagingResult:
    """Summary of files copied into the output directory."""

    staged_paths: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.staged_paths)


def reset_directory(path: Path) -> None:
    """Remove a directory and recreate it empty."""
    try:
        if path.exists():
            shutil.rmtree(path)
    except OSError as exc:
        raise OutputError(path, f"Cannot clear directory ({exc.strerror or exc})") from exc
    ensure_directory(path)


def stage_static_files(output_root: Path, user_static_dir: Path | None = None) -> StagingResult:
    """Copy the built-in stylesheet/scripts and the user's static directory.

    Built-in files land in ``output/static``; the user directory is merged into
    the output root so favicons and ``robots.txt`` sit at the top level.
    """
    result = StagingResult()
    builtin_target = output_root / "static"
    for item in sorted(BUILTIN_STATIC_DIR.iterdir()):
        if item.is_file() and not item.name.startswith("_"):
            result.staged_paths.append(_copy_file(item, builtin_target / item.name))

    if user_static_dir is not None and user_static_dir.is_dir():
        for item in sorted(user_static_dir.iterdir()):
            destination = output_root / item.name
            if item.is_dir():
                _copytree(item, destination)
            else:
                _copy_file(item, destination)
            result.staged_paths.append(destination)
    return result


def copy_referenced_assets(urls: Iterable[str], source_root: Path, dest_root: Path) -> list[Path]:
    """Copy every distinct asset URL from ``source_root`` to the same place under ``dest_root``.

    A referenced file that is missing, or a URL resolving outside the source
    directory, raises ``OutputError``.
    """
    copied: list[Path] = []
    seen: set[str] = set()
    source_base = source_root.resolve()
    for url in urls:
        relative = unquote(urlsplit(url).path)
        if relative in seen:
            continue
        seen.add(relative)

        source = (source_root / relative).resolve()
        if not source.is_relative_to(source_base):
            raise OutputError(source, f"Asset {url!r} points outside {source_root}")
        if not source.is_file():
            raise OutputError(source, f"Referenced asset {url!r} not found")
        copied.append(_copy_file(source, dest_root / relative))
    return copied


def _copy_file(source: Path, destination: Path) -> Path:
    ensure_directory(destination.parent)
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        raise OutputError(destination, f"Cannot copy {source} ({exc.strerror or exc})") from exc
    logger.debug("Copied %s -> %s", source, destination)
    return destination


def _copytree(source: Path, destination: Path) -> None:
    try:
        if destination.exists():
            shutil.rmtree(destination)
        shutil.copytree(source, destination)
    except OSError as exc:
        raise OutputError(destination, f"Cannot copy {source} ({exc.strerror or exc})") from exc
