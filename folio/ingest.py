"""Walk a content directory and load every entry, isolating per-file failures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .content.loader import LoadOutcome, SkipReason

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = {".md"}

# Errors that exclude a single file from the build instead of aborting it.
ENTRY_ERRORS: tuple[type[Exception], ...] = (OSError, ValueError, RuntimeError)

EntryLoader = Callable[[str, str], LoadOutcome[Any]]


@dataclass(slots=True)
class WalkResult:
    """Entries loaded from one directory, in traversal order."""

    entries: list[Any] = field(default_factory=list)
    skipped: list[tuple[Path, SkipReason]] = field(default_factory=list)
    failures: list[tuple[Path, str]] = field(default_factory=list)
    assets: list[str] = field(default_factory=list)


def iter_content_files(root: Path) -> Iterable[Path]:
    """Yield markdown files directly inside ``root`` in name order.

    Subdirectories are not descended into; they hold the images entries refer to.
    """
    for path in sorted(root.iterdir()):
        if path.is_dir():
            logger.debug("Skipping directory %s", path)
            continue
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES:
            yield path


def walk_content(root: Path, loader: EntryLoader) -> WalkResult:
    """Load every content file in ``root`` with ``loader``.

    Read errors and loader exceptions are logged and recorded in
    ``WalkResult.failures``; the walk continues with the next file.
    """
    result = WalkResult()
    if not root.exists():
        logger.warning("Content directory %s does not exist; nothing to load.", root)
        return result

    for path in iter_content_files(root):
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Skipping %s: removed during the scan", path)
            continue
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read %s: %s", path, exc)
            result.failures.append((path, str(exc)))
            continue

        try:
            outcome = loader(path.stem, text)
        except ENTRY_ERRORS as exc:
            logger.error("Failed to load %s: %s", path, exc)
            result.failures.append((path, str(exc)))
            continue

        result.assets.extend(outcome.assets)
        if outcome.entry is not None:
            result.entries.append(outcome.entry)
            continue

        reason = outcome.skipped or SkipReason.MISSING_FRONT_MATTER
        result.skipped.append((path, reason))
        if reason is SkipReason.INVALID_FRONT_MATTER:
            logger.warning("Skipping %s: %s", path, outcome.detail)
        elif reason is SkipReason.DRAFT:
            logger.info("Skipping draft %s", path)
        else:
            logger.debug("Skipping %s: no front matter", path)

    return result
