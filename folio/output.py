"""Write generated files; any failure here aborts the build."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class OutputError(RuntimeError):
    """Raised when the output tree cannot be written."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


def ensure_directory(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputError(path, f"Cannot create directory ({exc.strerror or exc})") from exc
    return path


def write_text(path: Path, content: str) -> Path:
    ensure_directory(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise OutputError(path, f"Cannot write file ({exc.strerror or exc})") from exc
    logger.debug("Wrote %s", path)
    return path


def write_page(root: Path, relative: str | Path, content: str) -> Path:
    """Write ``content`` to ``root/relative``; a trailing ``/`` means ``index.html``."""
    relative_text = str(relative)
    if not relative_text or relative_text.endswith("/"):
        relative_text = f"{relative_text}index.html"
    return write_text(root / relative_text.lstrip("/"), content)


@dataclass(slots=True)
class SectionResult:
    """Files written for one site section and the entries behind them."""

    section: str
    pages: list[Path] = field(default_factory=list)
    feeds: list[Path] = field(default_factory=list)
    assets: list[Path] = field(default_factory=list)
    entries: int = 0
    skipped: int = 0
    failures: list[tuple[Path, str]] = field(default_factory=list)
