"""Typeset TeX math literals into HTML with the KaTeX command line tool."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from typing import Protocol

logger = logging.getLogger(__name__)


class MathRenderError(RuntimeError):
    """Raised when a math literal cannot be typeset."""


class MathRenderer(Protocol):
    def __call__(self, latex: str, display_mode: bool) -> str: ...


class KatexRenderer:
    """Render math through ``katex`` in a subprocess, memoising identical literals.

    Malformed TeX is author error: KaTeX either fails (``MathRenderError``) or
    emits whatever markup it produces, which is passed through unchanged.
    """

    def __init__(self, command: Sequence[str] = ("npx", "--yes", "katex"), *, timeout: float = 30.0) -> None:
        self.command = list(command)
        self.timeout = timeout
        self._cache: dict[tuple[str, bool], str] = {}

    def __call__(self, latex: str, display_mode: bool) -> str:
        key = (latex, display_mode)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        html = self._run(latex, display_mode)
        self._cache[key] = html
        return html

    def _run(self, latex: str, display_mode: bool) -> str:
        args = [*self.command]
        if display_mode:
            args.append("--display-mode")
        logger.debug("Typesetting %s math: %r", "display" if display_mode else "inline", latex)
        try:
            result = subprocess.run(
                args,
                input=latex,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise MathRenderError(f"Math renderer not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise MathRenderError(f"Math renderer timed out on {latex!r}") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise MathRenderError(f"Failed to typeset {latex!r}: {detail}") from exc
        return result.stdout.strip()
