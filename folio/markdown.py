"""Markdown rendering with folio's rewrites: heading shift, image prefixes, and math."""

from __future__ import annotations

import posixpath
import re
from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml
from markdown_it.token import Token
from markdown_it.tree import SyntaxTreeNode
from mdit_py_plugins.deflist import deflist_plugin
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.front_matter import front_matter_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .math import MathRenderer

DEFAULT_SUMMARY_LENGTH = 250

MATH_NODE_TYPES = frozenset({"math_inline", "math_inline_double", "math_block", "math_block_label"})
WORD_NODE_TYPES = frozenset({"text", "code_inline"}) | MATH_NODE_TYPES

_REMOTE_URL = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*:|//)")


@dataclass(slots=True)
class MarkdownResult:
    """Rendered body plus the values derived while rendering it."""

    html: str
    summary: str
    word_count: int
    assets: list[str] = field(default_factory=list)


def _escape_math(latex: str, display_mode: bool) -> str:
    return escapeHtml(latex)


def _math_html(env: MutableMapping, latex: str, display_mode: bool) -> str:
    renderer = env.get("math_renderer") or _escape_math
    return renderer(latex.strip(), display_mode)


def _render_math_inline(self, tokens: Sequence[Token], idx: int, options, env: MutableMapping) -> str:
    return f'<span class="math inline">{_math_html(env, tokens[idx].content, False)}</span>'


def _render_math_inline_double(self, tokens: Sequence[Token], idx: int, options, env: MutableMapping) -> str:
    return f'<span class="math display">{_math_html(env, tokens[idx].content, True)}</span>'


def _render_math_block(self, tokens: Sequence[Token], idx: int, options, env: MutableMapping) -> str:
    return f'<div class="math block">\n{_math_html(env, tokens[idx].content, True)}\n</div>\n'


def _render_math_block_label(self, tokens: Sequence[Token], idx: int, options, env: MutableMapping) -> str:
    token = tokens[idx]
    label = escapeHtml(token.info)
    content = _math_html(env, token.content, True)
    return f'<div id="{label}" class="math block">\n<a href="#{label}" class="math-label">({label})</a>\n{content}\n</div>\n'


def _render_image(self, tokens: Sequence[Token], idx: int, options, env: MutableMapping) -> str:
    token = tokens[idx]
    token.attrSet("alt", self.renderInlineAsText(token.children or [], options, env))
    title = token.attrGet("title")
    if not title:
        return self.renderToken(tokens, idx, options, env)
    # The caption replaces the tooltip.
    token.attrs.pop("title", None)
    img = self.renderToken(tokens, idx, options, env)
    return f"<figure>{img}<figcaption>{escapeHtml(str(title))}</figcaption></figure>"


@lru_cache(maxsize=2)
def _renderer(front_matter: bool = True) -> MarkdownIt:
    """Configure and cache the CommonMark renderer with folio's extensions.

    With ``front_matter`` off a leading ``---`` is an ordinary thematic break.
    """
    md = MarkdownIt("commonmark", {"html": True})
    md.enable("table").enable("strikethrough")
    if front_matter:
        md.use(front_matter_plugin)
    md.use(dollarmath_plugin, double_inline=True)
    md.use(deflist_plugin)
    md.use(footnote_plugin)
    md.use(tasklists_plugin, label=True)
    md.add_render_rule("math_inline", _render_math_inline)
    md.add_render_rule("math_inline_double", _render_math_inline_double)
    md.add_render_rule("math_block", _render_math_block)
    md.add_render_rule("math_block_label", _render_math_block_label)
    md.add_render_rule("image", _render_image)
    return md


def is_remote_url(url: str) -> bool:
    return bool(_REMOTE_URL.match(url))


def is_section_asset(url: str) -> bool:
    """Return True for image URLs that live next to the content file."""
    # Remote and site-absolute images are left untouched and never collected.
    return bool(url) and not is_remote_url(url) and not url.startswith(("/", "#"))


class MarkdownTransformer:
    """Render entry bodies, rewriting image URLs under ``image_prefix``.

    Each ``transform`` call parses the text into a fresh syntax tree, applies
    the rewrites in a single pass, then derives the summary and word count from
    the rewritten tree before serialising it.
    """

    def __init__(
        self,
        image_prefix: str = "/",
        *,
        math_renderer: MathRenderer | None = None,
        summary_length: int = DEFAULT_SUMMARY_LENGTH,
    ) -> None:
        if summary_length < 1:
            raise ValueError("summary_length must be positive")
        self.image_prefix = image_prefix
        self.math_renderer = math_renderer
        self.summary_length = summary_length

    def transform(self, text: str, *, front_matter: bool = True) -> MarkdownResult:
        """Render ``text``; pass ``front_matter=False`` for bodies already split from their header."""
        md = _renderer(front_matter)
        env: dict[str, Any] = {}
        tokens = [token for token in md.parse(text, env) if token.type != "front_matter"]
        root = SyntaxTreeNode(tokens)
        assets = self._rewrite(root)
        summary = extract_summary(root, self.summary_length)
        word_count = count_words(root)
        env["math_renderer"] = self.math_renderer
        html = md.renderer.render(tokens, md.options, env)
        return MarkdownResult(html=html, summary=summary, word_count=word_count, assets=assets)

    def _rewrite(self, root: SyntaxTreeNode) -> list[str]:
        # Nodes share their tokens with the stream, so edits here reach the renderer.
        assets: list[str] = []
        for node in root.walk():
            if node.type == "heading" and node.nester_tokens is not None:
                for token in node.nester_tokens:
                    token.tag = f"h{int(token.tag[1:]) + 1}"
            elif node.type == "image" and node.token is not None:
                src = str(node.token.attrGet("src") or "")
                if not is_section_asset(src):
                    continue
                assets.append(src)
                node.token.attrSet("src", posixpath.join(self.image_prefix, src))
        return assets


def extract_summary(root: SyntaxTreeNode, limit: int = DEFAULT_SUMMARY_LENGTH) -> str:
    """Collect visible text in document order, stopping once ``limit`` is reached.

    Text and math nodes contribute their content; inline containers are
    transparent; every other node contributes a single space.
    """
    summary = ""
    for node in root.walk():
        if len(summary) >= limit - 1:
            break
        if node.type == "inline":
            continue
        if node.type == "text" or node.type in MATH_NODE_TYPES:
            chunk = node.content
        else:
            chunk = " "
        summary += chunk[: limit - len(summary)]
    return summary


def count_words(root: SyntaxTreeNode) -> int:
    return sum(len(node.content.split()) for node in root.walk() if node.type in WORD_NODE_TYPES)
