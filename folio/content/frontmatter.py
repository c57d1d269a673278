"""Split and parse the YAML front matter block at the top of content files."""

from __future__ import annotations

from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .models import ContentMetadata

DELIMITER = "---"

ModelT = TypeVar("ModelT", bound=BaseModel)


class FrontMatterError(ValueError):
    """Raised when a markdown file has no usable front matter."""


class MissingFrontMatterError(FrontMatterError):
    """The file does not start with a front matter block."""


class InvalidFrontMatterError(FrontMatterError):
    """A front matter block exists but does not describe valid metadata."""


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return the decoded front matter mapping and the remaining body."""
    text = text.removeprefix("\ufeff")
    lines = text.splitlines()
    if not lines or lines[0].strip() != DELIMITER:
        raise MissingFrontMatterError("Front matter block not found.")

    front_lines: list[str] = []
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == DELIMITER:
            body = "\n".join(lines[idx + 1 :])
            return _decode_block("\n".join(front_lines)), body
        front_lines.append(line)
    raise InvalidFrontMatterError(f"Closing front matter delimiter '{DELIMITER}' missing.")


def _decode_block(raw: str) -> dict[str, Any]:
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise InvalidFrontMatterError(f"Front matter is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidFrontMatterError(
            f"Front matter must be a mapping, got {type(data).__name__}."
        )
    return data


def parse_front_matter(text: str, model: type[ModelT]) -> tuple[ModelT, str]:
    """Parse ``text`` into an instance of ``model`` plus the markdown body."""
    data, body = split_front_matter(text)
    try:
        meta = model.model_validate(data)
    except ValidationError as exc:
        raise InvalidFrontMatterError(f"Invalid metadata: {_describe(exc)}") from exc
    return meta, body


def parse_metadata(text: str) -> tuple[ContentMetadata, str]:
    return parse_front_matter(text, ContentMetadata)


def dump_front_matter(meta: ContentMetadata) -> str:
    """Serialize the recognised metadata fields back into a front matter block."""
    data: dict[str, Any] = {
        "title": meta.title,
        "date": meta.date,
    }
    if meta.draft:
        data["draft"] = True
    if meta.topics:
        data["topics"] = list(meta.topics)
    data["lang"] = meta.lang.value
    if meta.numbered_headings is not None:
        data["numbered_headings"] = meta.numbered_headings
    block = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    return f"{DELIMITER}\n{block}{DELIMITER}\n"


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "<root>"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)
