"""Parsing and loading of markdown content entries."""

from .frontmatter import (
    FrontMatterError,
    InvalidFrontMatterError,
    MissingFrontMatterError,
    dump_front_matter,
    parse_front_matter,
    parse_metadata,
    split_front_matter,
)
from .loader import LoadOutcome, SkipReason, load_entry
from .models import ContentEntry, ContentMetadata, Language

__all__ = [
    "ContentEntry",
    "ContentMetadata",
    "FrontMatterError",
    "InvalidFrontMatterError",
    "Language",
    "LoadOutcome",
    "MissingFrontMatterError",
    "SkipReason",
    "dump_front_matter",
    "load_entry",
    "parse_front_matter",
    "parse_metadata",
    "split_front_matter",
]
