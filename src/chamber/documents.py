"""Markdown documents with a YAML frontmatter header.

A document is ``---`` / YAML header / ``---`` followed by the body. Files
without a header are read as body-only so plain legacy prompts keep working.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import frontmatter
from frontmatter.default_handlers import YAMLHandler

from chamber.fileio import write_text_atomic

logger = logging.getLogger(__name__)


@dataclass
class Document:
    header: dict[str, Any] = field(default_factory=dict)
    body: str = ""


def parse_document(path: Path) -> Document:
    """Read a document. Malformed YAML in the header propagates."""
    text = path.read_text(encoding="utf-8")
    if not YAMLHandler.FM_BOUNDARY.match(text):
        return Document(body=text.strip())
    post = frontmatter.loads(text, handler=YAMLHandler())
    return Document(header=dict(post.metadata), body=post.content.strip())


def render_document(header: dict[str, Any], body: str | None) -> str:
    # Absent values are omitted, never written as null
    cleaned = {key: value for key, value in (header or {}).items() if value is not None}
    post = frontmatter.Post(body or "")
    post.metadata.update(cleaned)
    return frontmatter.dumps(post, sort_keys=False).rstrip()


def write_document(path: Path, header: dict[str, Any], body: str | None) -> None:
    write_text_atomic(path, render_document(header, body))
    logger.debug("Wrote document %s", path)
