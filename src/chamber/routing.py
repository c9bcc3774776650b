"""Decide, per updated field, which source the new value is written to.

Decision table for one field of an update:

content field (prompt / template)
    document exists or is being fabricated  -> DocumentBody
    JSON value is a {file:...} reference     -> ReferencedFile
    otherwise                                -> JsonEntry
any other field
    present in the active JSON entry         -> JsonEntry
    present in the document header           -> DocumentHeader
    document exists or is being fabricated   -> DocumentHeader
    otherwise                                -> JsonEntry
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from chamber.errors import InvalidFileReferenceError
from chamber.paths import EntityKind, Layer

FILE_REFERENCE_PATTERN = re.compile(r"^\{file:(.+)\}$", re.IGNORECASE)


@dataclass(frozen=True)
class DocumentHeader:
    pass


@dataclass(frozen=True)
class DocumentBody:
    pass


@dataclass(frozen=True)
class JsonEntry:
    layer: Layer


@dataclass(frozen=True)
class ReferencedFile:
    path: Path


FieldLocation = DocumentHeader | DocumentBody | JsonEntry | ReferencedFile


def is_file_reference(value: Any) -> bool:
    return isinstance(value, str) and bool(FILE_REFERENCE_PATTERN.match(value.strip()))


def resolve_file_reference(reference: str, config_root: Path) -> Path | None:
    """Resolve ``{file:<path>}`` against the config root.

    ``./x`` and other relative paths resolve under ``config_root``; absolute
    paths pass through. Returns None when the captured path is blank.
    """
    match = FILE_REFERENCE_PATTERN.match(reference.strip())
    if not match:
        return None
    target = match.group(1).strip()
    if not target:
        return None
    if target.startswith("./"):
        return config_root / target[2:]
    path = Path(target)
    if not path.is_absolute():
        return config_root / path
    return path


@dataclass
class RoutingState:
    """What an update knows about the entity before touching any field."""

    kind: EntityKind
    name: str
    config_root: Path
    json_layer: Layer
    has_document: bool = False
    fabricating: bool = False
    document_header: dict[str, Any] = field(default_factory=dict)
    json_entry: Any = None

    @property
    def uses_document(self) -> bool:
        return self.has_document or self.fabricating

    def json_has(self, name: str) -> bool:
        return isinstance(self.json_entry, dict) and name in self.json_entry


def route_field(field_name: str, state: RoutingState) -> FieldLocation:
    if field_name == state.kind.content_field:
        if state.uses_document:
            return DocumentBody()
        current = state.json_entry.get(field_name) if isinstance(state.json_entry, dict) else None
        if is_file_reference(current):
            path = resolve_file_reference(current, state.config_root)
            if path is None:
                raise InvalidFileReferenceError(state.kind.value, state.name, field_name)
            return ReferencedFile(path)
        return JsonEntry(state.json_layer)

    if state.json_has(field_name):
        return JsonEntry(state.json_layer)
    if field_name in state.document_header or state.uses_document:
        return DocumentHeader()
    return JsonEntry(state.json_layer)
