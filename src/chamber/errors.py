"""Exceptions raised by chamber operations."""

from __future__ import annotations

from pathlib import Path


class ChamberError(Exception):
    """Base class for all chamber errors."""


class EntityExistsError(ChamberError):
    """An entity with this name is already defined somewhere."""

    def __init__(self, kind: str, name: str, where: str) -> None:
        self.kind = kind
        self.name = name
        self.where = where
        super().__init__(f"{kind.capitalize()} {name} already exists {where}")


class EntityNotFoundError(ChamberError):
    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f'{kind.capitalize()} "{name}" not found')


class ConfigParseError(ChamberError):
    """A JSON configuration document could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to parse {path}: {reason}")


class InvalidFileReferenceError(ChamberError):
    def __init__(self, kind: str, name: str, field: str) -> None:
        self.kind = kind
        self.name = name
        self.field = field
        super().__init__(f"Invalid {field} file reference for {kind} {name}")
