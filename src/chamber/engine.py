"""Inspect, create, update and delete agents and commands.

An entity can be defined by a markdown document (project or user scope), by
an entry in one of the opencode.json layers, or by both. Reads follow the
locator's precedence; writes go to whichever source currently owns each
field (see ``chamber.routing``). Every operation re-reads disk state.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from chamber.config import ChamberConfig
from chamber.documents import Document, parse_document, write_document
from chamber.errors import EntityExistsError, EntityNotFoundError
from chamber.fileio import write_text_atomic
from chamber.json_store import read_layers, write_config
from chamber.locator import EntityLocation, EntityLocator, JsonTarget, default_json_target
from chamber.paths import EntityKind, Layer, Scope
from chamber.routing import (
    DocumentBody,
    DocumentHeader,
    JsonEntry,
    ReferencedFile,
    RoutingState,
    route_field,
)

logger = logging.getLogger(__name__)


@dataclass
class DocumentInfo:
    exists: bool
    path: Path | None
    scope: Scope | None
    fields: list[str] = field(default_factory=list)


@dataclass
class JsonInfo:
    exists: bool
    path: Path
    layer: Layer | None
    scope: Scope | None
    fields: list[str] = field(default_factory=list)


@dataclass
class FileInfo:
    exists: bool
    path: Path | None


@dataclass
class EntitySources:
    """Where an entity is defined, for display and disambiguation."""

    document: DocumentInfo
    json: JsonInfo
    project_document: FileInfo
    user_document: FileInfo

    def to_dict(self) -> dict[str, Any]:
        def _path(p: Path | None) -> str | None:
            return str(p) if p is not None else None

        def _enum(e: Scope | Layer | None) -> str | None:
            return e.value if e is not None else None

        return {
            "md": {
                "exists": self.document.exists,
                "path": _path(self.document.path),
                "scope": _enum(self.document.scope),
                "fields": list(self.document.fields),
            },
            "json": {
                "exists": self.json.exists,
                "path": _path(self.json.path),
                "layer": _enum(self.json.layer),
                "scope": _enum(self.json.scope),
                "fields": list(self.json.fields),
            },
            "projectMd": {
                "exists": self.project_document.exists,
                "path": _path(self.project_document.path),
            },
            "userMd": {
                "exists": self.user_document.exists,
                "path": _path(self.user_document.path),
            },
        }


def _normalize_content(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    return str(value)


class EntityManager(ABC):
    """Operations on one entity kind. Subclasses set ``kind`` and the delete fallback."""

    kind: EntityKind

    def __init__(self, config: ChamberConfig) -> None:
        self.config = config
        self.locator = EntityLocator(config)

    @property
    def label(self) -> str:
        return self.kind.value

    def _ensure_dirs(self) -> None:
        for d in [self.config.config_root, self.config.agent_dir, self.config.command_dir]:
            d.mkdir(parents=True, exist_ok=True)

    # ── Reads ─────────────────────────────────────────────────

    def get_scope(
        self, name: str, working_directory: str | Path | None = None
    ) -> tuple[Scope | None, Path | None]:
        """Scope and path of the document that reads resolve to."""
        source = self.locator.find_document(self.kind, name, working_directory)
        if source is None:
            return None, None
        return source.scope, source.path

    def read_merged(self, working_directory: str | Path | None = None) -> dict[str, Any]:
        return read_layers(self.config, working_directory).merged

    def get_sources(self, name: str, working_directory: str | Path | None = None) -> EntitySources:
        location = self.locator.locate(self.kind, name, working_directory)

        document_fields: list[str] = []
        if location.document is not None:
            doc = parse_document(location.document.path)
            document_fields = list(doc.header)
            if doc.body:
                document_fields.append(self.kind.content_field)

        json_source = location.json
        if json_source is not None:
            json_info = JsonInfo(
                exists=True,
                path=json_source.path,
                layer=json_source.layer,
                scope=Scope.PROJECT if json_source.layer is Layer.PROJECT else Scope.USER,
                fields=json_source.fields,
            )
        else:
            json_info = JsonInfo(
                exists=False,
                path=default_json_target(location.layers).path,
                layer=None,
                scope=None,
            )

        return EntitySources(
            document=DocumentInfo(
                exists=location.document is not None,
                path=location.document.path if location.document else None,
                scope=location.document.scope if location.document else None,
                fields=document_fields,
            ),
            json=json_info,
            project_document=FileInfo(
                exists=location.project_document_exists, path=location.project_document_path
            ),
            user_document=FileInfo(
                exists=location.user_document_exists, path=location.user_document_path
            ),
        )

    # ── Create ────────────────────────────────────────────────

    def create(
        self,
        name: str,
        fields: dict[str, Any],
        working_directory: str | Path | None = None,
        scope: Scope | str | None = None,
    ) -> Path:
        """Write a new document for ``name``. Names are unique across all sources."""
        self._ensure_dirs()
        location = self.locator.locate(self.kind, name, working_directory)

        if location.project_document_exists:
            raise EntityExistsError(self.label, name, "as project-level .md file")
        if location.user_document_exists:
            raise EntityExistsError(self.label, name, "as user-level .md file")
        if location.json is not None:
            raise EntityExistsError(self.label, name, f"in {location.json.path}")

        requested = Scope(scope) if scope else Scope.USER
        if requested is Scope.PROJECT and location.project_document_path is not None:
            target = location.project_document_path
        else:
            requested = Scope.USER
            target = location.user_document_path

        content_field = self.kind.content_field
        # scope only selects placement, it is never persisted
        header = {k: v for k, v in fields.items() if k not in (content_field, "scope")}
        content = fields.get(content_field)
        write_document(target, header, content if isinstance(content, str) else "")
        logger.info("Created %s %s (%s): %s", self.label, name, requested.value, target)
        return target

    # ── Update ────────────────────────────────────────────────

    def update(
        self,
        name: str,
        updates: dict[str, Any],
        working_directory: str | Path | None = None,
    ) -> None:
        """Apply a partial field update, routing each field to its owning source."""
        self._ensure_dirs()
        location = self.locator.locate(self.kind, name, working_directory)
        json_source = location.json
        has_json_fields = bool(json_source is not None and json_source.fields)
        # Neither a document nor a populated JSON entry: a built-in being overridden
        fabricating = location.document is None and not has_json_fields

        doc: Document | None = None
        doc_path: Path | None = None
        if location.document is not None:
            doc_path = location.document.path
            doc = parse_document(doc_path)
        elif fabricating:
            doc_path = location.user_document_path
            doc = Document()

        target = location.json_target()
        state = RoutingState(
            kind=self.kind,
            name=name,
            config_root=self.config.config_root,
            json_layer=target.layer,
            has_document=location.document is not None,
            fabricating=fabricating,
            document_header=dict(doc.header) if doc else {},
            json_entry=json_source.entry if json_source else None,
        )

        doc_modified = False
        json_modified = False
        for field_name, value in (updates or {}).items():
            if field_name == self.kind.content_field:
                value = _normalize_content(value)
            route = route_field(field_name, state)
            if isinstance(route, DocumentBody):
                doc.body = value
                doc_modified = True
            elif isinstance(route, DocumentHeader):
                doc.header[field_name] = value
                doc_modified = True
            elif isinstance(route, ReferencedFile):
                write_text_atomic(route.path, value)
                logger.info("Wrote %s %s to referenced file %s", self.label, field_name, route.path)
            elif isinstance(route, JsonEntry):
                self._set_json_field(target, name, field_name, value)
                json_modified = True

        if doc_modified:
            write_document(doc_path, doc.header, doc.body)
            if fabricating:
                logger.info("Created user-level override for built-in %s %s", self.label, name)
        if json_modified:
            write_config(target.document, target.path, self.config.backup_product)
        if doc_modified or json_modified:
            logger.info("Updated %s %s: %s", self.label, name, ", ".join(updates))

    def _section(self, document: dict[str, Any]) -> dict[str, Any]:
        """The ``agent`` / ``command`` map of a layer document, created if absent."""
        section = document.get(self.kind.value)
        if not isinstance(section, dict):
            section = {}
            document[self.kind.value] = section
        return section

    def _set_json_field(self, target: JsonTarget, name: str, field_name: str, value: Any) -> None:
        section = self._section(target.document)
        current = section.get(name)
        entry = dict(current) if isinstance(current, dict) else {}
        entry[field_name] = value
        section[name] = entry

    # ── Delete ────────────────────────────────────────────────

    def delete(self, name: str, working_directory: str | Path | None = None) -> bool:
        """Remove ``name`` from every source that defines it.

        Returns True when something was removed. What happens when nothing
        was found depends on the kind (see ``_delete_missing``).
        """
        location = self.locator.locate(self.kind, name, working_directory)
        deleted = False

        if location.project_document_exists:
            location.project_document_path.unlink()
            logger.info("Deleted project-level %s %s", self.label, name)
            deleted = True

        if location.user_document_exists:
            location.user_document_path.unlink()
            logger.info("Deleted user-level %s %s", self.label, name)
            deleted = True

        json_source = location.json
        if json_source is not None:
            section = json_source.document.get(self.kind.value)
            if isinstance(section, dict):
                section.pop(name, None)
            write_config(json_source.document, json_source.path, self.config.backup_product)
            logger.info("Deleted %s %s from %s", self.label, name, json_source.path)
            deleted = True

        if not deleted:
            self._delete_missing(name, location)
        return deleted

    @abstractmethod
    def _delete_missing(self, name: str, location: EntityLocation) -> None:
        """Called by delete when no source defines ``name``."""


class AgentManager(EntityManager):
    kind = EntityKind.AGENT

    def _delete_missing(self, name: str, location: EntityLocation) -> None:
        # No user-authored source: a built-in agent. Disable it instead.
        target = default_json_target(location.layers)
        self._section(target.document)[name] = {"disable": True}
        write_config(target.document, target.path, self.config.backup_product)
        logger.info("Disabled built-in agent %s in %s", name, target.path)


class CommandManager(EntityManager):
    kind = EntityKind.COMMAND

    def _delete_missing(self, name: str, location: EntityLocation) -> None:
        raise EntityNotFoundError(self.label, name)


def get_manager(kind: EntityKind | str, config: ChamberConfig) -> EntityManager:
    kind = EntityKind(kind)
    if kind is EntityKind.AGENT:
        return AgentManager(config)
    return CommandManager(config)
