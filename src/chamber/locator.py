"""Find where an agent or command is currently defined.

Documents and JSON entries are resolved independently:

- document: project file beats user file
- JSON entry: custom layer beats project layer beats user layer

Both winners are reported side by side, never collapsed into one record.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chamber.config import ChamberConfig
from chamber.json_store import LAYER_PRECEDENCE, ConfigLayers, read_layers
from chamber.paths import EntityKind, Layer, Scope, document_path

logger = logging.getLogger(__name__)


@dataclass
class DocumentSource:
    path: Path
    scope: Scope


@dataclass
class JsonTarget:
    """A layer document that JSON writes go to."""

    layer: Layer
    path: Path
    document: dict[str, Any]


@dataclass
class JsonSource(JsonTarget):
    """The read-authoritative JSON entry for an entity."""

    entry: Any = None

    @property
    def fields(self) -> list[str]:
        return list(self.entry) if isinstance(self.entry, dict) else []


@dataclass
class EntityLocation:
    kind: EntityKind
    name: str
    document: DocumentSource | None
    json: JsonSource | None
    layers: ConfigLayers
    project_document_path: Path | None
    user_document_path: Path
    project_document_exists: bool
    user_document_exists: bool

    def json_target(self) -> JsonTarget:
        """Where JSON writes for this entity land: the owning layer if any."""
        if self.json is not None:
            return self.json
        return default_json_target(self.layers)


def default_json_target(layers: ConfigLayers) -> JsonTarget:
    """Highest-precedence configured layer: custom, else project, else user."""
    for layer in (Layer.CUSTOM, Layer.PROJECT):
        path = layers.path(layer)
        if path is not None:
            return JsonTarget(layer=layer, path=path, document=layers.document(layer))
    return JsonTarget(
        layer=Layer.USER, path=layers.path(Layer.USER), document=layers.document(Layer.USER)
    )


def find_json_source(layers: ConfigLayers, kind: EntityKind, name: str) -> JsonSource | None:
    for layer in LAYER_PRECEDENCE:
        path = layers.path(layer)
        if path is None:
            continue
        document = layers.document(layer)
        section = document.get(kind.value)
        if isinstance(section, dict) and name in section:
            return JsonSource(layer=layer, path=path, document=document, entry=section[name])
    return None


class EntityLocator:
    def __init__(self, config: ChamberConfig) -> None:
        self.config = config

    def find_document(
        self, kind: EntityKind, name: str, working_directory: str | Path | None = None
    ) -> DocumentSource | None:
        for scope in (Scope.PROJECT, Scope.USER):
            path = document_path(self.config, kind, scope, name, working_directory)
            if path is not None and path.exists():
                return DocumentSource(path=path, scope=scope)
        return None

    def locate(
        self, kind: EntityKind, name: str, working_directory: str | Path | None = None
    ) -> EntityLocation:
        project_path = document_path(self.config, kind, Scope.PROJECT, name, working_directory)
        user_path = document_path(self.config, kind, Scope.USER, name)
        project_exists = project_path is not None and project_path.exists()
        user_exists = user_path.exists()

        if project_exists:
            document = DocumentSource(path=project_path, scope=Scope.PROJECT)
        elif user_exists:
            document = DocumentSource(path=user_path, scope=Scope.USER)
        else:
            document = None

        layers = read_layers(self.config, working_directory)
        json_source = find_json_source(layers, kind, name)

        logger.debug(
            "Located %s %s: document=%s json=%s",
            kind.value,
            name,
            document.scope.value if document else None,
            json_source.layer.value if json_source else None,
        )
        return EntityLocation(
            kind=kind,
            name=name,
            document=document,
            json=json_source,
            layers=layers,
            project_document_path=project_path,
            user_document_path=user_path,
            project_document_exists=project_exists,
            user_document_exists=user_exists,
        )
