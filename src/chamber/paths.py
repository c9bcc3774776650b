"""Canonical on-disk locations for agent and command sources.

Layout (R = config root, P = project working directory):
    R/agent/<name>.md, R/command/<name>.md          user-scope documents
    P/.opencode/agent/<name>.md, .../command/...    project-scope documents
    R/opencode.json                                 user layer
    P/opencode.json                                 project layer
    $OPENCODE_CONFIG                                custom layer

Nothing here touches the filesystem. Project paths are ``None`` when no
working directory is known.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from chamber.config import ChamberConfig

PROJECT_DIR_NAME = ".opencode"
CONFIG_FILENAME = "opencode.json"


class EntityKind(str, Enum):
    AGENT = "agent"
    COMMAND = "command"

    @property
    def content_field(self) -> str:
        """The field stored as the document body."""
        return "prompt" if self is EntityKind.AGENT else "template"


class Scope(str, Enum):
    """Where a document source lives."""

    USER = "user"
    PROJECT = "project"


class Layer(str, Enum):
    """JSON configuration layers, in ascending precedence."""

    USER = "user"
    PROJECT = "project"
    CUSTOM = "custom"


def user_document_dir(config: ChamberConfig, kind: EntityKind) -> Path:
    return config.config_root / kind.value


def project_document_dir(kind: EntityKind, working_directory: str | Path | None) -> Path | None:
    if not working_directory:
        return None
    return Path(working_directory) / PROJECT_DIR_NAME / kind.value


def document_path(
    config: ChamberConfig,
    kind: EntityKind,
    scope: Scope,
    name: str,
    working_directory: str | Path | None = None,
) -> Path | None:
    """Path of the ``<name>.md`` document for a scope, or None if unavailable."""
    if scope is Scope.PROJECT:
        base = project_document_dir(kind, working_directory)
        if base is None:
            return None
    else:
        base = user_document_dir(config, kind)
    return base / f"{name}.md"


def user_config_path(config: ChamberConfig) -> Path:
    return config.user_config_file


def project_config_path(working_directory: str | Path | None) -> Path | None:
    if not working_directory:
        return None
    return Path(working_directory) / CONFIG_FILENAME


def custom_config_path(config: ChamberConfig) -> Path | None:
    if config.custom_config_path is None:
        return None
    return Path(config.custom_config_path).resolve()


def layer_paths(
    config: ChamberConfig, working_directory: str | Path | None = None
) -> dict[Layer, Path | None]:
    """Map every JSON layer to its document path (None when not configured)."""
    return {
        Layer.USER: user_config_path(config),
        Layer.PROJECT: project_config_path(working_directory),
        Layer.CUSTOM: custom_config_path(config),
    }
