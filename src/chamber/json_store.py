"""Layered opencode.json documents: read, merge, write with backup.

Three layers may exist, merged in ascending precedence::

    user (R/opencode.json) < project (P/opencode.json) < custom ($OPENCODE_CONFIG)

Documents are read fresh on every call. Comments are allowed in the files
and stripped before parsing; a missing file reads as ``{}`` but a malformed
one is an error.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jstyleson

from chamber.config import ChamberConfig
from chamber.errors import ConfigParseError
from chamber.fileio import write_text_atomic
from chamber.paths import Layer, layer_paths

logger = logging.getLogger(__name__)

# Highest precedence first
LAYER_PRECEDENCE = (Layer.CUSTOM, Layer.PROJECT, Layer.USER)


def read_one(path: Path | None) -> dict[str, Any]:
    if path is None or not path.exists():
        return {}
    # Emptiness is judged after comments are removed
    text = jstyleson.dispose(path.read_text(encoding="utf-8"))
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigParseError(path, str(e)) from e
    if not isinstance(data, dict):
        raise ConfigParseError(path, "top-level value is not an object")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``override`` merged over ``base``.

    Nested dicts merge recursively; any other value (lists included) replaces
    the base value. Neither input is modified.
    """
    result: dict[str, Any] = {}
    for key, value in base.items():
        result[key] = _copy_tree(value)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = _copy_tree(value)
    return result


def _copy_tree(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _copy_tree(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy_tree(v) for v in value]
    return value


def merge_layers(
    user: dict[str, Any], project: dict[str, Any], custom: dict[str, Any]
) -> dict[str, Any]:
    return deep_merge(deep_merge(user, project), custom)


@dataclass
class ConfigLayers:
    """The three raw layer documents as read from disk, plus their paths."""

    documents: dict[Layer, dict[str, Any]] = field(default_factory=dict)
    paths: dict[Layer, Path | None] = field(default_factory=dict)

    def document(self, layer: Layer) -> dict[str, Any]:
        return self.documents.setdefault(layer, {})

    def path(self, layer: Layer) -> Path | None:
        return self.paths.get(layer)

    @property
    def merged(self) -> dict[str, Any]:
        return merge_layers(
            self.document(Layer.USER),
            self.document(Layer.PROJECT),
            self.document(Layer.CUSTOM),
        )


def read_layers(
    config: ChamberConfig, working_directory: str | Path | None = None
) -> ConfigLayers:
    paths = layer_paths(config, working_directory)
    documents = {layer: read_one(path) for layer, path in paths.items()}
    return ConfigLayers(documents=documents, paths=paths)


@dataclass
class WriteResult:
    path: Path
    backup_path: Path | None = None
    backup_error: OSError | None = None


def write_config(
    data: dict[str, Any], path: Path, product: str = "openchamber"
) -> WriteResult:
    """Write a JSON document, snapshotting the previous file first.

    The backup is best-effort: a failed copy is logged and reported in the
    result, and the write goes ahead regardless.
    """
    result = WriteResult(path=path)
    if path.exists():
        backup_path = path.with_name(f"{path.name}.{product}.backup")
        try:
            shutil.copyfile(path, backup_path)
            result.backup_path = backup_path
        except OSError as e:
            logger.warning("Backup of %s failed, continuing: %s", path, e)
            result.backup_error = e
    write_text_atomic(path, json.dumps(data, indent=2, ensure_ascii=False))
    logger.debug("Wrote config %s", path)
    return result
