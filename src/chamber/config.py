"""Configuration loading from environment variables and chamber.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

_DEFAULT_CONFIG_ROOT = Path.home() / ".config" / "opencode"
_CONFIG_FILENAME = "chamber.toml"


@dataclass
class ChamberConfig:
    """Host configuration, built once at startup and passed to every component."""

    config_root: Path = _DEFAULT_CONFIG_ROOT
    custom_config_path: Path | None = None
    backup_product: str = "openchamber"
    log_level: str = "INFO"

    @property
    def agent_dir(self) -> Path:
        return self.config_root / "agent"

    @property
    def command_dir(self) -> Path:
        return self.config_root / "command"

    @property
    def user_config_file(self) -> Path:
        return self.config_root / "opencode.json"


def _resolve_custom_path(raw: str | None) -> Path | None:
    if not raw:
        return None
    return Path(raw).expanduser().resolve()


def load_config(config_path: Path | None = None) -> ChamberConfig:
    """Load configuration from environment variables and optional chamber.toml.

    Priority: environment variables > chamber.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.config/chamber/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".config" / "chamber" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    root = os.getenv("CHAMBER_CONFIG_ROOT", file_data.get("config_root"))

    return ChamberConfig(
        config_root=Path(root).expanduser() if root else _DEFAULT_CONFIG_ROOT,
        custom_config_path=_resolve_custom_path(
            os.getenv("OPENCODE_CONFIG", file_data.get("custom_config"))
        ),
        backup_product=os.getenv(
            "CHAMBER_BACKUP_PRODUCT", file_data.get("backup_product", "openchamber")
        ),
        log_level=os.getenv("CHAMBER_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
