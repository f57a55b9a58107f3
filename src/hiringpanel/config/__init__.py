"""YAML configuration loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import AppConfig, load_config


def read_yaml(path: str | Path) -> Any:
    """Parse a YAML document; an empty file yields an empty mapping."""
    with Path(path).open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    return {} if loaded is None else loaded


class ConfigManager:
    """Loads named YAML documents from a directory."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def path_for(self, name: str) -> Path:
        return self._base_path / f"{name}.yaml"

    def load(self, name: str) -> Any:
        """Load a YAML document by name without file extension."""
        return read_yaml(self.path_for(name))

    def load_app_config(self, name: str = "hiringpanel") -> AppConfig:
        """Validated application settings; a missing file means defaults."""
        path = self.path_for(name)
        if not path.exists():
            return AppConfig()
        return load_config(read_yaml(path))


__all__ = ["ConfigManager", "read_yaml"]
