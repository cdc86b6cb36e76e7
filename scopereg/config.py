"""Registry options — where the scopes live and how they are loaded.

Options can be given in code or read from a YAML file:

    path: /srv/app
    dir: ./scopes/
    preload: true
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from scopereg.errors import ScopeConfigError

DEFAULT_DIR = "./scopes/"


@dataclass
class RegistryOptions:
    """Construction options for a ScopeRegistry."""

    path: str | None = None  # Base directory, defaults to the cwd
    dir: str = DEFAULT_DIR
    preload: bool = False

    def root_path(self) -> Path:
        base = Path(self.path) if self.path else Path(os.getcwd())
        return base / (self.dir or DEFAULT_DIR)

    def merged(self, **overrides) -> RegistryOptions:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        _check_types(values)
        return replace(self, **values)

    @classmethod
    def from_dict(cls, data: dict | None) -> RegistryOptions:
        data = data or {}
        if not isinstance(data, dict):
            raise ScopeConfigError("Options must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ScopeConfigError(f"Unknown option(s): {', '.join(unknown)}")
        _check_types(data)
        return cls(**data)


def load_options(config_path: str | Path) -> RegistryOptions:
    """Read RegistryOptions from a YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise ScopeConfigError("Config file not found", str(path))

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ScopeConfigError(f"Invalid YAML in {path}: {e}") from e

    # A nested "scopes:" section is accepted so the options can live in a
    # larger application config file.
    if isinstance(data, dict) and isinstance(data.get("scopes"), dict):
        data = data["scopes"]

    return RegistryOptions.from_dict(data)


def _check_types(values: dict):
    for key in ("path", "dir"):
        if key in values and values[key] is not None and not isinstance(values[key], str):
            raise ScopeConfigError(f"Option '{key}' must be a string")
    if "preload" in values and not isinstance(values["preload"], bool):
        raise ScopeConfigError("Option 'preload' must be true or false")
