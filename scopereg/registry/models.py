"""Registry data models — units, materialized records, and registry meta."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable


class UnitKind(Enum):
    FUNCTION = "function"
    CLASS = "class"
    LAMBDA = "lambda"


@dataclass(frozen=True)
class Unit:
    """One named callable definition found in a scope file."""

    scope: str
    kind: UnitKind
    name: str
    arg_signature: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "scope": self.scope,
            "kind": self.kind.value,
            "name": self.name,
            "arg_signature": self.arg_signature,
        }


@dataclass
class MaterializedRecord:
    """A scope file turned into callables.

    ``cached`` is set by the registry, never by the materializer: it marks
    that the record may only be replaced by an explicit rebuild.
    """

    scope_name: str
    file_path: str
    loaded_at: datetime
    units: list[Unit] = field(default_factory=list)
    callables: dict[str, Callable[..., Any]] = field(default_factory=dict)
    cached: bool = False

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self.callables[name]

    def __contains__(self, name: object) -> bool:
        return name in self.callables

    @property
    def names(self) -> list[str]:
        return [u.name for u in self.units]


@dataclass
class RegistryMeta:
    """Name, version and settings of a built registry."""

    name: str
    version: str
    root_path: str
    active: datetime
    preload: bool = False
    reload: bool = False
    reload_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "root_path": self.root_path,
            "active": self.active.isoformat(),
            "preload": self.preload,
            "reload": self.reload,
            "reload_time": self.reload_time.isoformat() if self.reload_time else None,
        }
