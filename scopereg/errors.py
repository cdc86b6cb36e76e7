"""Error kinds and result values for the scope registry.

Two channels:
- ``ScopeConfigError`` is raised, and only for an unusable root path or
  malformed options.
- Everything else is a ``ScopeError`` value returned to the caller after
  being reported, so one failing scope never stops the rest.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    CONFIG_ERROR = "config_error"
    NOT_FOUND = "not_found"
    PARENT_NOT_FOUND = "parent_not_found"
    NOT_ACTIVE = "not_active"  # Leaf indexed but not materialized yet
    NOT_PRELOADED = "not_preloaded"
    FILE_NOT_FOUND = "file_not_found"
    READ_ERROR = "read_error"
    EMPTY_SCOPE = "empty_scope"
    USAGE_ERROR = "usage_error"  # Wrong number of keys
    DUPLICATE_NAME = "duplicate_name"
    INVALID_DEFINITION = "invalid_definition"


# Default messages, kept short so they can be matched on by callers
MESSAGES = {
    ErrorKind.CONFIG_ERROR: "path not found",
    ErrorKind.NOT_FOUND: "scope not found",
    ErrorKind.PARENT_NOT_FOUND: "parent not found",
    ErrorKind.NOT_ACTIVE: "scope not active",
    ErrorKind.NOT_PRELOADED: "scopes not preloaded",
    ErrorKind.FILE_NOT_FOUND: "file not found",
    ErrorKind.READ_ERROR: "file read error",
    ErrorKind.EMPTY_SCOPE: "empty scope",
    ErrorKind.USAGE_ERROR: "incorrect number of arguments",
    ErrorKind.DUPLICATE_NAME: "name already exists",
    ErrorKind.INVALID_DEFINITION: "invalid definition",
}


@dataclass(frozen=True)
class ScopeError:
    """A recoverable failure, returned in place of the requested object."""

    kind: ErrorKind
    message: str = ""
    context: str = ""

    def __post_init__(self):
        if not self.message:
            object.__setattr__(self, "message", MESSAGES[self.kind])

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        if self.context:
            return f"{self.message}: {self.context}"
        return self.message


class ScopeConfigError(Exception):
    """Raised when the registry cannot be configured (e.g. missing root)."""

    def __init__(self, message: str, path: str = ""):
        self.kind = ErrorKind.CONFIG_ERROR
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)


def is_error(value: object) -> bool:
    return isinstance(value, ScopeError)
