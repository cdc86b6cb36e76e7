"""scopereg — a registry of named callables discovered from a scopes directory.

The scopes directory structure becomes the namespace structure:

    scopes/
    |- std.py
    |- utils/
         |- file/
              |- copyFile.py

    import scopereg

    scopes = scopereg.init(preload=True)
    scopes.get("std")["getDateTime"]()
    scopes.get_meta("file", "copyFile")
"""

__version__ = "0.1.0"

from scopereg.config import RegistryOptions, load_options
from scopereg.errors import ErrorKind, ScopeConfigError, ScopeError, is_error
from scopereg.registry.models import MaterializedRecord, RegistryMeta, Unit, UnitKind
from scopereg.registry.scope_registry import ScopeRegistry

__all__ = [
    "ErrorKind",
    "MaterializedRecord",
    "RegistryMeta",
    "RegistryOptions",
    "ScopeConfigError",
    "ScopeError",
    "ScopeRegistry",
    "Unit",
    "UnitKind",
    "init",
    "is_error",
    "load_options",
]


def init(options: RegistryOptions | None = None, **overrides) -> ScopeRegistry:
    """Build a registry.

    Without a path the scopes directory is looked up under the current
    working directory (``./scopes/``). Raises ScopeConfigError when it does
    not exist.
    """
    return ScopeRegistry(options, **overrides)
