"""Path indexer — mirror a scopes directory into a namespace tree.

Every subdirectory becomes a ``Directory`` node under its own name and
every file becomes an ``UnmaterializedLeaf`` under its stem (the file name
without its final extension).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from scopereg.errors import ErrorKind, ScopeConfigError
from scopereg.registry.tree import Directory, UnmaterializedLeaf
from scopereg.reporting import fail, report

# Entries never treated as scopes
SKIP_NAMES = {"__pycache__", ".git", ".svn", ".hg"}


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: Path
    is_dir: bool

    @property
    def key(self) -> str:
        return self.name if self.is_dir else Path(self.name).stem


def list_directory(path: str | Path) -> list[DirectoryEntry]:
    """List one directory level, sorted by name.

    Hidden entries and ``SKIP_NAMES`` are left out. Raises OSError when the
    directory cannot be read.
    """
    entries = []
    for item in sorted(Path(path).iterdir(), key=lambda p: p.name):
        if item.name in SKIP_NAMES or item.name.startswith("."):
            continue
        entries.append(DirectoryEntry(name=item.name, path=item, is_dir=item.is_dir()))
    return entries


def index_scopes(root: str | Path) -> Directory:
    """Build the namespace tree for ``root``.

    Raises ScopeConfigError if ``root`` does not exist. Unreadable
    subdirectories are reported and indexed as empty namespaces.
    """
    root = Path(root)
    if not root.is_dir():
        raise ScopeConfigError("path not found", str(root))

    return _index_directory(root)


def _index_directory(path: Path) -> Directory:
    tree = Directory()

    try:
        entries = list_directory(path)
    except OSError as e:
        fail(ErrorKind.READ_ERROR, "index_scopes", str(path), error=e)
        return tree

    # Directories are inserted first so that a file sharing a directory's
    # name is always the one rejected, whatever the listing order.
    for entry in sorted(entries, key=lambda e: not e.is_dir):
        key = entry.key
        if key in tree:
            fail(
                ErrorKind.DUPLICATE_NAME,
                "index_scopes",
                str(entry.path),
                message=f"entry ignored, '{key}' already exists",
            )
            continue

        if entry.is_dir:
            tree[key] = _index_directory(entry.path)
        else:
            tree[key] = UnmaterializedLeaf(path=str(entry.path))

    # Restore listing order for the accepted entries
    order = {e.key: i for i, e in reversed(list(enumerate(entries)))}
    tree.children = dict(sorted(tree.children.items(), key=lambda kv: order[kv[0]]))

    report(logging.DEBUG, "index_scopes", f"indexed {len(tree)} entries", str(path))
    return tree
