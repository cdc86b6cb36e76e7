"""Namespace tree — the in-memory mirror of the scopes directory.

Nodes are one of four types:

- ``Directory``: name -> node mapping, in directory-listing order
- ``UnmaterializedLeaf``: a scope file that has not been loaded
- ``MaterializedLeaf``: a scope file turned into a ``MaterializedRecord``
- ``FailedLeaf``: a scope file that could not be loaded (read error,
  empty file), kept with its path so it can be rebuilt

``find`` and ``find_and_replace`` walk the tree depth-first and stop at
the first match. Each level is checked for an exact key before any child
directory is entered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

from scopereg.errors import ScopeError
from scopereg.registry.models import MaterializedRecord


@dataclass
class Directory:
    children: dict[str, NamespaceNode] = field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.children

    def __getitem__(self, key: str) -> NamespaceNode:
        return self.children[key]

    def __setitem__(self, key: str, node: NamespaceNode):
        self.children[key] = node

    def __iter__(self) -> Iterator[str]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def items(self):
        return self.children.items()

    def subdirectories(self) -> Iterator[tuple[str, Directory]]:
        for key, node in self.children.items():
            if isinstance(node, Directory):
                yield key, node

    def leaves(self) -> Iterator[tuple[str, Directory, Leaf]]:
        """Yield (key, holder, leaf) for every leaf, depth-first."""
        for key, node in list(self.children.items()):
            if isinstance(node, Directory):
                yield from node.leaves()
            else:
                yield key, self, node

    def shape(self) -> dict:
        """Nested dict of keys; leaves map to their state name."""
        return {
            key: node.shape() if isinstance(node, Directory) else node.state
            for key, node in self.children.items()
        }


@dataclass
class UnmaterializedLeaf:
    path: str
    state = "unmaterialized"


@dataclass
class MaterializedLeaf:
    record: MaterializedRecord
    state = "materialized"

    @property
    def path(self) -> str:
        return self.record.file_path


@dataclass
class FailedLeaf:
    path: str
    scope_name: str
    error: ScopeError
    state = "failed"


Leaf = Union[UnmaterializedLeaf, MaterializedLeaf, FailedLeaf]
NamespaceNode = Union[Directory, UnmaterializedLeaf, MaterializedLeaf, FailedLeaf]


def locate(tree: Directory, key: str) -> tuple[Directory, NamespaceNode] | None:
    """Return (holder, node) for the first depth-first match of ``key``."""
    if key in tree.children:
        return tree, tree.children[key]

    for _, child in tree.subdirectories():
        found = locate(child, key)
        if found is not None:
            return found

    return None


def find(tree: Directory, *keys: str) -> NamespaceNode | None:
    """Find a node by key, or by a path of keys.

    With one key the whole tree is searched. With more, each key is looked
    up (anywhere) inside the subtree found for the previous one, so
    ``find(tree, "utils", "copyFile")`` matches ``utils/file/copyFile``.
    """
    if not keys:
        return tree

    node: NamespaceNode = tree
    for key in keys:
        if not isinstance(node, Directory):
            return None
        found = locate(node, key)
        if found is None:
            return None
        node = found[1]

    return node


def find_and_replace(
    tree: Directory,
    key: str,
    replacement: NamespaceNode,
    parent: str | None = None,
) -> Directory | None:
    """Replace the first match of ``key`` and return the tree.

    Without ``parent`` the first depth-first match is replaced. With
    ``parent``, ``key`` is only replaced when it is an immediate child of
    the first ``parent`` match. Returns None, leaving the tree untouched,
    when there is nothing to replace.
    """
    if parent is None:
        found = locate(tree, key)
        if found is None:
            return None
        holder, _ = found
    else:
        found = locate(tree, parent)
        if found is None:
            return None
        holder = found[1]
        if not isinstance(holder, Directory) or key not in holder:
            return None

    holder[key] = replacement
    return tree
