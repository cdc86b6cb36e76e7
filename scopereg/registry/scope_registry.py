"""Scope registry — named callables discovered from a scopes directory.

The registry mirrors the directory into a namespace tree and serves scopes
from it in one of two modes:

- preload: every scope file is materialized at construction; reads never
  touch the filesystem afterwards.
- lazy: ``get`` materializes a scope on first use and caches it; ``find``
  only reports what is already loaded.

A cached scope is only ever replaced by ``rebuild``.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from pathlib import Path

from scopereg import __version__
from scopereg.config import RegistryOptions
from scopereg.errors import ErrorKind, ScopeConfigError, ScopeError
from scopereg.extract.materializer import materialize, materialize_tree
from scopereg.registry.indexer import index_scopes
from scopereg.registry.models import MaterializedRecord, RegistryMeta, Unit
from scopereg.registry.tree import (
    Directory,
    FailedLeaf,
    MaterializedLeaf,
    NamespaceNode,
    UnmaterializedLeaf,
    find,
    find_and_replace,
)
from scopereg.reporting import fail, report

MAX_KEYS = 2

ScopeValue = MaterializedRecord | Directory | ScopeError


class ScopeRegistry:
    """A namespace tree of scopes with preload or on-demand loading."""

    NAME = "scopereg"

    def __init__(self, options: RegistryOptions | None = None, **overrides):
        self.options = (options or RegistryOptions()).merged(**overrides)
        self._lock = threading.RLock()
        self._tree = Directory()
        self._meta: RegistryMeta | None = None
        self._build(self.options)

    @property
    def tree(self) -> Directory:
        return self._tree

    @property
    def meta(self) -> RegistryMeta:
        return self._meta

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_meta(self, *keys: str) -> RegistryMeta | list[Unit] | ScopeError:
        """Registry meta with no keys, else the units of one scope.

        One key returns the first matching scope anywhere in the tree, two
        keys (parent, scope) the first matching scope inside ``parent``.
        """
        if not keys:
            return self._meta

        error = self._check_keys("get_meta", keys)
        if error is not None:
            return error

        node = find(self._tree, *keys)
        if node is None:
            return self._not_found("get_meta", keys)
        if isinstance(node, MaterializedLeaf):
            return list(node.record.units)
        if isinstance(node, FailedLeaf):
            return node.error
        if isinstance(node, UnmaterializedLeaf):
            return fail(ErrorKind.NOT_ACTIVE, "get_meta", keys)
        return fail(ErrorKind.NOT_FOUND, "get_meta", keys, message="not a scope")

    def find(self, *keys: str | tuple[str, str]):
        """Look up scopes without loading anything.

        - no keys: the whole tree
        - one name: the first matching scope or namespace
        - several keys: a dict with one entry per key, where a
          ``(parent, scope)`` pair is keyed by that tuple, so it never
          collides with a plain key naming the same parent

        Scopes not loaded yet come back as a NOT_ACTIVE error.
        """
        if not keys:
            return self._tree

        if len(keys) == 1 and isinstance(keys[0], str):
            return self._value(find(self._tree, keys[0]), "find", keys[0])

        results: dict[str | tuple[str, str], object] = {}
        for key in keys:
            if isinstance(key, str):
                results[key] = self._value(find(self._tree, key), "find", key)
                continue

            if not isinstance(key, (tuple, list)) or len(key) != 2:
                results[str(key)] = fail(
                    ErrorKind.USAGE_ERROR, "find", key, message="expected a (parent, scope) pair"
                )
                continue

            parent, child = key
            if find(self._tree, parent) is None:
                results[(parent, child)] = fail(ErrorKind.PARENT_NOT_FOUND, "find", parent)
            else:
                results[(parent, child)] = self._value(find(self._tree, parent, child), "find", key)

        return results

    def get(self, *keys: str):
        """Return a scope, loading and caching it on first use.

        Two keys select ``scope`` inside ``parent``. With no keys the whole
        tree is returned, but only for a preloaded registry.
        """
        if not keys:
            if self._meta.preload:
                return self._tree
            return fail(ErrorKind.USAGE_ERROR, "get", message="incorrect number of arguments")

        error = self._check_keys("get", keys)
        if error is not None:
            return error

        with self._lock:
            node = find(self._tree, *keys)
            if node is None:
                return self._not_found("get", keys)
            if not isinstance(node, UnmaterializedLeaf):
                return self._value(node, "get", keys)

            if not Path(node.path).exists():
                return fail(ErrorKind.FILE_NOT_FOUND, "get", node.path)

            leaf = self._load(node.path, keys[-1])
            self._replace(keys, leaf)

        return self._value(leaf, "get", keys)

    def rebuild(self, *keys: str):
        """Reload one scope, or everything.

        With no keys the whole registry is rebuilt from its options; this
        is only allowed for a preloaded registry. With one or two keys the
        matching scope is read again from disk and replaces the cached one.
        """
        if not keys:
            if not self._meta.preload:
                return fail(ErrorKind.NOT_PRELOADED, "rebuild")
            with self._lock:
                self._build(self.options, reload=True)
            report(logging.INFO, "rebuild", "all scopes reloaded", str(self.options.root_path()))
            return self._tree

        error = self._check_keys("rebuild", keys)
        if error is not None:
            return error

        with self._lock:
            node = find(self._tree, *keys)
            if node is None or isinstance(node, Directory):
                return self._not_found("rebuild", keys)

            if not Path(node.path).exists():
                return fail(ErrorKind.FILE_NOT_FOUND, "rebuild", node.path)

            leaf = self._load(node.path, keys[-1])
            self._replace(keys, leaf)

        if isinstance(leaf, MaterializedLeaf):
            where = f"{keys[1]} in {keys[0]}" if len(keys) == 2 else keys[0]
            report(logging.INFO, "rebuild", f"{where} reloaded")
        return self._value(leaf, "rebuild", keys)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build(self, options: RegistryOptions, reload: bool = False):
        """Index (and maybe preload) the tree, then swap it in.

        Nothing is replaced when the root is missing.
        """
        root = options.root_path()
        if not root.is_dir():
            report(logging.CRITICAL, "build", "path not found", str(root))
            raise ScopeConfigError("path not found", str(root))

        tree = index_scopes(root)
        if options.preload:
            materialize_tree(tree)

        now = datetime.now(timezone.utc)
        meta = RegistryMeta(
            name=self.NAME,
            version=__version__,
            root_path=str(root),
            active=now,
            preload=options.preload,
        )
        if reload:
            meta.reload = True
            meta.reload_time = now

        self._tree = tree
        self._meta = meta

    def _load(self, path: str, scope_name: str) -> MaterializedLeaf | FailedLeaf:
        leaf = materialize(path, scope_name)
        if isinstance(leaf, MaterializedLeaf):
            leaf.record.cached = True
        return leaf

    def _replace(self, keys: tuple[str, ...], leaf: NamespaceNode):
        """Put ``leaf`` where ``find(self._tree, *keys)`` found its target."""
        if len(keys) == 1:
            find_and_replace(self._tree, keys[0], leaf)
            return

        parent, key = keys
        if find_and_replace(self._tree, key, leaf, parent=parent) is None:
            # target sits deeper than an immediate child of parent
            find_and_replace(find(self._tree, parent), key, leaf)

    def _value(self, node: NamespaceNode | None, operation: str, context) -> ScopeValue:
        if node is None:
            return fail(ErrorKind.NOT_FOUND, operation, context)
        if isinstance(node, MaterializedLeaf):
            return node.record
        if isinstance(node, FailedLeaf):
            return node.error
        if isinstance(node, UnmaterializedLeaf):
            return fail(ErrorKind.NOT_ACTIVE, operation, context)
        return node

    def _not_found(self, operation: str, keys: tuple[str, ...]) -> ScopeError:
        if len(keys) == 2:
            if find(self._tree, keys[0]) is None:
                return fail(ErrorKind.PARENT_NOT_FOUND, operation, keys[0])
            return fail(
                ErrorKind.NOT_FOUND,
                operation,
                keys,
                message=f"scope {keys[1]} not found in {keys[0]}",
            )
        return fail(ErrorKind.NOT_FOUND, operation, keys[0])

    @staticmethod
    def _check_keys(operation: str, keys: tuple) -> ScopeError | None:
        if len(keys) > MAX_KEYS:
            return fail(ErrorKind.USAGE_ERROR, operation, keys)
        if not all(isinstance(k, str) for k in keys):
            return fail(ErrorKind.USAGE_ERROR, operation, keys, message="keys must be strings")
        return None
