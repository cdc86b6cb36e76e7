"""Materializer — turn a scope file into a record of callables.

The file's import statements run first, then every valid candidate is
compiled and executed into one namespace shared by the whole scope, so
units can use the imports and call each other.
"""

from __future__ import annotations

import ast
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from scopereg.errors import ErrorKind
from scopereg.extract.extractor import Candidate, extract, extract_prelude
from scopereg.registry.models import MaterializedRecord, Unit
from scopereg.registry.tree import (
    Directory,
    FailedLeaf,
    MaterializedLeaf,
    UnmaterializedLeaf,
)
from scopereg.reporting import fail, report


def materialize(path: str | Path, scope_name: str) -> MaterializedLeaf | FailedLeaf:
    """Load one scope file.

    Never raises for a bad file: unreadable and empty files come back as a
    FailedLeaf. The record's ``cached`` flag is left False.
    """
    path = str(path)

    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        error = fail(ErrorKind.READ_ERROR, "materialize", path, error=e)
        return FailedLeaf(path=path, scope_name=scope_name, error=error)

    if not text.strip():
        error = fail(ErrorKind.EMPTY_SCOPE, "materialize", path)
        return FailedLeaf(path=path, scope_name=scope_name, error=error)

    namespace: dict[str, Any] = {"__name__": f"scopes.{scope_name}", "__file__": path}
    _run_prelude(text, path, scope_name, namespace)

    record = MaterializedRecord(
        scope_name=scope_name,
        file_path=path,
        loaded_at=datetime.now(timezone.utc),
    )

    for candidate in extract(text):
        _load_candidate(candidate, record, namespace)

    report(
        logging.DEBUG,
        "materialize",
        f"loaded {len(record.units)} unit(s)",
        (scope_name, path),
    )
    return MaterializedLeaf(record=record)


def materialize_tree(tree: Directory) -> Directory:
    """Materialize every unmaterialized leaf of ``tree`` in place."""
    for key, holder, leaf in tree.leaves():
        if isinstance(leaf, UnmaterializedLeaf):
            holder[key] = materialize(leaf.path, key)
    return tree


def _run_prelude(text: str, path: str, scope_name: str, namespace: dict[str, Any]):
    for line, source in extract_prelude(text):
        try:
            exec(_compile_at(source, path, line), namespace)
        except Exception as e:
            fail(
                ErrorKind.INVALID_DEFINITION,
                "materialize",
                (scope_name, f"line {line}"),
                message="import ignored",
                error=e,
            )


def _load_candidate(candidate: Candidate, record: MaterializedRecord, namespace: dict[str, Any]):
    context = (record.scope_name, candidate.name)

    if not candidate.valid:
        fail(
            ErrorKind.INVALID_DEFINITION,
            "materialize",
            context,
            message=f"{candidate.kind.value} ignored, {candidate.reason}",
        )
        return

    if candidate.name in record.callables:
        fail(
            ErrorKind.DUPLICATE_NAME,
            "materialize",
            context,
            message=f"{candidate.kind.value} ignored, already exists",
        )
        return

    try:
        exec(_compile_at(candidate.body, record.file_path, candidate.line), namespace)
    except Exception as e:
        fail(
            ErrorKind.INVALID_DEFINITION,
            "materialize",
            context,
            message=f"{candidate.kind.value} ignored, failed to load",
            error=e,
        )
        return

    record.units.append(
        Unit(
            scope=record.scope_name,
            kind=candidate.kind,
            name=candidate.name,
            arg_signature=candidate.arg_signature,
        )
    )
    record.callables[candidate.name] = namespace[candidate.name]


def _compile_at(source: str, path: str, line: int):
    """Compile a fragment so tracebacks point at its line in the scope file."""
    tree = ast.parse(source, filename=path)
    ast.increment_lineno(tree, line - 1)
    return compile(tree, path, "exec")
