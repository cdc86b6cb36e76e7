"""Extractor — find marked unit definitions in scope source text.

A unit is a top-level ``def``, ``async def``, ``class`` or
``name = lambda ...`` that is immediately followed by a marker comment,
either on the next column-0 line or trailing its last line:

    def getDateTime():
        return datetime.now()
    #function

    add = lambda a, b: a + b  #lambda

Markers ``#||`` and ``#checked`` accept any kind; ``#function``,
``#class`` and ``#lambda`` also assert the kind. Unmarked definitions are
invisible. Each candidate is parsed on its own with ``ast``, so a broken
definition only invalidates itself, never the whole file.
"""

from __future__ import annotations

import ast
import copy
import io
import re
import tokenize
from dataclasses import dataclass

from scopereg.registry.models import UnitKind

MARKER_RE = re.compile(r"#\s*(\|\||checked|function|class|lambda)\s*$")

# Marker -> kinds it accepts
MARKER_KINDS = {
    "||": set(UnitKind),
    "checked": set(UnitKind),
    "function": {UnitKind.FUNCTION},
    "class": {UnitKind.CLASS},
    "lambda": {UnitKind.LAMBDA},
}

_DEF_RE = re.compile(r"^(?:async\s+)?def\s+([A-Za-z_]\w*)")
_CLASS_RE = re.compile(r"^class\s+([A-Za-z_]\w*)")
_LAMBDA_RE = re.compile(r"^([A-Za-z_]\w*)\s*(?::[^=]*)?=\s*lambda\b")
_IMPORT_RE = re.compile(r"^(?:import|from)\s+\S")
_CLOSING = (")", "]", "}")


@dataclass
class Candidate:
    """A marked definition, valid or not."""

    name: str
    kind: UnitKind
    marker: str
    body: str
    line: int  # 1-based line of the first body line
    arg_signature: str = ""
    valid: bool = False
    reason: str = ""


def extract(text: str) -> list[Candidate]:
    """Return every marked definition in ``text``, in source order."""
    lines = text.splitlines()
    in_string = _string_lines(text)
    candidates = []

    i = 0
    while i < len(lines):
        header = None if i in in_string else _header_at(lines, i, in_string)
        if header is None:
            i += 1
            continue

        header_line, name, kind = header
        end, marker = _span(lines, header_line, in_string)
        if marker is not None:
            body = "\n".join(lines[i:end]).rstrip() + "\n"
            candidate = Candidate(name=name, kind=kind, marker=marker, body=body, line=i + 1)
            _validate(candidate)
            candidates.append(candidate)

        i = max(end, header_line + 1)

    return candidates


def extract_prelude(text: str) -> list[tuple[int, str]]:
    """Return the column-0 import statements as (line, source) pairs.

    Statements that do not parse are left out.
    """
    lines = text.splitlines()
    in_string = _string_lines(text)
    prelude = []

    i = 0
    while i < len(lines):
        if i in in_string or not _IMPORT_RE.match(lines[i]):
            i += 1
            continue
        end = _statement_end(lines, i, in_string)
        source = "\n".join(lines[i:end]).rstrip() + "\n"
        try:
            ast.parse(source)
        except SyntaxError:
            pass
        else:
            prelude.append((i + 1, source))
        i = end

    return prelude


def _string_lines(text: str) -> set[int]:
    """Indexes of lines that begin inside a multi-line string literal.

    Tokenizing stops at the first error; lines past it are not covered, and
    the column-0 scan treats them as plain code.
    """
    rows = set()
    try:
        for token in tokenize.generate_tokens(io.StringIO(text).readline):
            start_row, end_row = token.start[0], token.end[0]
            if end_row > start_row and token.type not in (tokenize.NL, tokenize.NEWLINE):
                # rows are 1-based, so this covers start_row + 1 .. end_row
                rows.update(range(start_row, end_row))
    except (tokenize.TokenError, SyntaxError):
        pass
    return rows


def _header_at(lines: list[str], i: int, in_string: set[int]) -> tuple[int, str, UnitKind] | None:
    """Detect a definition starting at line ``i`` (decorators included)."""
    j = i
    while j < len(lines) and lines[j].startswith("@"):
        j = _statement_end(lines, j, in_string)
    if j >= len(lines):
        return None

    line = lines[j]
    patterns = [(_DEF_RE, UnitKind.FUNCTION), (_CLASS_RE, UnitKind.CLASS)]
    if j == i:
        # decorated lambdas do not exist
        patterns.append((_LAMBDA_RE, UnitKind.LAMBDA))

    for pattern, kind in patterns:
        m = pattern.match(line)
        if m:
            return j, m.group(1), kind
    return None


def _is_code(lines: list[str], j: int, in_string: set[int]) -> bool:
    if j in in_string:
        return True
    stripped = lines[j].strip()
    return bool(stripped) and not stripped.startswith("#")


def _statement_end(lines: list[str], i: int, in_string: set[int]) -> int:
    """Index of the first line after the column-0 statement at ``i``.

    The statement runs until the next column-0 line of code. Comments and
    string contents at column 0 do not end it.
    """
    j = i + 1
    while j < len(lines):
        line = lines[j]
        if (
            j not in in_string
            and _is_code(lines, j, in_string)
            and not line[0].isspace()
            and not line.startswith(_CLOSING)
        ):
            break
        j += 1
    return j


def _span(lines: list[str], header_line: int, in_string: set[int]) -> tuple[int, str | None]:
    """Find where a definition ends and which marker, if any, closes it.

    Returns (end, marker). ``end`` is exclusive and also skips a marker
    line, so scanning can resume right after it.
    """
    end = _statement_end(lines, header_line, in_string)

    last = end - 1
    while last > header_line and not _is_code(lines, last, in_string):
        last -= 1

    # the first column-0 line after the body must be the marker
    for j in range(last + 1, end):
        line = lines[j]
        if not line.strip() or line[0].isspace():
            continue
        m = MARKER_RE.match(line)
        if m:
            return j + 1, m.group(1)
        break

    m = MARKER_RE.search(lines[last])
    if m:
        return last + 1, m.group(1)

    return end, None


def _validate(candidate: Candidate):
    if candidate.kind not in MARKER_KINDS[candidate.marker]:
        candidate.reason = f"marker '#{candidate.marker}' does not match a {candidate.kind.value}"
        return

    try:
        module = ast.parse(candidate.body)
    except SyntaxError as e:
        candidate.reason = f"syntax error: {e.msg} (line {(e.lineno or 1) + candidate.line - 1})"
        return

    if len(module.body) != 1:
        candidate.reason = "definition must be a single statement"
        return

    node = module.body[0]
    if candidate.kind is UnitKind.FUNCTION and isinstance(
        node, ast.FunctionDef | ast.AsyncFunctionDef
    ):
        candidate.arg_signature = ast.unparse(node.args)
    elif candidate.kind is UnitKind.CLASS and isinstance(node, ast.ClassDef):
        candidate.arg_signature = _constructor_signature(node)
    elif candidate.kind is UnitKind.LAMBDA and _is_lambda_assignment(node):
        candidate.arg_signature = ast.unparse(node.value.args)
    else:
        candidate.reason = f"not a {candidate.kind.value} definition"
        return

    candidate.valid = True


def _is_lambda_assignment(node: ast.stmt) -> bool:
    if isinstance(node, ast.Assign):
        return (
            len(node.targets) == 1
            and isinstance(node.targets[0], ast.Name)
            and isinstance(node.value, ast.Lambda)
        )
    if isinstance(node, ast.AnnAssign):
        return isinstance(node.target, ast.Name) and isinstance(node.value, ast.Lambda)
    return False


def _constructor_signature(node: ast.ClassDef) -> str:
    """Arguments of ``__init__`` without ``self``."""
    for item in node.body:
        if isinstance(item, ast.FunctionDef) and item.name == "__init__":
            args = copy.copy(item.args)
            if args.posonlyargs:
                args.posonlyargs = args.posonlyargs[1:]
            else:
                args.args = args.args[1:]
            return ast.unparse(args)
    return ""
