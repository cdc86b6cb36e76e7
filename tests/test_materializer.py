"""Tests for the materializer."""

import codecs
import logging
import tempfile
from datetime import datetime
from pathlib import Path

from scopereg.errors import ErrorKind
from scopereg.extract.materializer import materialize, materialize_tree
from scopereg.registry.indexer import index_scopes
from scopereg.registry.models import Unit, UnitKind
from scopereg.registry.tree import FailedLeaf, MaterializedLeaf

STD_SOURCE = """from datetime import datetime


def getDateTime():
    return datetime.now()
#function

def isFunction(thing):
    return callable(thing)
#checked

def describe(thing):
    return "function" if isFunction(thing) else "value"
#function
"""


def _write(tmpdir: str, name: str, content: str) -> Path:
    path = Path(tmpdir) / name
    path.write_text(content)
    return path


def test_materialize_builds_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write(tmpdir, "std.py", STD_SOURCE)

        leaf = materialize(path, "std")

        assert isinstance(leaf, MaterializedLeaf)
        record = leaf.record
        assert record.scope_name == "std"
        assert record.file_path == str(path)
        assert record.names == ["getDateTime", "isFunction", "describe"]
        assert record.units[1] == Unit(
            scope="std", kind=UnitKind.FUNCTION, name="isFunction", arg_signature="thing"
        )
        assert record.loaded_at.tzinfo is not None
        assert record.cached is False


def test_materialized_callables_run():
    with tempfile.TemporaryDirectory() as tmpdir:
        record = materialize(_write(tmpdir, "std.py", STD_SOURCE), "std").record

        # prelude import is visible to units
        assert isinstance(record["getDateTime"](), datetime)
        # units share one namespace
        assert record["describe"](len) == "function"
        assert record["describe"](3) == "value"
        assert "helper" not in record


def test_classes_and_lambdas():
    source = (
        "class Counter:\n"
        "    def __init__(self, start=0):\n"
        "        self.value = start\n"
        "#class\n"
        "double = lambda n: n * 2  #lambda\n"
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        record = materialize(_write(tmpdir, "math.py", source), "math").record

        assert record["Counter"](5).value == 5
        assert record["double"](4) == 8
        assert [u.kind for u in record.units] == [UnitKind.CLASS, UnitKind.LAMBDA]
        assert record.units[0].arg_signature == "start=0"


def test_duplicate_name_keeps_first(caplog):
    source = (
        "def pick():\n"
        "    return 'first'\n"
        "#function\n"
        "def pick():\n"
        "    return 'second'\n"
        "#function\n"
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        with caplog.at_level(logging.WARNING, logger="scopereg"):
            record = materialize(_write(tmpdir, "dup.py", source), "dup").record

        assert record.names == ["pick"]
        assert record["pick"]() == "first"
        assert "function ignored, already exists" in caplog.text
        assert "dup > pick" in caplog.text


def test_invalid_candidate_skipped_siblings_kept(caplog):
    source = (
        "def broken(:\n"
        "    pass\n"
        "#function\n"
        "def ok():\n"
        "    return 1\n"
        "#function\n"
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        with caplog.at_level(logging.WARNING, logger="scopereg"):
            record = materialize(_write(tmpdir, "mixed.py", source), "mixed").record

        assert record.names == ["ok"]
        assert "function ignored" in caplog.text


def test_definition_failing_at_load_is_skipped(caplog):
    source = (
        "@missing_decorator\n"
        "def decorated():\n"
        "    pass\n"
        "#function\n"
        "def plain():\n"
        "    return 'plain'\n"
        "#function\n"
    )
    with tempfile.TemporaryDirectory() as tmpdir:
        with caplog.at_level(logging.WARNING, logger="scopereg"):
            record = materialize(_write(tmpdir, "deco.py", source), "deco").record

        assert record.names == ["plain"]
        assert "failed to load" in caplog.text


def test_broken_import_does_not_stop_scope(caplog):
    source = "import does_not_exist_anywhere\n\ndef f():\n    return 1\n#function\n"
    with tempfile.TemporaryDirectory() as tmpdir:
        with caplog.at_level(logging.WARNING, logger="scopereg"):
            record = materialize(_write(tmpdir, "imp.py", source), "imp").record

        assert record["f"]() == 1
        assert "import ignored" in caplog.text


def test_empty_file_is_failed_leaf():
    with tempfile.TemporaryDirectory() as tmpdir:
        leaf = materialize(_write(tmpdir, "empty.py", "\n  \n"), "empty")

        assert isinstance(leaf, FailedLeaf)
        assert leaf.error.kind == ErrorKind.EMPTY_SCOPE
        assert str(leaf.error).startswith("empty scope")


def test_unreadable_file_is_failed_leaf():
    with tempfile.TemporaryDirectory() as tmpdir:
        missing = Path(tmpdir) / "gone.py"

        leaf = materialize(missing, "gone")

        assert isinstance(leaf, FailedLeaf)
        assert leaf.error.kind == ErrorKind.READ_ERROR
        assert leaf.path == str(missing)


def test_file_without_marked_units_is_empty_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        leaf = materialize(_write(tmpdir, "plain.py", "x = 1\n"), "plain")

        assert isinstance(leaf, MaterializedLeaf)
        assert leaf.record.units == []


def test_byte_order_mark_does_not_hide_first_unit():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "std.py"
        path.write_bytes(codecs.BOM_UTF8 + b"def getDateTime():\n    return 0\n#function\n")

        leaf = materialize(path, "std")

        assert isinstance(leaf, MaterializedLeaf)
        assert leaf.record.names == ["getDateTime"]
        assert leaf.record["getDateTime"]() == 0


def test_materialize_tree_continues_past_failures():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write(tmpdir, "std.py", STD_SOURCE)
        _write(tmpdir, "empty.py", "")
        (root / "nested").mkdir()
        _write(str(root / "nested"), "inner.py", "f = lambda: 1  #lambda\n")

        tree = materialize_tree(index_scopes(root))

        assert tree.shape() == {
            "empty": "failed",
            "nested": {"inner": "materialized"},
            "std": "materialized",
        }
        assert tree["nested"]["inner"].record.scope_name == "inner"
