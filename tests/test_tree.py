"""Tests for namespace tree search and replace."""

from datetime import datetime, timezone

from scopereg.registry.models import MaterializedRecord
from scopereg.registry.tree import (
    Directory,
    MaterializedLeaf,
    UnmaterializedLeaf,
    find,
    find_and_replace,
    locate,
)


def _leaf(name: str) -> UnmaterializedLeaf:
    return UnmaterializedLeaf(path=f"/scopes/{name}.py")


def _tree() -> Directory:
    """std, utils/{file/{copyFile, xml}, xml}, extra/{copyFile}"""
    return Directory(
        {
            "std": _leaf("std"),
            "utils": Directory(
                {
                    "file": Directory(
                        {
                            "copyFile": _leaf("utils/file/copyFile"),
                            "xml": _leaf("utils/file/xml"),
                        }
                    ),
                    "xml": _leaf("utils/xml"),
                }
            ),
            "extra": Directory({"copyFile": _leaf("extra/copyFile")}),
        }
    )


# --- find ---


def test_find_without_keys_returns_tree():
    tree = _tree()
    assert find(tree) is tree


def test_find_top_level_leaf():
    assert find(_tree(), "std").path == "/scopes/std.py"


def test_find_checks_level_before_descending():
    # utils/xml is one level up from utils/file/xml, even though
    # "file" comes first in listing order
    assert find(_tree(), "xml").path == "/scopes/utils/xml.py"


def test_find_is_depth_first_in_listing_order():
    # utils is listed before extra, so its nested copyFile wins
    assert find(_tree(), "copyFile").path == "/scopes/utils/file/copyFile.py"


def test_find_directory_node():
    node = find(_tree(), "file")
    assert isinstance(node, Directory)
    assert list(node) == ["copyFile", "xml"]


def test_find_missing_key():
    assert find(_tree(), "nothing") is None


def test_find_scoped_to_parent():
    assert find(_tree(), "extra", "copyFile").path == "/scopes/extra/copyFile.py"
    assert find(_tree(), "file", "xml").path == "/scopes/utils/file/xml.py"


def test_find_scoped_searches_whole_parent_subtree():
    assert find(_tree(), "utils", "copyFile").path == "/scopes/utils/file/copyFile.py"


def test_find_scoped_missing_parent_or_child():
    assert find(_tree(), "nope", "copyFile") is None
    assert find(_tree(), "extra", "xml") is None


def test_find_scoped_parent_is_leaf():
    assert find(_tree(), "std", "anything") is None


def test_locate_returns_holder():
    tree = _tree()
    holder, node = locate(tree, "copyFile")
    assert holder is tree["utils"]["file"]
    assert node is holder["copyFile"]


# --- find_and_replace ---


def test_replace_first_match():
    tree = _tree()
    replacement = _leaf("new")

    result = find_and_replace(tree, "copyFile", replacement)

    assert result is tree
    assert tree["utils"]["file"]["copyFile"] is replacement
    assert tree["extra"]["copyFile"].path == "/scopes/extra/copyFile.py"


def test_replace_missing_key_leaves_tree_untouched():
    tree = _tree()
    before = tree.shape()

    assert find_and_replace(tree, "nothing", _leaf("new")) is None
    assert tree.shape() == before


def test_replace_with_parent_immediate_child():
    tree = _tree()
    replacement = _leaf("new")

    assert find_and_replace(tree, "copyFile", replacement, parent="extra") is tree
    assert tree["extra"]["copyFile"] is replacement
    assert tree["utils"]["file"]["copyFile"] is not replacement


def test_replace_with_parent_ignores_deeper_matches():
    tree = _tree()
    original = tree["utils"]["file"]["copyFile"]

    # copyFile is a grandchild of utils, not a child
    assert find_and_replace(tree, "copyFile", _leaf("new"), parent="utils") is None
    assert tree["utils"]["file"]["copyFile"] is original


def test_replace_with_missing_parent():
    assert find_and_replace(_tree(), "copyFile", _leaf("new"), parent="nope") is None


def test_replace_leaf_with_materialized_leaf():
    tree = _tree()
    record = MaterializedRecord(
        scope_name="std",
        file_path="/scopes/std.py",
        loaded_at=datetime.now(timezone.utc),
    )

    find_and_replace(tree, "std", MaterializedLeaf(record=record))

    assert find(tree, "std").record is record
    assert tree.shape()["std"] == "materialized"


# --- Directory helpers ---


def test_shape_and_leaves():
    tree = _tree()
    assert tree.shape() == {
        "std": "unmaterialized",
        "utils": {
            "file": {"copyFile": "unmaterialized", "xml": "unmaterialized"},
            "xml": "unmaterialized",
        },
        "extra": {"copyFile": "unmaterialized"},
    }
    keys = [key for key, _, _ in tree.leaves()]
    assert keys == ["std", "copyFile", "xml", "xml", "copyFile"]
