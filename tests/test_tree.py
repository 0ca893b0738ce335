"""Tests for playground_import.lib.tree."""

from __future__ import annotations

import importlib
import json
import sys

import pytest

from playground_import.lib.retrieval import RetrievedFile
from playground_import.lib.tree import (
    ROOT_FOLDER_NAME,
    TemplateFile,
    TemplateFolder,
    build_template_tree,
    split_file_name,
    tree_from_json,
    tree_to_json,
)


def _files(*paths: str) -> list[RetrievedFile]:
    return [RetrievedFile(path=p, content=f"// {p}") for p in paths]


# ---------------------------------------------------------------------------
# split_file_name
# ---------------------------------------------------------------------------


class TestSplitFileName:
    @pytest.mark.parametrize(
        ("segment", "expected"),
        [
            ("README", ("README", "")),
            (".gitignore", (".gitignore", "")),
            ("index.test.ts", ("index.test", "ts")),
            ("main.py", ("main", "py")),
            ("archive.", ("archive", "")),
            (".env.local", (".env", "local")),
            (".", (".", "")),
        ],
    )
    def test_extension_rule(self, segment: str, expected: tuple[str, str]) -> None:
        assert split_file_name(segment) == expected


# ---------------------------------------------------------------------------
# build_template_tree
# ---------------------------------------------------------------------------


class TestBuildTemplateTree:
    def test_empty_input_yields_empty_root(self) -> None:
        root = build_template_tree([])
        assert root.folder_name == ROOT_FOLDER_NAME
        assert root.items == []
        assert root.depth() == 0

    def test_shared_prefix_reuses_folders(self) -> None:
        root = build_template_tree(_files("a/b/x.txt", "a/b/y.txt"))

        assert [f.folder_name for f in root.folders] == ["a"]
        a = root.child_folder("a")
        assert a is not None
        assert [f.folder_name for f in a.folders] == ["b"]
        assert len(a.items) == 1
        b = a.child_folder("b")
        assert b is not None
        assert [f.name for f in b.files] == ["x.txt", "y.txt"]

    def test_children_keep_insertion_order(self) -> None:
        root = build_template_tree(_files("z.md", "src/b.ts", "a.md", "lib/c.ts"))
        names = [
            item.folder_name if isinstance(item, TemplateFolder) else item.name
            for item in root.items
        ]
        assert names == ["z.md", "src", "a.md", "lib"]

    def test_parent_independent_of_insertion_order(self) -> None:
        root = build_template_tree(_files("src/a.ts", "README.md", "src/util/b.ts", "src/c.ts"))
        src = root.child_folder("src")
        assert src is not None
        assert [f.name for f in src.files] == ["a.ts", "c.ts"]
        assert isinstance(root.find("src/util/b.ts"), TemplateFile)

    def test_empty_segments_are_skipped(self) -> None:
        root = build_template_tree(_files("/lead/a.txt", "dup//b.txt"))
        assert [f.folder_name for f in root.folders] == ["lead", "dup"]
        assert all(f.folder_name for f in root.folders)
        assert isinstance(root.find("dup/b.txt"), TemplateFile)

    def test_same_name_allowed_in_different_parents(self) -> None:
        root = build_template_tree(_files("a/lib/x.py", "b/lib/y.py"))
        a_lib = root.find("a/lib")
        b_lib = root.find("b/lib")
        assert isinstance(a_lib, TemplateFolder)
        assert isinstance(b_lib, TemplateFolder)
        assert a_lib is not b_lib

    def test_file_fields(self) -> None:
        root = build_template_tree([RetrievedFile(path="src/index.test.ts", content="x")])
        leaf = root.find("src/index.test.ts")
        assert leaf == TemplateFile(filename="index.test", file_extension="ts", content="x")

    def test_depth_matches_deepest_folder_path(self) -> None:
        root = build_template_tree(_files("top.txt", "a/b/c/d.txt", "a/e.txt"))
        assert root.depth() == 3

    def test_every_input_path_maps_to_one_leaf(self) -> None:
        paths = ["a.txt", "x/y.txt", "x/z/w.txt", "x/z/v.md", "q/.keep"]
        root = build_template_tree(_files(*paths))
        walked = [path for path, _ in root.iter_files()]
        assert sorted(walked) == sorted(paths)
        assert root.file_count() == len(paths)

    def test_folding_twice_is_identical(self) -> None:
        inputs = _files("b/1.txt", "a/2.txt", "b/c/3.txt", "a/4.txt")
        first = build_template_tree(inputs)
        second = build_template_tree(inputs)
        assert first == second
        assert tree_to_json(first) == tree_to_json(second)

    def test_wide_directory(self) -> None:
        paths = [f"big/file{i}.txt" for i in range(2000)]
        root = build_template_tree(_files(*paths))
        big = root.child_folder("big")
        assert big is not None
        assert len(big.items) == 2000
        assert len(root.items) == 1


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class TestSerialization:
    def test_json_shape(self) -> None:
        root = build_template_tree([RetrievedFile(path="src/App.tsx", content="<App/>")])
        data = json.loads(tree_to_json(root))
        assert data == {
            "folderName": "Root",
            "items": [
                {
                    "folderName": "src",
                    "items": [
                        {
                            "filename": "App",
                            "fileExtension": "tsx",
                            "content": "<App/>",
                        }
                    ],
                }
            ],
        }

    def test_from_json_restores_structure_and_index(self) -> None:
        original = build_template_tree(_files("a/b/x.txt", "a/y.txt", "README"))
        restored = tree_from_json(tree_to_json(original))
        assert restored == original
        a = restored.child_folder("a")
        assert a is not None
        assert a.ensure_folder("b") is a.child_folder("b")
        assert len(a.folders) == 1


def test_tree_module_does_not_need_the_github_client(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    import playground_import.lib as lib_package

    monkeypatch.setattr(lib_package, "tree", lib_package.tree)
    for name in (
        "playground_import.lib.tree",
        "playground_import.lib.filters",
        "playground_import.lib.github",
    ):
        monkeypatch.delitem(sys.modules, name, raising=False)
    monkeypatch.setitem(sys.modules, "github", None)

    module = importlib.import_module("playground_import.lib.tree")

    assert module.split_file_name("main.py") == ("main", "py")
    assert "playground_import.lib.github" not in sys.modules
