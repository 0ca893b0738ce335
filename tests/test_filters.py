"""Tests for playground_import.lib.filters."""

from __future__ import annotations

import pytest

from playground_import.lib.filters import ImportFilter, path_extension
from playground_import.lib.github import RemotePathEntry


def _blob(path: str) -> RemotePathEntry:
    return RemotePathEntry(path=path, kind="blob")


class TestPathExtension:
    def test_plain(self) -> None:
        assert path_extension("app.js") == "js"

    def test_leading_dot_is_not_an_extension(self) -> None:
        assert path_extension(".gitignore") == ""

    def test_no_dot(self) -> None:
        assert path_extension("Makefile") == ""


class TestImportFilter:
    @pytest.mark.parametrize(
        "path",
        [
            "node_modules/react/index.js",
            "packages/web/node_modules/lodash/lodash.js",
            ".github/workflows/ci.yml",
            ".gitignore",
            "public/logo.svg",
            "public/favicon.ico",
            "assets/photo.JPEG",
            "img/banner.png",
            "img/anim.gif",
            "img/pic.jpg",
        ],
    )
    def test_rejects(self, path: str) -> None:
        assert not ImportFilter().allows(_blob(path))

    @pytest.mark.parametrize(
        "path",
        [
            "src/index.ts",
            "README.md",
            "src/.env.example",
            "docs/node_modules_guide.md",
            "Makefile",
        ],
    )
    def test_keeps(self, path: str) -> None:
        assert ImportFilter().allows(_blob(path))

    def test_rejects_non_blob_kinds(self) -> None:
        f = ImportFilter()
        assert not f.allows(RemotePathEntry(path="src", kind="tree"))
        assert not f.allows(RemotePathEntry(path="vendor/lib", kind="other"))
        assert f.rejection_reason(RemotePathEntry(path="src", kind="tree")) == (
            "not a file (tree)"
        )

    def test_rejection_reasons(self) -> None:
        f = ImportFilter()
        assert f.rejection_reason(_blob(".env")) == "hidden path"
        assert f.rejection_reason(_blob("a/node_modules/b.js")) == "excluded directory"
        assert f.rejection_reason(_blob("logo.png")) == "binary extension"
        assert f.rejection_reason(_blob("src/main.py")) is None

    def test_custom_configuration(self) -> None:
        f = ImportFilter(excluded_dirs=("dist", "vendor"), binary_extensions=(".PDF",))
        assert not f.allows(_blob("dist/bundle.js"))
        assert not f.allows(_blob("docs/manual.pdf"))
        assert f.allows(_blob("node_modules/x.js"))
        assert f.allows(_blob("logo.png"))

    def test_apply_preserves_order(self) -> None:
        entries = [
            _blob("b.ts"),
            _blob(".hidden"),
            RemotePathEntry(path="src", kind="tree"),
            _blob("a.ts"),
            _blob("x.svg"),
        ]
        assert [e.path for e in ImportFilter().apply(entries)] == ["b.ts", "a.ts"]
