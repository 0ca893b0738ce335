"""Tests for playground_import.lib.store."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from playground_import.lib.errors import PersistenceError
from playground_import.lib.store import (
    FileWorkspaceStore,
    InMemoryWorkspaceStore,
    Workspace,
)


def _workspace(**overrides: str) -> Workspace:
    fields = {
        "title": "octocat/hello-world",
        "owner_id": "u1",
        "repository_full_name": "octocat/hello-world",
        "repository_url": "https://github.com/octocat/hello-world",
    }
    fields.update(overrides)
    return Workspace(**fields)  # type: ignore[arg-type]


class TestWorkspace:
    def test_defaults(self) -> None:
        ws = _workspace()
        assert ws.template == "REACT"
        assert ws.description is None
        assert len(ws.workspace_id) == 32
        assert ws.created_at

    def test_dict_round_trip(self) -> None:
        ws = _workspace(description="demo")
        assert Workspace.from_dict(ws.to_dict()) == ws


class TestInMemoryWorkspaceStore:
    def test_create_and_read(self) -> None:
        store = InMemoryWorkspaceStore()
        ws = _workspace()
        store.create(ws, '{"folderName": "Root", "items": []}')
        assert store.get(ws.workspace_id) == ws
        assert store.get_template(ws.workspace_id) == '{"folderName": "Root", "items": []}'

    def test_unknown_id(self) -> None:
        store = InMemoryWorkspaceStore()
        assert store.get("missing") is None
        assert store.get_template("missing") is None

    def test_duplicate_id_rejected(self) -> None:
        store = InMemoryWorkspaceStore()
        ws = _workspace(workspace_id="fixed")
        store.create(ws, "{}")
        with pytest.raises(PersistenceError):
            store.create(_workspace(workspace_id="fixed"), "{}")
        assert len(store) == 1


class TestFileWorkspaceStore:
    def test_create_and_read(self, tmp_path: Path) -> None:
        store = FileWorkspaceStore(tmp_path / "ws")
        ws = _workspace()
        store.create(ws, '{"folderName": "Root", "items": []}')

        assert store.get(ws.workspace_id) == ws
        assert store.get_template(ws.workspace_id) == '{"folderName": "Root", "items": []}'
        assert sorted(p.name for p in (tmp_path / "ws").iterdir()) == [ws.workspace_id]

    def test_unknown_id(self, tmp_path: Path) -> None:
        store = FileWorkspaceStore(tmp_path)
        assert store.get("missing") is None

    def test_rejects_path_traversal(self, tmp_path: Path) -> None:
        store = FileWorkspaceStore(tmp_path)
        with pytest.raises(ValueError):
            store.get("../etc")

    def test_duplicate_id_rejected(self, tmp_path: Path) -> None:
        store = FileWorkspaceStore(tmp_path)
        store.create(_workspace(workspace_id="fixed"), "{}")
        with pytest.raises(PersistenceError, match="already exists"):
            store.create(_workspace(workspace_id="fixed"), "{}")

    def test_failed_write_leaves_nothing_behind(self, tmp_path: Path) -> None:
        store = FileWorkspaceStore(tmp_path)
        ws = _workspace()
        with (
            patch.object(Path, "rename", side_effect=OSError("read-only")),
            pytest.raises(PersistenceError, match="read-only"),
        ):
            store.create(ws, "{}")

        assert list(tmp_path.iterdir()) == []
        assert store.get(ws.workspace_id) is None
