"""Workspace persistence: a record plus one serialized template tree.

``WorkspaceStore.create`` stores both halves or neither, so an import never
leaves a workspace without content or content without a workspace.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from playground_import.lib.errors import PersistenceError

logger = logging.getLogger(__name__)

__all__ = [
    "FileWorkspaceStore",
    "InMemoryWorkspaceStore",
    "TEMPLATE_KINDS",
    "Workspace",
    "WorkspaceStore",
    "generate_workspace_id",
]

TEMPLATE_KINDS: tuple[str, ...] = ("REACT", "NEXTJS", "EXPRESS", "VUE", "HONO", "ANGULAR")

_RECORD_FILE = "workspace.json"
_TEMPLATE_FILE = "template.json"


def generate_workspace_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Workspace:
    """An editable project created from an imported repository."""

    title: str
    owner_id: str
    repository_full_name: str
    repository_url: str
    template: str = "REACT"
    description: str | None = None
    workspace_id: str = field(default_factory=generate_workspace_id)
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Workspace:
        return cls(**data)


class WorkspaceStore(Protocol):
    def create(self, workspace: Workspace, template_json: str) -> Workspace:
        """Persist *workspace* and its serialized tree atomically."""

    def get(self, workspace_id: str) -> Workspace | None: ...

    def get_template(self, workspace_id: str) -> str | None: ...


class InMemoryWorkspaceStore:
    """Process-local store; the default when no store directory is configured."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, tuple[Workspace, str]] = {}

    def create(self, workspace: Workspace, template_json: str) -> Workspace:
        with self._lock:
            if workspace.workspace_id in self._records:
                msg = f"workspace {workspace.workspace_id} already exists"
                raise PersistenceError(msg)
            self._records[workspace.workspace_id] = (workspace, template_json)
        return workspace

    def get(self, workspace_id: str) -> Workspace | None:
        entry = self._records.get(workspace_id)
        return entry[0] if entry else None

    def get_template(self, workspace_id: str) -> str | None:
        entry = self._records.get(workspace_id)
        return entry[1] if entry else None

    def __len__(self) -> int:
        return len(self._records)


class FileWorkspaceStore:
    """One directory per workspace under *root*.

    Both files are written to a temporary sibling directory that is renamed
    into place, so readers never observe half a workspace.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def _dir(self, workspace_id: str) -> Path:
        if not workspace_id or "/" in workspace_id or workspace_id.startswith("."):
            msg = f"Invalid workspace id: {workspace_id!r}"
            raise ValueError(msg)
        return self.root / workspace_id

    def create(self, workspace: Workspace, template_json: str) -> Workspace:
        target = self._dir(workspace.workspace_id)
        staging: Path | None = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if target.exists():
                msg = f"workspace {workspace.workspace_id} already exists"
                raise PersistenceError(msg)
            staging = Path(tempfile.mkdtemp(prefix=".staging-", dir=self.root))
            (staging / _RECORD_FILE).write_text(
                json.dumps(workspace.to_dict(), indent=2), encoding="utf-8"
            )
            (staging / _TEMPLATE_FILE).write_text(template_json, encoding="utf-8")
            staging.rename(target)
            staging = None
        except OSError as exc:
            msg = f"failed to write workspace {workspace.workspace_id}: {exc}"
            logger.error(msg)
            raise PersistenceError(msg) from exc
        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)
        logger.info("Stored workspace %s in %s", workspace.workspace_id, target)
        return workspace

    def get(self, workspace_id: str) -> Workspace | None:
        path = self._dir(workspace_id) / _RECORD_FILE
        if not path.is_file():
            return None
        return Workspace.from_dict(json.loads(path.read_text(encoding="utf-8")))

    def get_template(self, workspace_id: str) -> str | None:
        path = self._dir(workspace_id) / _TEMPLATE_FILE
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")
