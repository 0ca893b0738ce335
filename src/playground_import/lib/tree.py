"""Template tree: fold a flat ``(path, content)`` list into folders and files.

The serialized shape (``folderName``/``items`` and
``filename``/``fileExtension``/``content``) is what the editor consumes and
what ``lib.store`` persists as a single JSON document.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

__all__ = [
    "ROOT_FOLDER_NAME",
    "TemplateFile",
    "TemplateFolder",
    "build_template_tree",
    "path_extension",
    "split_file_name",
    "tree_from_json",
    "tree_to_json",
]

ROOT_FOLDER_NAME = "Root"


class PathContent(Protocol):
    path: str
    content: str


def path_extension(name: str) -> str:
    """Return the text after the last ``.`` of *name*, or ``""``.

    A dot at index 0 does not start an extension, so ``.gitignore`` has none.
    """
    dot = name.rfind(".")
    if dot <= 0:
        return ""
    return name[dot + 1 :]


def split_file_name(name: str) -> tuple[str, str]:
    """Split a path segment into ``(filename, file_extension)``.

    >>> split_file_name("index.test.ts")
    ('index.test', 'ts')
    >>> split_file_name(".gitignore")
    ('.gitignore', '')
    """
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot + 1 :]


@dataclass
class TemplateFile:
    """Leaf node of the template tree."""

    filename: str
    file_extension: str
    content: str

    @property
    def name(self) -> str:
        if self.file_extension:
            return f"{self.filename}.{self.file_extension}"
        return self.filename

    def to_dict(self) -> dict[str, str]:
        return {
            "filename": self.filename,
            "fileExtension": self.file_extension,
            "content": self.content,
        }


@dataclass
class TemplateFolder:
    """Interior node; children keep first-insertion order.

    ``_folders`` indexes child folders by name so each insertion costs
    O(path segments) even in very wide directories.
    """

    folder_name: str
    items: list[TemplateFile | TemplateFolder] = field(default_factory=list)
    _folders: dict[str, TemplateFolder] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for item in self.items:
            if isinstance(item, TemplateFolder):
                self._folders.setdefault(item.folder_name, item)

    def child_folder(self, name: str) -> TemplateFolder | None:
        return self._folders.get(name)

    def ensure_folder(self, name: str) -> TemplateFolder:
        """Return the child folder called *name*, creating it if needed."""
        folder = self._folders.get(name)
        if folder is None:
            folder = TemplateFolder(folder_name=name)
            self._folders[name] = folder
            self.items.append(folder)
        return folder

    def add_file(self, file: TemplateFile) -> None:
        self.items.append(file)

    @property
    def folders(self) -> list[TemplateFolder]:
        return [item for item in self.items if isinstance(item, TemplateFolder)]

    @property
    def files(self) -> list[TemplateFile]:
        return [item for item in self.items if isinstance(item, TemplateFile)]

    def iter_files(self, prefix: str = "") -> Iterator[tuple[str, TemplateFile]]:
        """Yield ``(path, file)`` for every leaf, depth first in child order."""
        for item in self.items:
            if isinstance(item, TemplateFolder):
                yield from item.iter_files(f"{prefix}{item.folder_name}/")
            else:
                yield f"{prefix}{item.name}", item

    def depth(self) -> int:
        """Number of folder levels below this one."""
        child_depths = [folder.depth() + 1 for folder in self.folders]
        return max(child_depths, default=0)

    def file_count(self) -> int:
        return sum(1 for _ in self.iter_files())

    def find(self, path: str) -> TemplateFile | TemplateFolder | None:
        """Resolve a slash-delimited path relative to this folder."""
        segments = [s for s in path.split("/") if s]
        if not segments:
            return self
        current: TemplateFolder = self
        for segment in segments[:-1]:
            nxt = current.child_folder(segment)
            if nxt is None:
                return None
            current = nxt
        last = segments[-1]
        folder = current.child_folder(last)
        if folder is not None:
            return folder
        for item in current.files:
            if item.name == last:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "folderName": self.folder_name,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TemplateFolder:
        items: list[TemplateFile | TemplateFolder] = []
        for raw in data.get("items", []):
            if "folderName" in raw:
                items.append(cls.from_dict(raw))
            else:
                items.append(
                    TemplateFile(
                        filename=raw.get("filename", ""),
                        file_extension=raw.get("fileExtension", ""),
                        content=raw.get("content", ""),
                    )
                )
        return cls(folder_name=data.get("folderName", ROOT_FOLDER_NAME), items=items)


def build_template_tree(files: Iterable[PathContent]) -> TemplateFolder:
    """Fold retrieved files, in order, into a fresh tree.

    Empty segments from leading, doubled or trailing slashes are skipped.
    A path with no non-empty segment at all is ignored.
    """
    root = TemplateFolder(folder_name=ROOT_FOLDER_NAME)
    for file in files:
        segments = [s for s in file.path.split("/") if s]
        if not segments:
            continue
        *folder_parts, file_name = segments
        parent = root
        for part in folder_parts:
            parent = parent.ensure_folder(part)
        filename, extension = split_file_name(file_name)
        parent.add_file(
            TemplateFile(filename=filename, file_extension=extension, content=file.content)
        )
    return root


def tree_to_json(tree: TemplateFolder) -> str:
    return json.dumps(tree.to_dict(), ensure_ascii=False)


def tree_from_json(raw: str) -> TemplateFolder:
    return TemplateFolder.from_dict(json.loads(raw))
