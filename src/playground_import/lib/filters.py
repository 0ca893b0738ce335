"""Path filtering policy applied to a listing before any content is fetched.

The binary check is an extension heuristic, not content inspection: a binary
file with an unlisted extension passes the filter and is caught later (if at
all) by the UTF-8 decode in ``lib.retrieval``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from playground_import.lib.github import RemotePathEntry
from playground_import.lib.tree import path_extension

__all__ = [
    "DEFAULT_BINARY_EXTENSIONS",
    "DEFAULT_EXCLUDED_DIRS",
    "ImportFilter",
    "path_extension",
]

DEFAULT_EXCLUDED_DIRS: tuple[str, ...] = ("node_modules",)
DEFAULT_BINARY_EXTENSIONS: tuple[str, ...] = ("png", "jpg", "jpeg", "gif", "ico", "svg")


@dataclass(frozen=True)
class ImportFilter:
    """Decides which listing entries are worth fetching."""

    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_DIRS
    binary_extensions: tuple[str, ...] = DEFAULT_BINARY_EXTENSIONS

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "binary_extensions",
            tuple(ext.lower().lstrip(".") for ext in self.binary_extensions),
        )

    def rejection_reason(self, entry: RemotePathEntry) -> str | None:
        """Return why *entry* is filtered out, or ``None`` when it is kept."""
        if not entry.is_file:
            return f"not a file ({entry.kind})"
        segments = [s for s in entry.path.split("/") if s]
        if not segments:
            return "empty path"
        if segments[0].startswith("."):
            return "hidden path"
        excluded = set(self.excluded_dirs)
        if any(segment in excluded for segment in segments):
            return "excluded directory"
        if path_extension(segments[-1]).lower() in self.binary_extensions:
            return "binary extension"
        return None

    def allows(self, entry: RemotePathEntry) -> bool:
        return self.rejection_reason(entry) is None

    def apply(self, entries: Iterable[RemotePathEntry]) -> list[RemotePathEntry]:
        """Keep the allowed entries, preserving listing order."""
        return [entry for entry in entries if self.allows(entry)]
