"""Error taxonomy for repository imports.

Every fatal outcome of an import is a subclass of ``RepositoryImportError``
so callers (server, CLI, Celery task) can map them to a status with a single
``except`` clause.  Per-file content failures are not exceptions: they are
reported as ``ContentFetchSkip`` values by ``lib.retrieval``.
"""

from __future__ import annotations

__all__ = [
    "CredentialMissingError",
    "ImportCancelledError",
    "InvalidImportRequestError",
    "PersistenceError",
    "RepositoryImportError",
    "UpstreamListingError",
]

_MAX_DIAGNOSTIC_CHARS = 500


class RepositoryImportError(Exception):
    """Base class for fatal import failures."""


class InvalidImportRequestError(RepositoryImportError):
    """The import request is missing data or names a malformed repository."""


class CredentialMissingError(RepositoryImportError):
    """No usable GitHub access token is available for the user."""

    def __init__(self, message: str = "GitHub account not connected") -> None:
        super().__init__(message)


class UpstreamListingError(RepositoryImportError):
    """The recursive tree listing call to GitHub failed."""

    def __init__(self, status: int | None, body: str = "", message: str = "") -> None:
        self.status = status
        self.body = truncate_diagnostic(body)
        text = message or "Failed to fetch repository tree from GitHub"
        if status is not None:
            text = f"{text} (HTTP {status})"
        super().__init__(text)


class PersistenceError(RepositoryImportError):
    """The workspace store rejected a fully built import."""


class ImportCancelledError(RepositoryImportError):
    """The caller cancelled the import before content retrieval finished."""


def truncate_diagnostic(body: str, limit: int = _MAX_DIAGNOSTIC_CHARS) -> str:
    """Trim an upstream response body so it is safe to log and return."""
    text = (body or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...[truncated]"
