"""GitHub integration: recursive tree listing and per-path content fetches.

Wraps PyGithub for the REST API.  This is the only module that talks to
GitHub; everything downstream works on ``RemotePathEntry`` / ``FilePayload``
values so it can be tested without a network.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any

import requests
from github import Auth, Github, GithubException, RateLimitExceededException
from github.Repository import Repository

from playground_import.lib.errors import (
    CredentialMissingError,
    InvalidImportRequestError,
    UpstreamListingError,
)
from playground_import.lib.redact import redact_sensitive

logger = logging.getLogger(__name__)

__all__ = [
    "ContentFetchError",
    "FilePayload",
    "GitHubRepoClient",
    "RateLimitedError",
    "RemoteListing",
    "RemotePathEntry",
    "RepositoryReference",
]

_OWNER_REPO_PATTERN = re.compile(r"^[A-Za-z0-9._-]+/[A-Za-z0-9._-]+$")
_KNOWN_KINDS = frozenset({"blob", "tree"})
_DEFAULT_RATE_LIMIT_WAIT = 60.0


def _github_error_message(action: str, exc: GithubException) -> str:
    """Build a clear error message from a PyGithub exception.

    Args:
        action: Human-readable description of what was attempted.
        exc: The caught GithubException.

    Returns:
        An actionable error string including the HTTP status and detail.
    """
    status = getattr(exc, "status", None)
    detail = getattr(exc, "data", {})
    message = ""
    if isinstance(detail, dict):
        message = str(detail.get("message", ""))
    hints: dict[int, str] = {
        401: "the GitHub token is invalid or expired; reconnect the account",
        403: "check token scopes or GitHub rate limits",
        404: "repository not found; verify the name and token access",
        409: "repository is empty",
    }
    hint = hints.get(status, "") if status else ""
    parts = [f"GitHub API error: failed to {action}"]
    if status:
        parts.append(f"(HTTP {status})")
    if message:
        parts.append(f": {message}")
    if hint:
        parts.append(f"[hint: {hint}]")
    return redact_sensitive(" ".join(parts))


def _exception_body(exc: GithubException) -> str:
    data = getattr(exc, "data", None)
    if isinstance(data, dict):
        return str(data.get("message") or data)
    return str(data or "")


def _retry_after_seconds(headers: dict[str, Any] | None) -> float:
    """Work out how long GitHub asked us to back off, in seconds."""
    if not headers:
        return _DEFAULT_RATE_LIMIT_WAIT
    lowered = {str(k).lower(): v for k, v in headers.items()}
    retry_after = lowered.get("retry-after")
    if retry_after is not None:
        try:
            return max(0.0, float(retry_after))
        except (TypeError, ValueError):
            pass
    reset = lowered.get("x-ratelimit-reset")
    if reset is not None:
        try:
            return max(0.0, float(reset) - time.time())
        except (TypeError, ValueError):
            pass
    return _DEFAULT_RATE_LIMIT_WAIT


def _is_rate_limited(exc: GithubException) -> bool:
    if isinstance(exc, RateLimitExceededException):
        return True
    if getattr(exc, "status", None) not in (403, 429):
        return False
    headers = {str(k).lower(): v for k, v in (getattr(exc, "headers", None) or {}).items()}
    if "retry-after" in headers:
        return True
    return str(headers.get("x-ratelimit-remaining", "")) == "0"


@dataclass(frozen=True)
class RepositoryReference:
    """An ``owner/repo`` GitHub repository and its canonical URL."""

    full_name: str
    url: str = ""

    def __post_init__(self) -> None:
        if not _OWNER_REPO_PATTERN.match(self.full_name or ""):
            msg = (
                f"Invalid repository '{self.full_name}': expected 'owner/repo' "
                "format, e.g. octocat/hello-world"
            )
            raise InvalidImportRequestError(msg)
        if not self.url:
            object.__setattr__(self, "url", f"https://github.com/{self.full_name}")


@dataclass(frozen=True)
class RemotePathEntry:
    """One entry of a recursive tree listing."""

    path: str
    kind: str

    @property
    def is_file(self) -> bool:
        return self.kind == "blob"


@dataclass
class RemoteListing:
    """Result of the recursive listing call, in upstream order."""

    entries: list[RemotePathEntry] = field(default_factory=list)
    truncated: bool = False


@dataclass(frozen=True)
class FilePayload:
    """Raw contents-API payload for a single path."""

    path: str
    encoding: str | None
    content: str | None


class RateLimitedError(Exception):
    """A content fetch hit GitHub's rate limit."""

    def __init__(self, path: str, retry_after: float) -> None:
        self.path = path
        self.retry_after = retry_after
        super().__init__(f"rate limited fetching '{path}' (retry in {retry_after:.0f}s)")


class ContentFetchError(Exception):
    """A content fetch failed for a reason other than rate limiting."""

    def __init__(self, path: str, reason: str, status: int | None = None) -> None:
        self.path = path
        self.status = status
        self.reason = reason
        super().__init__(reason)


@dataclass
class GitHubRepoClient:
    """Authenticated GitHub client used by a single import run.

    The token is mandatory; a missing or blank token fails before any
    network call is made.
    """

    token: str = ""
    timeout: int = 15
    pool_size: int | None = None
    seconds_between_requests: float | None = None
    _gh: Github = field(init=False, repr=False)
    _repos: dict[str, Repository] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        if not (self.token or "").strip():
            raise CredentialMissingError()
        self.token = self.token.strip()
        # Retries are handled by the import pipeline, not by urllib3.
        self._gh = Github(
            auth=Auth.Token(self.token),
            timeout=self.timeout,
            retry=None,
            pool_size=self.pool_size,
            seconds_between_requests=self.seconds_between_requests,
        )

    def _repo(self, reference: RepositoryReference) -> Repository:
        repo = self._repos.get(reference.full_name)
        if repo is None:
            repo = self._gh.get_repo(reference.full_name, lazy=True)
            self._repos[reference.full_name] = repo
        return repo

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_paths(
        self, reference: RepositoryReference, *, ref: str = "HEAD"
    ) -> RemoteListing:
        """Return every entry of the repository snapshot at *ref*.

        Issues exactly one recursive git-tree request.  Any failure aborts
        the import: a partial listing is not meaningful.

        Raises:
            UpstreamListingError: GitHub answered with a non-success status
                or could not be reached.
        """
        repo = self._repo(reference)
        try:
            tree = repo.get_git_tree(ref, recursive=True)
        except GithubException as exc:
            msg = _github_error_message(
                f"list tree '{ref}' of '{reference.full_name}'", exc
            )
            logger.error(msg)
            raise UpstreamListingError(
                getattr(exc, "status", None), _exception_body(exc), msg
            ) from exc
        except requests.RequestException as exc:
            msg = redact_sensitive(
                f"GitHub request failed while listing '{reference.full_name}': {exc}"
            )
            logger.error(msg)
            raise UpstreamListingError(None, redact_sensitive(str(exc)), msg) from exc

        entries = []
        for element in tree.tree:
            kind = element.type if element.type in _KNOWN_KINDS else "other"
            entries.append(RemotePathEntry(path=element.path, kind=kind))

        raw = getattr(tree, "raw_data", None)
        truncated = bool(raw.get("truncated")) if isinstance(raw, dict) else False
        if truncated:
            logger.warning(
                "GitHub truncated the tree listing for %s; %d entries returned",
                reference.full_name,
                len(entries),
            )
        logger.info(
            "Listed %d entries in %s@%s", len(entries), reference.full_name, ref
        )
        return RemoteListing(entries=entries, truncated=truncated)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def fetch_payload(
        self, reference: RepositoryReference, path: str, *, ref: str = "HEAD"
    ) -> FilePayload:
        """Fetch the contents-API payload for one file.

        Raises:
            RateLimitedError: GitHub asked the caller to back off.
            ContentFetchError: Any other failure, including a directory
                listing returned for *path*.
        """
        repo = self._repo(reference)
        try:
            if ref == "HEAD":
                result = repo.get_contents(path)
            else:
                result = repo.get_contents(path, ref=ref)
        except GithubException as exc:
            if _is_rate_limited(exc):
                raise RateLimitedError(
                    path, _retry_after_seconds(getattr(exc, "headers", None))
                ) from exc
            msg = _github_error_message(f"fetch '{path}'", exc)
            raise ContentFetchError(path, msg, getattr(exc, "status", None)) from exc

        if isinstance(result, list):
            raise ContentFetchError(path, "path resolved to a directory listing")
        return FilePayload(path=path, encoding=result.encoding, content=result.content)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying GitHub connection."""
        self._gh.close()

    def __enter__(self) -> GitHubRepoClient:
        """Enter the context manager and return self."""
        return self

    def __exit__(self, *_: Any) -> None:
        """Exit the context manager and close the connection."""
        self.close()
