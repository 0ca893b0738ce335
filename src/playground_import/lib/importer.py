"""Repository import: list → filter → retrieve → fold → persist.

``RepositoryImporter`` is the single entry point used by the HTTP server,
the Celery worker, the MCP server and the CLI.  Each call is an independent
run: no client, cache or back-off state outlives it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from playground_import.lib.config import Config
from playground_import.lib.credentials import CredentialProvider, EnvCredentialProvider
from playground_import.lib.errors import (
    CredentialMissingError,
    InvalidImportRequestError,
    PersistenceError,
)
from playground_import.lib.filters import ImportFilter
from playground_import.lib.github import GitHubRepoClient, RepositoryReference
from playground_import.lib.retrieval import (
    ContentFetchSkip,
    ContentRetriever,
    RateLimitGate,
)
from playground_import.lib.store import (
    TEMPLATE_KINDS,
    FileWorkspaceStore,
    InMemoryWorkspaceStore,
    Workspace,
    WorkspaceStore,
)
from playground_import.lib.tree import TemplateFolder, build_template_tree, tree_to_json

logger = logging.getLogger(__name__)

__all__ = [
    "ImportPreview",
    "ImportRequest",
    "ImportResult",
    "RepositoryImporter",
]

DEFAULT_TEMPLATE_KIND = "REACT"

ClientFactory = Callable[[str], GitHubRepoClient]


@dataclass(frozen=True)
class ImportRequest:
    """What the caller wants imported and how the workspace should look."""

    repository_full_name: str
    repository_url: str
    title: str | None = None
    description: str | None = None
    template_kind: str | None = None

    def reference(self) -> RepositoryReference:
        """Validate the request and return the repository it names.

        Raises:
            InvalidImportRequestError: Missing name/URL, malformed
                ``owner/repo``, or an unknown template kind.
        """
        full_name = (self.repository_full_name or "").strip()
        url = (self.repository_url or "").strip()
        if not full_name or not url:
            raise InvalidImportRequestError("Missing GitHub repository data")
        self.resolved_template_kind()
        return RepositoryReference(full_name=full_name, url=url)

    def resolved_template_kind(self) -> str:
        kind = (self.template_kind or DEFAULT_TEMPLATE_KIND).strip().upper()
        if kind not in TEMPLATE_KINDS:
            choices = ", ".join(TEMPLATE_KINDS)
            msg = f"unsupported template kind {self.template_kind!r}; expected one of: {choices}"
            raise InvalidImportRequestError(msg)
        return kind


@dataclass
class ImportPreview:
    """A built tree plus what was lost along the way."""

    reference: RepositoryReference
    tree: TemplateFolder
    listed_count: int = 0
    candidate_count: int = 0
    skipped: list[ContentFetchSkip] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def retrieved_count(self) -> int:
        return self.tree.file_count()

    def summary(self) -> dict[str, Any]:
        return {
            "repository": self.reference.full_name,
            "listed_files": self.listed_count,
            "candidate_files": self.candidate_count,
            "imported_files": self.retrieved_count,
            "skipped_files": len(self.skipped),
            "truncated_listing": self.truncated,
            "warnings": list(self.warnings),
        }


@dataclass
class ImportResult:
    """A persisted import."""

    workspace: Workspace
    preview: ImportPreview

    def summary(self) -> dict[str, Any]:
        data = self.preview.summary()
        data["workspace"] = self.workspace.to_dict()
        return data


@dataclass
class RepositoryImporter:
    """Runs imports against GitHub and stores the resulting workspaces."""

    credentials: CredentialProvider
    store: WorkspaceStore
    config: Config = field(default_factory=Config)
    client_factory: ClientFactory | None = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        *,
        credentials: CredentialProvider | None = None,
        store: WorkspaceStore | None = None,
    ) -> RepositoryImporter:
        """Build an importer with the default collaborators for *config*.

        Uses ``GITHUB_TOKEN`` / ``GH_TOKEN`` for credentials and a file store
        when ``config.store_dir`` is set, otherwise an in-memory store.
        """
        if store is None:
            if config.store_dir is not None:
                store = FileWorkspaceStore(config.store_dir)
            else:
                store = InMemoryWorkspaceStore()
        return cls(
            credentials=credentials or EnvCredentialProvider(),
            store=store,
            config=config,
        )

    def _client(self, token: str) -> GitHubRepoClient:
        if self.client_factory is not None:
            return self.client_factory(token)
        return GitHubRepoClient(token=token, pool_size=self.config.max_workers)

    def _token(self, user_id: str) -> str:
        token = self.credentials.token_for(user_id)
        if not token or not token.strip():
            logger.warning("No GitHub token for user %s", user_id)
            raise CredentialMissingError()
        return token

    def preview(
        self,
        request: ImportRequest,
        *,
        user_id: str,
        cancel: threading.Event | None = None,
    ) -> ImportPreview:
        """Build the template tree for *request* without persisting it."""
        reference = request.reference()
        token = self._token(user_id)
        with self._client(token) as client:
            return self._build(client, reference, cancel)

    def import_repository(
        self,
        request: ImportRequest,
        *,
        user_id: str,
        cancel: threading.Event | None = None,
    ) -> ImportResult:
        """Import *request*'s repository into a new workspace owned by *user_id*.

        Raises:
            InvalidImportRequestError: The request is incomplete or malformed.
            CredentialMissingError: The user has no GitHub token (no network
                call is made).
            UpstreamListingError: The recursive listing failed.
            ImportCancelledError: *cancel* was set during retrieval.
            PersistenceError: The store rejected the workspace; nothing is
                persisted.
        """
        template_kind = request.resolved_template_kind()
        preview = self.preview(request, user_id=user_id, cancel=cancel)
        reference = preview.reference

        workspace = Workspace(
            title=(request.title or "").strip() or reference.full_name,
            description=request.description,
            template=template_kind,
            owner_id=user_id,
            repository_full_name=reference.full_name,
            repository_url=reference.url,
        )
        template_json = tree_to_json(preview.tree)
        try:
            stored = self.store.create(workspace, template_json)
        except PersistenceError:
            raise
        except Exception as exc:
            msg = f"failed to store workspace for {reference.full_name}: {exc}"
            logger.error(msg)
            raise PersistenceError(msg) from exc

        logger.info(
            "Imported %s into workspace %s (%d files, %d skipped)",
            reference.full_name,
            stored.workspace_id,
            preview.retrieved_count,
            len(preview.skipped),
        )
        return ImportResult(workspace=stored, preview=preview)

    def _build(
        self,
        client: GitHubRepoClient,
        reference: RepositoryReference,
        cancel: threading.Event | None,
    ) -> ImportPreview:
        cfg = self.config
        listing = client.list_paths(reference, ref=cfg.ref)
        path_filter = ImportFilter(
            excluded_dirs=cfg.excluded_dirs, binary_extensions=cfg.binary_extensions
        )
        candidates = path_filter.apply(listing.entries)
        listed_files = sum(1 for entry in listing.entries if entry.is_file)
        logger.info(
            "%s: %d of %d files pass the filter",
            reference.full_name,
            len(candidates),
            listed_files,
        )

        retriever = ContentRetriever(
            fetch=lambda path: client.fetch_payload(reference, path, ref=cfg.ref),
            max_workers=cfg.max_workers,
            strict_utf8=cfg.strict_utf8,
            rate_limit_retries=cfg.rate_limit_retries,
            gate=RateLimitGate(max_wait=cfg.rate_limit_max_wait),
        )
        retrieved = retriever.retrieve([entry.path for entry in candidates], cancel=cancel)
        tree = build_template_tree(retrieved.files)

        warnings: list[str] = []
        if listing.truncated:
            warnings.append(
                "GitHub truncated the repository listing; some files were not imported"
            )
        if candidates and not retrieved.files:
            msg = (
                f"No importable text files found in {reference.full_name} "
                f"({len(candidates)} candidate files skipped)"
            )
            logger.warning(msg)
            warnings.append(msg)

        return ImportPreview(
            reference=reference,
            tree=tree,
            listed_count=listed_files,
            candidate_count=len(candidates),
            skipped=retrieved.skipped,
            warnings=warnings,
            truncated=listing.truncated,
        )
