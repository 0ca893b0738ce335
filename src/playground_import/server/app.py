"""FastAPI app exposing the repository import operation.

Endpoints:
  - ``POST /import``: run an import synchronously, return the workspace.
  - ``POST /import/async``: enqueue the same import on a Celery worker.
  - ``GET /tasks/{task_id}``: poll an enqueued import.
  - ``GET /workspaces/{workspace_id}`` and ``.../template``: read back.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from playground_import.lib.config import Config
from playground_import.lib.errors import (
    CredentialMissingError,
    ImportCancelledError,
    InvalidImportRequestError,
    PersistenceError,
    RepositoryImportError,
    UpstreamListingError,
)
from playground_import.lib.importer import ImportRequest, RepositoryImporter
from playground_import.server.celery_app import import_repository as import_repository_task
from playground_import.server.task_result import error_payload, normalize_task_result

logger = logging.getLogger(__name__)

_DISCONNECT_POLL_SECONDS = 0.5
_ERROR_STATUS: dict[type[RepositoryImportError], int] = {
    InvalidImportRequestError: 400,
    CredentialMissingError: 400,
    UpstreamListingError: 502,
    PersistenceError: 500,
    ImportCancelledError: 499,
}

app = FastAPI(
    title="playground_import",
    description="Import GitHub repositories into editable workspaces.",
    version="0.1.0",
)

_importer: RepositoryImporter | None = None
_importer_lock = threading.Lock()


def get_importer() -> RepositoryImporter:
    """Return the process-wide importer, building it from env on first use."""
    global _importer
    with _importer_lock:
        if _importer is None:
            _importer = RepositoryImporter.from_config(Config.from_env())
        return _importer


class ImportRequestBody(BaseModel):
    """Request body for ``/import``; camelCase and snake_case keys accepted."""

    model_config = ConfigDict(populate_by_name=True)

    repository_full_name: str = Field(
        default="",
        validation_alias=AliasChoices(
            "repositoryFullName", "githubRepoFullName", "repository_full_name"
        ),
    )
    repository_url: str = Field(
        default="",
        validation_alias=AliasChoices(
            "repositoryUrl", "githubRepoUrl", "repository_url"
        ),
    )
    title: str | None = None
    description: str | None = None
    template_kind: str | None = Field(
        default=None,
        validation_alias=AliasChoices("templateKind", "template", "template_kind"),
    )

    def to_request(self) -> ImportRequest:
        return ImportRequest(
            repository_full_name=self.repository_full_name,
            repository_url=self.repository_url,
            title=self.title,
            description=self.description,
            template_kind=self.template_kind,
        )


class WorkspaceResponse(BaseModel):
    """A stored workspace record."""

    workspace_id: str
    title: str
    description: str | None = None
    template: str
    owner_id: str
    repository_full_name: str
    repository_url: str
    created_at: str


class ImportResponse(BaseModel):
    """Result of a synchronous import."""

    workspace: WorkspaceResponse
    imported_files: int
    skipped_files: int
    truncated_listing: bool = False
    warnings: list[str] = Field(default_factory=list)


class EnqueuedImportResponse(BaseModel):
    task_id: str
    status: str
    repository_full_name: str


class TaskStatus(BaseModel):
    """Response for checking task status."""

    task_id: str
    status: str
    result: dict[str, Any] | None = None


@app.exception_handler(RepositoryImportError)
async def _import_error_handler(_: Request, exc: RepositoryImportError) -> JSONResponse:
    status_code = 500
    for error_type, code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    payload = error_payload(exc)
    payload.pop("status", None)
    payload.pop("import_error", None)
    payload["detail"] = payload.pop("error")
    return JSONResponse(status_code=status_code, content=payload)


@app.get("/health")
def health() -> dict[str, str]:
    """Health check."""
    return {"status": "ok"}


@app.post("/import", response_model=ImportResponse)
async def import_repository(
    body: ImportRequestBody,
    request: Request,
    x_user_id: str = Header(default="local"),
    importer: RepositoryImporter = Depends(get_importer),
) -> ImportResponse:
    """Import a GitHub repository into a new workspace and return it.

    The import runs in a worker thread; if the client disconnects before it
    finishes, in-flight retrieval is cancelled and nothing is stored.
    """
    cancel = threading.Event()
    future = asyncio.ensure_future(
        asyncio.to_thread(
            importer.import_repository,
            body.to_request(),
            user_id=x_user_id,
            cancel=cancel,
        )
    )
    while not future.done():
        done, _ = await asyncio.wait({future}, timeout=_DISCONNECT_POLL_SECONDS)
        if not done and not cancel.is_set() and await request.is_disconnected():
            logger.warning(
                "Client disconnected; cancelling import of %s",
                body.repository_full_name,
            )
            cancel.set()
    result = future.result()

    summary = result.preview.summary()
    return ImportResponse(
        workspace=WorkspaceResponse(**result.workspace.to_dict()),
        imported_files=summary["imported_files"],
        skipped_files=summary["skipped_files"],
        truncated_listing=summary["truncated_listing"],
        warnings=summary["warnings"],
    )


@app.post("/import/async", response_model=EnqueuedImportResponse)
def enqueue_import(
    body: ImportRequestBody,
    x_user_id: str = Header(default="local"),
) -> EnqueuedImportResponse:
    """Validate the request and enqueue the import on a Celery worker."""
    request = body.to_request()
    request.reference()
    task = import_repository_task.delay(
        repository_full_name=request.repository_full_name,
        repository_url=request.repository_url,
        user_id=x_user_id,
        title=request.title,
        description=request.description,
        template_kind=request.template_kind,
    )
    return EnqueuedImportResponse(
        task_id=task.id,
        status="queued",
        repository_full_name=request.repository_full_name,
    )


@app.get("/tasks/{task_id}", response_model=TaskStatus)
def get_task(task_id: str) -> TaskStatus:
    """Fetch and normalize current Celery task status."""
    result = import_repository_task.AsyncResult(task_id)
    raw_result = result.result if result.ready() else result.info
    return TaskStatus(
        task_id=task_id,
        status=result.status,
        result=normalize_task_result(result.status, raw_result),
    )


def _require_workspace(importer: RepositoryImporter, workspace_id: str) -> Any:
    try:
        workspace = importer.store.get(workspace_id)
    except ValueError:
        workspace = None
    if workspace is None:
        raise HTTPException(status_code=404, detail=f"workspace {workspace_id} not found")
    return workspace


@app.get("/workspaces/{workspace_id}", response_model=WorkspaceResponse)
def get_workspace(
    workspace_id: str,
    importer: RepositoryImporter = Depends(get_importer),
) -> WorkspaceResponse:
    """Return a stored workspace record."""
    workspace = _require_workspace(importer, workspace_id)
    return WorkspaceResponse(**workspace.to_dict())


@app.get("/workspaces/{workspace_id}/template")
def get_workspace_template(
    workspace_id: str,
    importer: RepositoryImporter = Depends(get_importer),
) -> dict[str, Any]:
    """Return the workspace's template tree as stored."""
    _require_workspace(importer, workspace_id)
    raw = importer.store.get_template(workspace_id)
    if raw is None:
        raise HTTPException(status_code=404, detail=f"template for {workspace_id} not found")
    return json.loads(raw)
