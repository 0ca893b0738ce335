"""Celery application and the background import task."""

from __future__ import annotations

import logging
import os
from typing import Any

from celery import Celery

from playground_import.lib.errors import RepositoryImportError
from playground_import.server.task_result import error_payload

logger = logging.getLogger(__name__)


def _resolve_celery_urls() -> tuple[str, str]:
    """Resolve broker/result backend URLs with sensible env fallbacks.

    Priority order:
    1. `CELERY_BROKER_URL` / `CELERY_RESULT_BACKEND`
    2. shared `REDIS_URL`
    3. local default (`redis://localhost:6379/0`)
    """
    redis_url = os.environ.get("REDIS_URL")
    broker_url = (
        os.environ.get("CELERY_BROKER_URL") or redis_url or "redis://localhost:6379/0"
    )
    # Fall back to broker URL so polling still works when only broker is set.
    backend_url = os.environ.get("CELERY_RESULT_BACKEND") or redis_url or broker_url
    return broker_url, backend_url


_BROKER_URL, _RESULT_BACKEND_URL = _resolve_celery_urls()

celery_app = Celery(
    "playground_import",
    broker=_BROKER_URL,
    backend=_RESULT_BACKEND_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
)


def run_import(
    *,
    repository_full_name: str,
    repository_url: str,
    user_id: str,
    title: str | None = None,
    description: str | None = None,
    template_kind: str | None = None,
    task_id: str | None = None,
) -> dict[str, Any]:
    """Run one import and return a JSON-serializable summary.

    Import failures are returned as a structured ``status: FAILURE`` payload
    rather than raised, so the result backend never has to serialize a
    custom exception type.
    """
    from playground_import.lib.config import Config
    from playground_import.lib.importer import ImportRequest, RepositoryImporter

    config = Config.from_env()
    if config.store_dir is None:
        logger.warning(
            "Task %s uses an in-memory store; set PLAYGROUND_IMPORT_STORE_DIR "
            "so the server can read the workspace back",
            task_id,
        )
    importer = RepositoryImporter.from_config(config)
    request = ImportRequest(
        repository_full_name=repository_full_name,
        repository_url=repository_url,
        title=title,
        description=description,
        template_kind=template_kind,
    )
    try:
        result = importer.import_repository(request, user_id=user_id)
    except RepositoryImportError as exc:
        logger.error("Import task %s failed: %s", task_id, exc)
        return error_payload(exc)

    summary = result.summary()
    summary["status"] = "SUCCESS"
    summary["task_id"] = task_id
    return summary


@celery_app.task(bind=True, name="playground_import.import_repository")
def import_repository(
    self: object,
    repository_full_name: str,
    repository_url: str,
    user_id: str = "local",
    title: str | None = None,
    description: str | None = None,
    template_kind: str | None = None,
) -> dict[str, Any]:
    """Async task: import a GitHub repository into a new workspace.

    The server enqueues this task; a worker picks it up, runs the same
    pipeline as ``POST /import`` and stores the summary as the task result.
    """
    task_id = getattr(getattr(self, "request", None), "id", None)
    return run_import(
        repository_full_name=repository_full_name,
        repository_url=repository_url,
        user_id=user_id,
        title=title,
        description=description,
        template_kind=template_kind,
        task_id=task_id,
    )
