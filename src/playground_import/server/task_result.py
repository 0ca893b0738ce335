"""Task result normalization helpers for server and MCP endpoints."""

from __future__ import annotations

from typing import Any

from playground_import.lib.errors import RepositoryImportError, UpstreamListingError

__all__ = ["error_payload", "normalize_task_result"]


def error_payload(exc: BaseException, *, status: str = "FAILURE") -> dict[str, Any]:
    """Describe a failed import as a JSON-serializable dict."""
    payload: dict[str, Any] = {
        "error": str(exc),
        "error_type": type(exc).__name__,
        "status": status,
    }
    if isinstance(exc, UpstreamListingError):
        payload["upstream_status"] = exc.status
        payload["upstream_body"] = exc.body
    if isinstance(exc, RepositoryImportError):
        payload["import_error"] = True
    return payload


def normalize_task_result(status: str, raw_result: Any) -> dict[str, Any] | None:
    """Normalize Celery task results into JSON-serializable dicts.

    Celery can return non-dict objects (including exception instances) for
    failed tasks. API surfaces should return structured JSON payloads instead
    of leaking non-serializable objects.
    """
    if raw_result is None:
        return None
    if isinstance(raw_result, dict):
        return raw_result
    if isinstance(raw_result, BaseException):
        return error_payload(raw_result, status=status)
    return {
        "value": str(raw_result),
        "value_type": type(raw_result).__name__,
        "status": status,
    }
