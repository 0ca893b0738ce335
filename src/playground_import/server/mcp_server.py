"""MCP server for playground_import.

Exposes repository imports over the Model Context Protocol so AI clients
(Claude Desktop, Cursor, etc.) can pull a GitHub repository into a workspace.

Tools:
  - preview_import: Build the template tree without storing it.
  - import_repository: Import into a new workspace and return its record.
  - get_workspace_template: Read back a stored template tree.

Run with:
  uv run playground-import-mcp          (stdio, for Claude Desktop / Cursor)
  uv run playground-import-mcp --http   (streamable-http, for networked clients)
"""

from __future__ import annotations

import json
import sys

from mcp.server.fastmcp import FastMCP

from playground_import.lib.config import Config
from playground_import.lib.importer import ImportRequest, RepositoryImporter

mcp = FastMCP(
    "playground_import",
    instructions=(
        "playground_import MCP server. Use preview_import to inspect what a "
        "GitHub repository would import as, then import_repository to create "
        "a workspace from it."
    ),
)

_USER_ID = "mcp"
_importer: RepositoryImporter | None = None


def _get_importer() -> RepositoryImporter:
    global _importer
    if _importer is None:
        _importer = RepositoryImporter.from_config(Config.from_env())
    return _importer


def _request(repository: str, url: str | None, **kwargs: str | None) -> ImportRequest:
    return ImportRequest(
        repository_full_name=repository,
        repository_url=url or f"https://github.com/{repository}",
        **kwargs,
    )


@mcp.tool()
def preview_import(repository: str, include_tree: bool = True) -> dict:
    """Build the template tree for a GitHub repository without storing it.

    Args:
        repository: ``owner/repo`` reference.
        include_tree: Return the serialized tree alongside the counts.

    Returns:
        Dict with file counts, warnings and (optionally) the tree.
    """
    preview = _get_importer().preview(_request(repository, None), user_id=_USER_ID)
    result = preview.summary()
    result["skipped"] = [
        {"path": skip.path, "reason": skip.reason} for skip in preview.skipped
    ]
    if include_tree:
        result["tree"] = preview.tree.to_dict()
    return result


@mcp.tool()
def import_repository(
    repository: str,
    url: str | None = None,
    title: str | None = None,
    description: str | None = None,
    template_kind: str | None = None,
) -> dict:
    """Import a GitHub repository into a new workspace.

    Args:
        repository: ``owner/repo`` reference.
        url: Canonical repository URL; defaults to the github.com URL.
        title: Workspace title; defaults to the repository name.
        description: Optional workspace description.
        template_kind: One of REACT, NEXTJS, EXPRESS, VUE, HONO, ANGULAR.

    Returns:
        Import summary including the workspace record.
    """
    result = _get_importer().import_repository(
        _request(
            repository,
            url,
            title=title,
            description=description,
            template_kind=template_kind,
        ),
        user_id=_USER_ID,
    )
    return result.summary()


@mcp.tool()
def get_workspace_template(workspace_id: str) -> dict:
    """Return the stored template tree for a workspace."""
    raw = _get_importer().store.get_template(workspace_id)
    if raw is None:
        msg = f"Workspace not found: {workspace_id}"
        raise FileNotFoundError(msg)
    return json.loads(raw)


def main() -> None:
    """Entry point for the MCP server."""
    transport = "streamable-http" if "--http" in sys.argv else "stdio"
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
