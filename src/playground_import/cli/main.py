"""CLI entry point: parse args, load config, run one import."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from playground_import.lib.config import Config
from playground_import.lib.errors import RepositoryImportError, UpstreamListingError
from playground_import.lib.importer import ImportRequest, RepositoryImporter
from playground_import.lib.store import TEMPLATE_KINDS
from playground_import.lib.tree import TemplateFolder


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for CLI mode."""
    parser = argparse.ArgumentParser(
        prog="playground-import",
        description="Import a GitHub repository into an editable workspace.",
    )
    parser.add_argument("repo", help="GitHub repository as owner/repo.")
    parser.add_argument(
        "--url",
        default=None,
        help="Canonical repository URL (default: https://github.com/<repo>).",
    )
    parser.add_argument("--title", default=None, help="Workspace title.")
    parser.add_argument("--description", default=None, help="Workspace description.")
    parser.add_argument(
        "--template",
        type=str.upper,
        choices=TEMPLATE_KINDS,
        default=None,
        help="Workspace template kind (default: REACT).",
    )
    parser.add_argument(
        "--ref",
        default=None,
        help="Branch, tag or commit to import (default: HEAD).",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum concurrent content fetches (1-16).",
    )
    parser.add_argument(
        "--store-dir",
        default=None,
        help="Directory for the file-backed workspace store.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build and print the tree without storing a workspace.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of a text summary.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Enable verbose output.",
    )
    return parser


def render_tree(folder: TemplateFolder, indent: str = "") -> list[str]:
    """Render a template tree as indented lines, folders suffixed with ``/``."""
    lines: list[str] = []
    for item in folder.items:
        if isinstance(item, TemplateFolder):
            lines.append(f"{indent}{item.folder_name}/")
            lines.extend(render_tree(item, indent + "  "))
        else:
            lines.append(f"{indent}{item.name}")
    return lines


def _print_summary(summary: dict[str, Any]) -> None:
    print(
        f"{summary['repository']}: imported {summary['imported_files']} of "
        f"{summary['candidate_files']} candidate files "
        f"({summary['skipped_files']} skipped)"
    )
    for warning in summary["warnings"]:
        print(f"Warning: {warning}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config.from_env(
            overrides={
                "ref": args.ref,
                "max_workers": args.max_workers,
                "store_dir": args.store_dir,
                "verbose": args.verbose,
            }
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if config.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    importer = RepositoryImporter.from_config(config)
    request = ImportRequest(
        repository_full_name=args.repo,
        repository_url=args.url or f"https://github.com/{args.repo}",
        title=args.title,
        description=args.description,
        template_kind=args.template,
    )

    try:
        if args.dry_run:
            preview = importer.preview(request, user_id="cli")
            summary = preview.summary()
            if args.json:
                summary["tree"] = preview.tree.to_dict()
                print(json.dumps(summary, indent=2))
            else:
                print("\n".join(render_tree(preview.tree)))
                _print_summary(summary)
            return

        result = importer.import_repository(request, user_id="cli")
    except UpstreamListingError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        if exc.body:
            print(f"GitHub said: {exc.body}", file=sys.stderr)
        sys.exit(1)
    except RepositoryImportError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        sys.exit(130)

    summary = result.summary()
    if args.json:
        print(json.dumps(summary, indent=2))
        return
    _print_summary(summary)
    workspace = result.workspace
    print(f"workspace_id={workspace.workspace_id}")
    if config.store_dir is None:
        print("Note: no --store-dir given; the workspace was kept in memory only.")


if __name__ == "__main__":
    main()
