"""Configuration loading: CLI flags → env vars → defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from playground_import.lib.filters import DEFAULT_BINARY_EXTENSIONS, DEFAULT_EXCLUDED_DIRS

logger = logging.getLogger(__name__)

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional dependency safety
    load_dotenv = None  # type: ignore[assignment]

ConfigValue = str | bool | int | float | tuple[str, ...] | None

MAX_WORKERS_LIMIT = 16
_TRUTHY = ("1", "true", "yes")
_FALSY = ("0", "false", "no")


def _load_env_files() -> None:
    """Load a dotenv file from the working directory, if available."""
    if load_dotenv is None:
        return
    load_dotenv(Path.cwd() / ".env", override=False)


def _parse_list(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    """Normalize a comma-separated string (or sequence) into a tuple."""
    if value is None:
        return ()
    if isinstance(value, str):
        raw_items = value.split(",")
    else:
        raw_items = list(value)
    return tuple(item.strip() for item in raw_items if item and item.strip())


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(name, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return None


@dataclass(frozen=True)
class Config:
    """Immutable import configuration."""

    max_workers: int = 8
    ref: str = "HEAD"
    excluded_dirs: tuple[str, ...] = DEFAULT_EXCLUDED_DIRS
    binary_extensions: tuple[str, ...] = DEFAULT_BINARY_EXTENSIONS
    strict_utf8: bool = True
    rate_limit_retries: int = 2
    rate_limit_max_wait: float = 60.0
    store_dir: Path | None = None
    verbose: bool = False

    def __post_init__(self) -> None:
        """Validate numeric bounds and the git ref on creation."""
        if not 1 <= self.max_workers <= MAX_WORKERS_LIMIT:
            msg = f"max_workers must be between 1 and {MAX_WORKERS_LIMIT}, got {self.max_workers}"
            raise ValueError(msg)
        if self.rate_limit_retries < 0:
            raise ValueError("rate_limit_retries must be >= 0")
        if self.rate_limit_max_wait < 0:
            raise ValueError("rate_limit_max_wait must be >= 0")
        if not self.ref.strip():
            raise ValueError("ref must not be empty")

    @classmethod
    def from_env(cls, overrides: dict[str, ConfigValue] | None = None) -> Config:
        """Build config from environment variables, then apply overrides.

        Priority: overrides (CLI flags) > env vars > defaults.
        """
        _load_env_files()

        env_values: dict[str, ConfigValue] = {
            "max_workers": os.environ.get("PLAYGROUND_IMPORT_MAX_WORKERS"),
            "ref": os.environ.get("PLAYGROUND_IMPORT_REF"),
            "excluded_dirs": os.environ.get("PLAYGROUND_IMPORT_EXCLUDED_DIRS"),
            "binary_extensions": os.environ.get("PLAYGROUND_IMPORT_BINARY_EXTENSIONS"),
            "strict_utf8": _env_flag("PLAYGROUND_IMPORT_STRICT_UTF8"),
            "rate_limit_retries": os.environ.get("PLAYGROUND_IMPORT_RATE_LIMIT_RETRIES"),
            "rate_limit_max_wait": os.environ.get("PLAYGROUND_IMPORT_RATE_LIMIT_MAX_WAIT"),
            "store_dir": os.environ.get("PLAYGROUND_IMPORT_STORE_DIR"),
            "verbose": _env_flag("PLAYGROUND_IMPORT_VERBOSE"),
        }

        merged = {k: v for k, v in env_values.items() if v is not None and v != ""}
        if overrides:
            merged.update({k: v for k, v in overrides.items() if v is not None})

        store_dir = merged.get("store_dir")
        excluded = merged.get("excluded_dirs", cls.excluded_dirs)
        binary = merged.get("binary_extensions", cls.binary_extensions)

        try:
            return cls(
                max_workers=int(merged.get("max_workers", cls.max_workers)),
                ref=str(merged.get("ref", cls.ref)),
                excluded_dirs=_parse_list(excluded),  # type: ignore[arg-type]
                binary_extensions=_parse_list(binary),  # type: ignore[arg-type]
                strict_utf8=bool(merged.get("strict_utf8", cls.strict_utf8)),
                rate_limit_retries=int(
                    merged.get("rate_limit_retries", cls.rate_limit_retries)
                ),
                rate_limit_max_wait=float(
                    merged.get("rate_limit_max_wait", cls.rate_limit_max_wait)
                ),
                store_dir=Path(str(store_dir)).expanduser() if store_dir else None,
                verbose=bool(merged.get("verbose", cls.verbose)),
            )
        except (TypeError, ValueError) as exc:
            logger.error("Invalid import configuration: %s", exc)
            raise ValueError(f"Invalid import configuration: {exc}") from exc
