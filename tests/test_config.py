"""Tests for playground_import.lib.config."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

import playground_import.lib.config as config_module
from playground_import.lib.config import Config

_ENV_VARS = (
    "PLAYGROUND_IMPORT_MAX_WORKERS",
    "PLAYGROUND_IMPORT_REF",
    "PLAYGROUND_IMPORT_EXCLUDED_DIRS",
    "PLAYGROUND_IMPORT_BINARY_EXTENSIONS",
    "PLAYGROUND_IMPORT_STRICT_UTF8",
    "PLAYGROUND_IMPORT_RATE_LIMIT_RETRIES",
    "PLAYGROUND_IMPORT_RATE_LIMIT_MAX_WAIT",
    "PLAYGROUND_IMPORT_STORE_DIR",
    "PLAYGROUND_IMPORT_VERBOSE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", None)


class TestConfigDefaults:
    def test_defaults(self) -> None:
        config = Config()
        assert config.max_workers == 8
        assert config.ref == "HEAD"
        assert config.excluded_dirs == ("node_modules",)
        assert config.binary_extensions == ("png", "jpg", "jpeg", "gif", "ico", "svg")
        assert config.strict_utf8 is True
        assert config.rate_limit_retries == 2
        assert config.rate_limit_max_wait == 60.0
        assert config.store_dir is None
        assert config.verbose is False

    def test_from_env_without_vars_matches_defaults(self) -> None:
        assert Config.from_env() == Config()


class TestConfigFromEnv:
    def test_picks_up_env_vars(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("PLAYGROUND_IMPORT_MAX_WORKERS", "12")
        monkeypatch.setenv("PLAYGROUND_IMPORT_REF", "main")
        monkeypatch.setenv("PLAYGROUND_IMPORT_EXCLUDED_DIRS", "node_modules, dist ,vendor")
        monkeypatch.setenv("PLAYGROUND_IMPORT_BINARY_EXTENSIONS", "png,pdf")
        monkeypatch.setenv("PLAYGROUND_IMPORT_STRICT_UTF8", "false")
        monkeypatch.setenv("PLAYGROUND_IMPORT_RATE_LIMIT_RETRIES", "0")
        monkeypatch.setenv("PLAYGROUND_IMPORT_RATE_LIMIT_MAX_WAIT", "5.5")
        monkeypatch.setenv("PLAYGROUND_IMPORT_STORE_DIR", str(tmp_path))
        monkeypatch.setenv("PLAYGROUND_IMPORT_VERBOSE", "yes")

        config = Config.from_env()

        assert config.max_workers == 12
        assert config.ref == "main"
        assert config.excluded_dirs == ("node_modules", "dist", "vendor")
        assert config.binary_extensions == ("png", "pdf")
        assert config.strict_utf8 is False
        assert config.rate_limit_retries == 0
        assert config.rate_limit_max_wait == 5.5
        assert config.store_dir == tmp_path
        assert config.verbose is True

    def test_overrides_beat_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLAYGROUND_IMPORT_MAX_WORKERS", "12")
        config = Config.from_env(overrides={"max_workers": 3, "ref": None})
        assert config.max_workers == 3
        assert config.ref == "HEAD"

    def test_invalid_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLAYGROUND_IMPORT_MAX_WORKERS", "lots")
        with pytest.raises(ValueError, match="Invalid import configuration"):
            Config.from_env()

    def test_out_of_range_workers(self) -> None:
        with pytest.raises(ValueError, match="max_workers"):
            Config.from_env(overrides={"max_workers": 64})

    def test_loads_dotenv(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        loaded_paths: list[Path] = []
        env_file = tmp_path / ".env"
        env_file.write_text("PLAYGROUND_IMPORT_REF=release\n")

        def fake_load_dotenv(path: Path, override: bool = False) -> bool:
            loaded_paths.append(path)
            if path == env_file:
                os.environ["PLAYGROUND_IMPORT_REF"] = "release"
            return True

        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(config_module, "load_dotenv", fake_load_dotenv)
        try:
            config = Config.from_env()
            assert config.ref == "release"
            assert env_file in loaded_paths
        finally:
            os.environ.pop("PLAYGROUND_IMPORT_REF", None)


class TestConfigValidation:
    @pytest.mark.parametrize("workers", [0, 17])
    def test_workers_bounds(self, workers: int) -> None:
        with pytest.raises(ValueError):
            Config(max_workers=workers)

    def test_blank_ref(self) -> None:
        with pytest.raises(ValueError, match="ref"):
            Config(ref="  ")
