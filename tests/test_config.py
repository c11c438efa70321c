"""Tests for reqio.config -- config files, environment variables, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from reqio.config import (
    load_config_file,
    load_env_config,
    load_project_config,
    resolve_config,
)
from reqio.exceptions import ConfigError
from reqio.models import ClientConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no REQIO_* variables set."""
    for var in [
        "REQIO_BASE_URL",
        "REQIO_TIMEOUT",
        "REQIO_CACHE_TTL",
        "REQIO_RETRY_ATTEMPTS",
        "REQIO_RETRY_DELAY",
        "REQIO_RETRY_BACKOFF",
    ]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Config files
# ---------------------------------------------------------------------------


class TestConfigFiles:
    def test_load_config_file(self, tmp_path: Path) -> None:
        path = _write_json(tmp_path / "cfg.json", {"base_url": "https://x.test"})
        assert load_config_file(path) == {"base_url": "https://x.test"}

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config_file(tmp_path / "nope.json")

    def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid config file"):
            load_config_file(path)

    def test_non_object_raises(self, tmp_path: Path) -> None:
        path = _write_json(tmp_path / "list.json", [1, 2])
        with pytest.raises(ConfigError, match="JSON object"):
            load_config_file(path)

    def test_project_config_absent(self, isolated_cwd: Path) -> None:
        assert load_project_config() is None

    def test_project_config_present(self, isolated_cwd: Path) -> None:
        _write_json(isolated_cwd / "reqio.json", {"timeout": 9})
        assert load_project_config() == {"timeout": 9}


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


class TestEnvConfig:
    def test_reads_known_variables(self) -> None:
        env = {
            "REQIO_BASE_URL": "https://env.test",
            "REQIO_TIMEOUT": "2.5",
            "REQIO_RETRY_ATTEMPTS": "7",
            "UNRELATED": "x",
        }
        assert load_env_config(env) == {
            "base_url": "https://env.test",
            "timeout": "2.5",
            "retry_attempts": "7",
        }

    def test_empty_values_ignored(self) -> None:
        assert load_env_config({"REQIO_BASE_URL": ""}) == {}


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_cwd: Path) -> None:
        assert resolve_config(environ={}) == ClientConfig()

    def test_project_file_layer(self, isolated_cwd: Path) -> None:
        _write_json(isolated_cwd / "reqio.json", {"base_url": "https://file.test", "cache_ttl": 60})
        config = resolve_config(environ={})
        assert config.base_url == "https://file.test"
        assert config.cache_ttl == 60

    def test_env_beats_file(self, isolated_cwd: Path) -> None:
        _write_json(isolated_cwd / "reqio.json", {"base_url": "https://file.test"})
        config = resolve_config(environ={"REQIO_BASE_URL": "https://env.test"})
        assert config.base_url == "https://env.test"

    def test_overrides_beat_env(self, isolated_cwd: Path) -> None:
        config = resolve_config(
            {"base_url": "https://cli.test", "timeout": None},
            environ={"REQIO_BASE_URL": "https://env.test", "REQIO_TIMEOUT": "3"},
        )
        assert config.base_url == "https://cli.test"
        # None overrides do not mask lower layers.
        assert config.timeout == 3.0

    def test_explicit_file_replaces_project_file(self, isolated_cwd: Path) -> None:
        _write_json(isolated_cwd / "reqio.json", {"base_url": "https://project.test"})
        explicit = _write_json(isolated_cwd / "other" / "cfg.json", {"retry_delay": 0.2})
        config = resolve_config(config_file=explicit, environ={})
        assert config.base_url == ""
        assert config.retry_delay == 0.2

    def test_env_values_are_coerced(self, isolated_cwd: Path) -> None:
        config = resolve_config(
            environ={"REQIO_RETRY_ATTEMPTS": "5", "REQIO_RETRY_BACKOFF": "2"}
        )
        assert config.retry_attempts == 5
        assert config.retry_backoff == 2.0

    def test_invalid_value_raises_config_error(self, isolated_cwd: Path) -> None:
        with pytest.raises(ConfigError):
            resolve_config(environ={"REQIO_TIMEOUT": "soon"})

    def test_unknown_key_in_file_raises(self, isolated_cwd: Path) -> None:
        _write_json(isolated_cwd / "reqio.json", {"base_ur": "typo"})
        with pytest.raises(ConfigError):
            resolve_config(environ={})
