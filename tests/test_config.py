"""Tests for configuration management."""

from pathlib import Path

import pytest

from stubsim import config
from stubsim.modules.simulator import HeaderPropagation


def _project_env(project_dir: Path, text: str) -> None:
    env_dir = project_dir / ".stubsim"
    env_dir.mkdir(parents=True, exist_ok=True)
    (env_dir / ".env").write_text(text)


def _global_config(text: str) -> None:
    path = config.global_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestLoadEnvFile:
    """Tests for load_env_file."""

    def test_load_env_file_missing_returns_empty(self, temp_dir: Path) -> None:
        assert config.load_env_file(temp_dir / ".env") == {}

    def test_load_env_file_parses_and_strips(self, temp_dir: Path) -> None:
        env_path = temp_dir / ".env"
        env_path.write_text("# comment\n\nFOO=\"bar\"\nBAZ='qux'\n")
        assert config.load_env_file(env_path) == {"FOO": "bar", "BAZ": "qux"}


class TestGetConfig:
    """Tests for get_config priority."""

    def test_default(self, temp_dir: Path) -> None:
        assert config.get_config("STUBSIM_HOST", temp_dir, default="d") == "d"

    def test_global_over_default(self, temp_dir: Path) -> None:
        _global_config("STUBSIM_HOST: 0.0.0.0\n")
        assert config.get_config("STUBSIM_HOST", temp_dir, default="d") == "0.0.0.0"

    def test_project_over_global(self, temp_dir: Path) -> None:
        _global_config("STUBSIM_HOST: 0.0.0.0\n")
        _project_env(temp_dir, "STUBSIM_HOST=10.0.0.1\n")
        assert config.get_config("STUBSIM_HOST", temp_dir) == "10.0.0.1"

    def test_env_over_project(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _project_env(temp_dir, "STUBSIM_HOST=10.0.0.1\n")
        monkeypatch.setenv("STUBSIM_HOST", "192.168.0.1")
        assert config.get_config("STUBSIM_HOST", temp_dir) == "192.168.0.1"

    def test_typed_getters(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUBSIM_PORT", "8088")
        monkeypatch.setenv("STUBSIM_READ_TIMEOUT", "2.5")
        monkeypatch.setenv("STUBSIM_VERBOSE", "yes")
        assert config.get_int("STUBSIM_PORT", temp_dir) == 8088
        assert config.get_float("STUBSIM_READ_TIMEOUT", temp_dir) == 2.5
        assert config.get_bool("STUBSIM_VERBOSE", temp_dir) is True

    def test_malformed_int(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUBSIM_PORT", "eighty")
        with pytest.raises(ValueError, match="STUBSIM_PORT"):
            config.get_int("STUBSIM_PORT", temp_dir)

    def test_uri_map_from_global(self) -> None:
        _global_config("uri_map:\n  '^/a/(.*)': 'http://a/$1'\n")
        assert config.get_uri_map() == {"^/a/(.*)": "http://a/$1"}

    def test_uri_map_must_be_mapping(self) -> None:
        _global_config("uri_map:\n  - nope\n")
        with pytest.raises(ValueError):
            config.get_uri_map()


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self, temp_dir: Path) -> None:
        settings = config.load_settings(temp_dir)
        assert settings.root_path == temp_dir / "simulator"
        assert settings.port == 9100
        assert settings.read_timeout == 12.0
        assert settings.buffer_size == 100000
        assert settings.header_propagation is HeaderPropagation.CONTENT_TYPE
        assert settings.script_suffix == ".py"
        assert settings.post_hooks_on_short_circuit is True
        assert settings.forwarding_enabled is False

    def test_env_values(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUBSIM_PROXY_URL", "http://backend")
        monkeypatch.setenv("STUBSIM_HEADER_PROPAGATION", "ALL")
        monkeypatch.setenv("STUBSIM_SCRIPT_SUFFIX", "sh")
        monkeypatch.setenv("STUBSIM_POST_HOOKS_ON_SHORT_CIRCUIT", "false")
        settings = config.load_settings(temp_dir)
        assert settings.proxy_url == "http://backend"
        assert settings.forwarding_enabled is True
        assert settings.header_propagation is HeaderPropagation.ALL
        assert settings.script_suffix == ".sh"
        assert settings.post_hooks_on_short_circuit is False

    def test_overrides_win_unless_none(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUBSIM_PORT", "8088")
        settings = config.load_settings(
            temp_dir, port=None, root_path=str(temp_dir / "r"), header_propagation="all"
        )
        assert settings.port == 8088
        assert settings.root_path == temp_dir / "r"
        assert settings.header_propagation is HeaderPropagation.ALL

    def test_invalid_header_propagation(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUBSIM_HEADER_PROPAGATION", "some")
        with pytest.raises(ValueError, match="STUBSIM_HEADER_PROPAGATION"):
            config.load_settings(temp_dir)
