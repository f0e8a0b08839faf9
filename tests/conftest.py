"""Test configuration and fixtures for stubsim."""

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sim_root(temp_dir: Path) -> Path:
    """Create an empty simulation root."""
    root = temp_dir / "simulator"
    root.mkdir()
    return root


@pytest.fixture
def write_fixture(sim_root: Path) -> Callable[..., Path]:
    """Return a helper that writes a <name>-Request/<name>-Response pair."""

    def _write(
        relative: str,
        name: str,
        request: str,
        response: str,
        ext: str = "txt",
    ) -> Path:
        directory = sim_root / relative
        directory.mkdir(parents=True, exist_ok=True)
        request_file = directory / f"{name}-Request.{ext}"
        request_file.write_text(request)
        (directory / f"{name}-Response.{ext}").write_text(response)
        return request_file

    return _write


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Keep tests away from the real ~/.stubsim and STUBSIM_* variables."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    for key in (
        "STUBSIM_ROOT_PATH",
        "STUBSIM_HOST",
        "STUBSIM_PORT",
        "STUBSIM_PROXY_URL",
        "STUBSIM_READ_TIMEOUT",
        "STUBSIM_BUFFER_SIZE",
        "STUBSIM_HEADER_PROPAGATION",
        "STUBSIM_SCRIPT_SUFFIX",
        "STUBSIM_POST_HOOKS_ON_SHORT_CIRCUIT",
        "STUBSIM_VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)
