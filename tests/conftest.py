"""
Shared test fixtures and configuration.
"""

import logging
from pathlib import Path

import pytest

from shapes.core.models.repository import RepositoryInfo


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """A template with one expanded file, one static file and one subdirectory."""
    root = tmp_path / "repo" / "greeting"
    (root / "docs").mkdir(parents=True)
    (root / "README.md.template").write_text('Hello <% env("USER","world") %>!\n')
    (root / "LICENSE").write_bytes(b"MIT License\r\n\x00binary-ish tail\n")
    (root / "docs" / "index.md").write_text("# Docs\n")
    return root


@pytest.fixture
def isolated_repos(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the factory repository at an empty temp dir and hide user config."""
    repo = tmp_path / "factory"
    repo.mkdir()
    monkeypatch.setattr(
        "shapes.core.config.loader.FACTORY_REPO",
        RepositoryInfo(path=str(repo), main="master"),
    )
    monkeypatch.setenv("SHAPES_CONFIG", str(tmp_path / "missing-config.yml"))
    return repo


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI runs reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
