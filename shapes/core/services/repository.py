"""
Template repositories — discovery, synchronization, and versioning.

Each repository is a git checkout whose top-level, non-hidden directories
are templates.  Synchronization is best-effort: any problem is reported as
a warning and the (possibly stale) local checkout is used as-is.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from shapes.adapters.vcs.git import GitRepository
from shapes.core.config import loader
from shapes.core.errors import GitError
from shapes.core.fs_tree import FileTreeVisitor, walk_file_tree
from shapes.core.models.repository import RepositoryInfo, ShapesConfig

logger = logging.getLogger(__name__)

Warn = Callable[[str], None]

UNKNOWN_VERSION = "unknown"


def _log_warning(message: str) -> None:
    logger.warning(message)


def sync_with_remote(
    repository: RepositoryInfo | None = None,
    warn: Warn = _log_warning,
) -> bool:
    """Pull the latest changes of a repository's main branch.

    Skipped when the checkout is on another branch or has local changes.
    Never raises; failures are passed to ``warn``.

    Args:
        repository: Defaults to the factory repository.
        warn: Receives the reason whenever the pull is skipped or fails.

    Returns:
        True if ``git pull`` ran successfully.
    """
    repository = repository or loader.FACTORY_REPO
    if not GitRepository.is_available():
        warn(f"git not found; repository {repository.path} was not synchronized.")
        return False

    repo = GitRepository(repository.expanded_path())
    try:
        branch = repo.current_branch()
        if branch != repository.main:
            warn(
                f"Parent repository of '{repository.path}' is not on the main "
                f"branch '{repository.main}'; Update skipped."
            )
            return False

        if repo.has_local_changes():
            warn(
                f"Parent repository of '{repository.path}' contains uncommitted "
                "changes; Update skipped."
            )
            return False

        repo.pull()
    except (GitError, OSError) as e:
        warn(f"Failed to synchronize repository {repository.path}: {e}")
        return False

    logger.info("Synchronized %s", repository.path)
    return True


def get_version(repository: RepositoryInfo | None = None) -> str:
    """The newest version tag merged into the main branch, or ``"unknown"``."""
    repository = repository or loader.FACTORY_REPO
    try:
        tags = GitRepository(repository.expanded_path()).merged_tags(repository.main)
    except (GitError, OSError) as e:
        logger.debug("Version lookup failed for %s: %s", repository.path, e)
        return UNKNOWN_VERSION
    return tags[-1] if tags else UNKNOWN_VERSION


class _TopLevelDirectories(FileTreeVisitor):
    def __init__(self) -> None:
        self.found: list[Path] = []

    def pre_visit_directory(self, path: Path) -> bool:
        if not path.name.startswith("."):
            self.found.append(path)
        # do not recurse into templates
        return False


def list_templates(repository: RepositoryInfo) -> list[Path]:
    """Top-level non-hidden directories of one repository, as absolute paths."""
    root = repository.expanded_path().resolve()
    visitor = _TopLevelDirectories()
    walk_file_tree(root, visitor)
    return visitor.found


def list_known_templates(
    git_disabled: bool = False,
    config: ShapesConfig | None = None,
    warn: Warn = _log_warning,
) -> list[Path]:
    """Every template of the factory repository and configured repositories.

    Args:
        git_disabled: Skip synchronizing repositories first.
        config: Loaded config; read from disk when omitted.
        warn: Receives non-fatal problems (sync failures, missing checkouts).

    Raises:
        ConfigError: If the config file is invalid.
    """
    repos = loader.repositories(config)

    if not git_disabled:
        for repository in repos:
            sync_with_remote(repository, warn=warn)

    templates: list[Path] = []
    for repository in repos:
        if not repository.expanded_path().is_dir():
            warn(f"Template repository '{repository.path}' does not exist; skipped.")
            continue
        templates.extend(list_templates(repository))
    return templates
