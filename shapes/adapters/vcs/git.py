"""
Git adapter — the few git operations template repositories need.

Uses the git CLI through ``subprocess``, not a library binding.  Every
call either returns trimmed stdout or raises ``GitError``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from shapes.core.errors import GitError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


class GitRepository:
    """A git checkout on disk.

    Args:
        path: Working tree root (``~`` is expanded).
        timeout: Seconds before a single git invocation is abandoned.
    """

    def __init__(self, path: str | Path, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.path = Path(path).expanduser()
        self.timeout = timeout

    @staticmethod
    def is_available() -> bool:
        return shutil.which("git") is not None

    # ── Operations ──────────────────────────────────────────────

    def current_branch(self) -> str:
        return self._git(["rev-parse", "--abbrev-ref", "HEAD"])

    def has_local_changes(self) -> bool:
        return self._git(["status", "--porcelain"]) != ""

    def pull(self) -> str:
        return self._git(["pull"])

    def merged_tags(self, branch: str) -> list[str]:
        """Tags reachable from ``branch``, oldest version first."""
        output = self._git(["tag", "--sort=version:refname", f"--merged={branch}"])
        return [line for line in output.splitlines() if line.strip()]

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, args: list[str]) -> str:
        """Run a git command and return its trimmed stdout."""
        logger.debug("git %s (cwd=%s)", " ".join(args), self.path)
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GitError(f"git {args[0]} failed: {e}") from e

        if result.returncode != 0:
            raise GitError(
                result.stderr.strip()
                or f"Process exited with non-zero code {result.returncode}."
            )
        return result.stdout.strip()
