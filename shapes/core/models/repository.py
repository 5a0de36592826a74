"""
Repository models — where templates come from.

A template repository is a git checkout whose top-level directories are
templates.  Extra repositories are declared in the shapes config file.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field


class RepositoryInfo(BaseModel):
    """A template source: a checkout path and its main branch name."""

    path: str
    main: str = "master"

    def expanded_path(self) -> Path:
        """The checkout path with a leading ``~`` expanded."""
        return Path(os.path.expanduser(self.path))


class ShapesConfig(BaseModel):
    """Root of the shapes config file."""

    repositories: list[RepositoryInfo] = Field(default_factory=list)
