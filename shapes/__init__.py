"""Shapes — scaffold new directories from git-backed template repositories."""

__version__ = "0.1.0"
