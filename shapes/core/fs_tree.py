"""
File tree walking — depth-first traversal with a visitor.

``walk_file_tree`` drives a ``FileTreeVisitor`` over a directory:

    pre_visit_directory(path)   before descending (not for the root);
                                returning False prunes the subtree
    visit_file(path)            once per regular file
    post_visit_directory(path)  after every child has been visited

Entries are visited in the order the operating system enumerates them.
Symbolic links are resolved relative to their containing directory and
dispatched as whatever their target is, but keep their own path.

``get_file_tree`` builds an in-memory snapshot on top of the walker, and
``render_tree`` turns a snapshot into ``├──`` / ``└──`` connector lines.
"""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class FileTreeVisitor:
    """Callbacks for ``walk_file_tree``.  Every hook is a no-op by default."""

    def pre_visit_directory(self, path: Path) -> bool | None:
        return None

    def visit_file(self, path: Path) -> None:
        return None

    def post_visit_directory(self, path: Path) -> None:
        return None


# ── Walker ──────────────────────────────────────────────────────


def walk_file_tree(root: PathLike, visitor: FileTreeVisitor) -> None:
    """Recursively visit every directory and file below ``root``.

    The root itself gets no ``pre_visit_directory`` call, but does get a
    ``post_visit_directory`` call once the walk completes.

    A symlinked directory whose target is already being walked further up
    the current branch is skipped with a warning instead of recursing
    forever.

    Raises:
        OSError: Propagated unchanged (missing root, dangling symlink,
            permission problems, or anything raised by the visitor).
    """
    root_path = Path(root)
    _walk_directory(root_path, visitor, is_root=True, ancestors=())


def _walk_directory(
    dir_path: Path,
    visitor: FileTreeVisitor,
    *,
    is_root: bool,
    ancestors: tuple[str, ...],
) -> None:
    canonical = os.path.realpath(dir_path)
    if canonical in ancestors:
        logger.warning("Skipping symlink loop at %s (-> %s)", dir_path, canonical)
        return

    if not is_root and visitor.pre_visit_directory(dir_path) is False:
        return

    ancestors = ancestors + (canonical,)
    with os.scandir(dir_path) as entries:
        for entry in entries:
            _visit_entry(dir_path, dir_path / entry.name, entry, visitor, ancestors)

    visitor.post_visit_directory(dir_path)


def _visit_entry(
    parent: Path,
    entry_path: Path,
    entry: os.DirEntry[str],
    visitor: FileTreeVisitor,
    ancestors: tuple[str, ...],
) -> None:
    if entry.is_symlink():
        target = parent / os.readlink(entry_path)
        logger.debug("Resolving symlink %s -> %s", entry_path, target)
        st = os.stat(target)
        if _stat_is_dir(st):
            _walk_directory(entry_path, visitor, is_root=False, ancestors=ancestors)
        elif _stat_is_file(st):
            visitor.visit_file(entry_path)
        return

    if entry.is_dir(follow_symlinks=False):
        _walk_directory(entry_path, visitor, is_root=False, ancestors=ancestors)
    elif entry.is_file(follow_symlinks=False):
        visitor.visit_file(entry_path)


def _stat_is_dir(st: os.stat_result) -> bool:
    return stat.S_ISDIR(st.st_mode)


def _stat_is_file(st: os.stat_result) -> bool:
    return stat.S_ISREG(st.st_mode)


# ── Snapshot ────────────────────────────────────────────────────


@dataclass
class FileNode:
    """A regular file in a tree snapshot."""

    path: Path

    @property
    def is_directory(self) -> bool:
        return False


@dataclass
class DirectoryNode:
    """A directory in a tree snapshot.  Owns its ``entries``."""

    path: Path
    entries: list[FileTreeNode] = field(default_factory=list)

    @property
    def is_directory(self) -> bool:
        return True


FileTreeNode = Union[FileNode, DirectoryNode]


class _SnapshotVisitor(FileTreeVisitor):
    """Builds nested nodes while the walker descends."""

    def __init__(self, root: DirectoryNode, include: Callable[[Path], bool] | None) -> None:
        self._stack = [root]
        self._include = include

    def pre_visit_directory(self, path: Path) -> bool | None:
        if self._include is not None and not self._include(path):
            return False
        node = DirectoryNode(path=path)
        self._stack[-1].entries.append(node)
        self._stack.append(node)
        return True

    def post_visit_directory(self, path: Path) -> None:
        finished = self._stack.pop() if len(self._stack) > 1 else self._stack[0]
        finished.entries.sort(key=_entry_sort_key)

    def visit_file(self, path: Path) -> None:
        if self._include is not None and not self._include(path):
            return
        self._stack[-1].entries.append(FileNode(path=path))


def _entry_sort_key(node: FileTreeNode) -> tuple[int, str]:
    return (0 if node.is_directory else 1, node.path.name)


def get_file_tree(
    root: PathLike,
    include: Callable[[Path], bool] | None = None,
) -> DirectoryNode:
    """Snapshot the structure below ``root``.

    Each directory's entries are ordered directories first, then by name.

    Args:
        root: Directory to scan.
        include: Optional filter; entries for which it returns False are
            left out (directories are not descended into).

    Returns:
        The root DirectoryNode.  Its ``path`` may be reassigned by the
        caller, e.g. to show the snapshot rooted somewhere else.
    """
    root_node = DirectoryNode(path=Path(root))
    walk_file_tree(root_node.path, _SnapshotVisitor(root_node, include))
    return root_node


# ── Rendering ───────────────────────────────────────────────────

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE = "│   "
SPACE = "    "


def render_tree(
    node: FileTreeNode,
    label: Callable[[FileTreeNode, bool], str] | None = None,
) -> list[str]:
    """Render a snapshot as connector lines.

    Args:
        node: Root of the snapshot.  It is drawn with its full path; every
            other node with its base name.
        label: Optional callback ``(node, is_root) -> text`` to decorate
            names.  Defaults to the plain name, directories suffixed with
            the path separator.

    Returns:
        One string per node, in display order.
    """
    lines: list[str] = []
    _render(node, label or default_label, "", True, True, lines)
    return lines


def default_label(node: FileTreeNode, is_root: bool) -> str:
    name = str(node.path) if is_root else node.path.name
    return name + os.sep if node.is_directory else name


def _render(
    node: FileTreeNode,
    label: Callable[[FileTreeNode, bool], str],
    prefix: str,
    is_last: bool,
    is_root: bool,
    lines: list[str],
) -> None:
    lines.append(prefix + (LAST_BRANCH if is_last else BRANCH) + label(node, is_root))

    if isinstance(node, DirectoryNode):
        child_prefix = prefix + (SPACE if is_last else PIPE)
        total = len(node.entries)
        for i, child in enumerate(node.entries):
            _render(child, label, child_prefix, i == total - 1, False, lines)
