"""
Scaffold use case — materialize a template directory at a new location.

    1. Resolve the template (explicit path, or suffix match on known templates)
    2. Optionally preview the resulting tree and ask for confirmation
    3. Walk the template: mirror directories, copy static files, expand
       template files

Nothing is rolled back on failure; files written before the error stay.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import click

from shapes.core.errors import TemplateNotFoundError
from shapes.core.fs_tree import (
    FileTreeNode,
    FileTreeVisitor,
    get_file_tree,
    render_tree,
    walk_file_tree,
)
from shapes.core.template import (
    TemplateContext,
    expand_template,
    is_template,
    remove_template_extension,
)

logger = logging.getLogger(__name__)

# Never previewed or copied.
IGNORED_NAMES = frozenset({".git", ".DS_Store"})


def is_ignored(path: Path) -> bool:
    return path.name in IGNORED_NAMES


@dataclass
class ScaffoldResult:
    """What a scaffold run did."""

    template_dir: Path
    target_dir: Path
    completed: bool = False
    directories: list[Path] = field(default_factory=list)
    copied: list[Path] = field(default_factory=list)
    expanded: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "template": str(self.template_dir),
            "target": str(self.target_dir),
            "completed": self.completed,
            "directories": [str(p) for p in self.directories],
            "copied": [str(p) for p in self.copied],
            "expanded": [str(p) for p in self.expanded],
        }


# ── Lookup ──────────────────────────────────────────────────────


def resolve_template(
    identifier: str,
    known_templates: Callable[[], Iterable[Path]],
) -> Path:
    """Find the template directory an identifier refers to.

    Identifiers containing a path separator are taken as paths.  Anything
    else is matched case-insensitively against the end of each known
    template path; the first match wins.

    Args:
        identifier: What the user typed.
        known_templates: Called only when a search is needed.

    Raises:
        TemplateNotFoundError: If nothing matches, or the path given is
            not a directory.
    """
    separators = {os.sep, os.altsep} - {None}
    if any(sep in identifier for sep in separators):
        path = Path(identifier).expanduser().resolve()
        if not path.is_dir():
            raise TemplateNotFoundError(identifier)
        return path

    search = identifier.lower()
    for template in known_templates():
        if str(template).lower().endswith(search):
            logger.debug("Template '%s' resolved to %s", identifier, template)
            return template

    raise TemplateNotFoundError(identifier)


# ── Preview ─────────────────────────────────────────────────────


def _preview_label(node: FileTreeNode, is_root: bool) -> str:
    name = str(node.path) if is_root else node.path.name
    if node.is_directory:
        return click.style(name + os.sep, bold=True)
    if is_template(name):
        return click.style(remove_template_extension(name), fg="green", bold=True)
    return click.style(name, fg="blue", bold=True)


def preview_lines(template_dir: Path, target_dir: Path) -> list[str]:
    """The tree ``template_dir`` would produce, drawn rooted at ``target_dir``."""
    tree = get_file_tree(template_dir, include=lambda p: not is_ignored(p))
    tree.path = target_dir
    return render_tree(tree, label=_preview_label)


# ── Materialization ─────────────────────────────────────────────


class _Materializer(FileTreeVisitor):
    """Mirrors a template tree into the target directory."""

    def __init__(self, result: ScaffoldResult, context: TemplateContext) -> None:
        self.result = result
        self.context = context

    def _destination(self, src: Path) -> Path:
        return self.result.target_dir / src.relative_to(self.result.template_dir)

    def pre_visit_directory(self, path: Path) -> bool:
        if is_ignored(path):
            return False
        dst = self._destination(path)
        dst.mkdir()
        self.result.directories.append(dst)
        return True

    def visit_file(self, path: Path) -> None:
        if is_ignored(path):
            return
        dst = self._destination(path)
        if is_template(dst):
            dst = Path(remove_template_extension(dst))
            expand_template(path, dst, self.context)
            self.result.expanded.append(dst)
        else:
            shutil.copyfile(path, dst)
            self.result.copied.append(dst)


def scaffold(
    template_dir: Path,
    target_dir: Path,
    *,
    preview: bool = True,
    echo: Callable[[str], None] = click.echo,
    confirm: Callable[[str], bool] = click.confirm,
    context: TemplateContext | None = None,
) -> ScaffoldResult:
    """Create ``target_dir`` from ``template_dir``.

    Args:
        template_dir: Resolved template directory.
        target_dir: Destination; created (with parents) if missing.
        preview: Show the resulting tree and ask ``confirm`` first.
        echo: Line printer for the preview.
        confirm: Yes/no question; declining ends the run without error.
        context: Template run context.  One context (so one prompt memo) is
            shared by every template file of the run.

    Returns:
        ScaffoldResult; ``completed`` is False if the user declined.

    Raises:
        TemplateError: If a template file fails to expand.
        FileExistsError: If a directory mirrored from the template already
            exists below ``target_dir``.
        OSError: On other filesystem failures.
    """
    template_dir = Path(template_dir)
    target_dir = Path(target_dir).resolve()
    result = ScaffoldResult(template_dir=template_dir, target_dir=target_dir)

    if preview:
        echo(click.style("Result Preview:", underline=True))
        echo("")
        for line in preview_lines(template_dir, target_dir):
            echo(line)
        echo("")
        if not confirm("Do you wish to continue?"):
            logger.info("Scaffold of %s declined", target_dir)
            return result

    if context is None:
        context = TemplateContext.create()

    target_dir.mkdir(parents=True, exist_ok=True)
    walk_file_tree(template_dir, _Materializer(result, context))

    result.completed = True
    logger.info(
        "Scaffolded %s from %s (%d copied, %d expanded)",
        target_dir, template_dir, len(result.copied), len(result.expanded),
    )
    return result
