"""
Template expansion — renders ``<% ... %>`` tags inside template files.

A file is a template when its name ends with ``TEMPLATE_FILE_EXT``; the
marker is dropped from the destination name.  Text outside tags is copied
verbatim.  Each tag holds one expression (see ``shapes.core.expression``)
that may call three functions:

    ask(name, default?)   prompt the user once per run, memoized
    env(name, default?)   read the environment snapshot
    ext(path)             splice in another file, relative to the current one

All state lives in a ``TemplateContext`` that is created once per run and
handed down to included files; nothing is read from the process globally
once expansion has started.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from functools import partial
from pathlib import Path

import click

from shapes.core.errors import (
    ExpressionError,
    MissingEnvironmentVariableError,
    TemplateError,
    UnterminatedTagError,
)
from shapes.core.expression import Function, Value, evaluate, to_text

logger = logging.getLogger(__name__)

TEMPLATE_FILE_EXT = ".template"
OPEN_TAG = "<%"
CLOSE_TAG = "%>"

Prompt = Callable[[str, "str | None"], str]


def is_template(path: str | os.PathLike) -> bool:
    """Whether ``path`` is marked as a template."""
    return os.fspath(path).endswith(TEMPLATE_FILE_EXT)


def remove_template_extension(path: str | os.PathLike) -> str:
    """Strip the template marker, or return ``path`` unchanged if it has none."""
    text = os.fspath(path)
    return text[: -len(TEMPLATE_FILE_EXT)] if is_template(text) else text


def console_prompt(name: str, default: str | None) -> str:
    """Ask for a value on the terminal."""
    return click.prompt(
        f"Asking for {click.style(name, bold=True)}",
        default=default or "",
        show_default=bool(default),
    )


# ── Context ─────────────────────────────────────────────────────


@dataclass
class TemplateContext:
    """Everything an expansion run can see.

    Attributes:
        env:           Environment snapshot taken when the run started.
        answers:       Prompt memo.  Shared by reference with every child
                       context so each name is asked at most once per run.
        template_path: Canonical path of the file being expanded.
        prompt:        Callable ``(name, default) -> answer``.
    """

    env: Mapping[str, str]
    answers: dict[str, str] = field(default_factory=dict)
    template_path: Path | None = None
    prompt: Prompt = console_prompt

    @classmethod
    def create(
        cls,
        env: Mapping[str, str] | None = None,
        prompt: Prompt | None = None,
    ) -> TemplateContext:
        """Start a run, snapshotting ``os.environ`` unless ``env`` is given."""
        return cls(
            env=dict(os.environ if env is None else env),
            prompt=prompt or console_prompt,
        )

    def child(self, template_path: Path) -> TemplateContext:
        return replace(self, template_path=template_path)

    def functions(self) -> dict[str, Function]:
        """The functions bound to this context, by the name templates use."""
        return {name: partial(fn, self) for name, fn in DSL.items()}


# ── Template functions ──────────────────────────────────────────


def dsl_ask(context: TemplateContext, name: Value, default: Value = None) -> str:
    key = to_text(name)
    if key in context.answers:
        return context.answers[key]

    fallback = None if default is None else to_text(default)
    logger.debug("Prompting for %s (default=%r)", key, fallback)
    value = context.prompt(key, fallback)
    context.answers[key] = value or fallback or ""
    return context.answers[key]


def dsl_env(context: TemplateContext, name: Value, default: Value = None) -> Value:
    key = to_text(name)
    if key in context.env:
        return context.env[key]
    if default is None:
        raise MissingEnvironmentVariableError(key)
    return default


def dsl_ext(context: TemplateContext, import_path: Value) -> str:
    if context.template_path is None:
        raise ExpressionError("ext() can only be used inside a template file")
    resolved = context.template_path.parent / to_text(import_path)
    logger.debug("Including %s from %s", resolved, context.template_path)
    return expand_template_string(context, resolved)


DSL: dict[str, Callable[..., Value]] = {
    "ask": dsl_ask,
    "env": dsl_env,
    "ext": dsl_ext,
}


# ── Expansion ───────────────────────────────────────────────────


def expand_template(
    src_path: str | os.PathLike,
    dst_path: str | os.PathLike,
    context: TemplateContext | None = None,
) -> None:
    """Expand a template file and write the result.

    Args:
        src_path: The template file.
        dst_path: Where to write the expanded text.
        context: Run context to share prompt answers with other files.
            A fresh one (with a new environment snapshot) by default.

    Raises:
        TemplateError: If the file is not UTF-8 text, or one of its tags
            is unterminated or fails to evaluate.
        OSError: On read/write failures.
    """
    if context is None:
        context = TemplateContext.create()

    logger.debug("Expanding %s -> %s", src_path, dst_path)
    result = expand_template_string(context, Path(src_path))
    with open(dst_path, "w", encoding="utf-8", newline="") as fh:
        fh.write(result)


def expand_template_string(parent: TemplateContext, path: Path) -> str:
    """Expand ``path`` and return the text.

    Non-template files are returned verbatim.  The file is read through its
    canonical path so that ``ext()`` paths resolve the same way whether it
    was reached directly or through a link.
    """
    template_path = Path(os.path.realpath(path))
    try:
        with open(template_path, encoding="utf-8", newline="") as fh:
            template = fh.read()
    except UnicodeDecodeError as e:
        raise TemplateError(
            f"{template_path} is not valid UTF-8 text (byte {e.start})"
        ) from e

    if not is_template(path):
        return template

    context = parent.child(template_path)
    functions = context.functions()

    pieces: list[str] = []
    anchor = 0
    while True:
        start = template.find(OPEN_TAG, anchor)
        if start == -1:
            break

        body_start = start + len(OPEN_TAG)
        end = template.find(CLOSE_TAG, body_start)
        location = f"{template_path}:{_line_of(template, start)}"
        if end == -1:
            raise UnterminatedTagError(f"Expected a closing tag {CLOSE_TAG}").at(location)

        pieces.append(template[anchor:start])
        try:
            value = evaluate(template[body_start:end], functions)
        except TemplateError as e:
            e.at(location)
            raise
        except RecursionError as e:
            # deeply nested expression, or a file that ext()s itself
            raise ExpressionError("Expression or inclusion nested too deeply").at(location) from e
        pieces.append(to_text(value))
        anchor = end + len(CLOSE_TAG)

    pieces.append(template[anchor:])
    return "".join(pieces)


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1
