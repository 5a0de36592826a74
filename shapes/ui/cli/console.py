"""
Console output — the lines shapes prints for people, not for logs.

Thin wrappers over click so colour is stripped automatically when output
is not a terminal.
"""

from __future__ import annotations

import logging

import click

logger = logging.getLogger(__name__)


def log(message: str = "") -> None:
    click.echo(message)


def warn(message: str) -> None:
    logger.debug("warning shown: %s", message)
    click.echo(
        click.style("Warning", fg="yellow", bold=True) + click.style(f": {message}", fg="yellow"),
        err=True,
    )


def error(message: str) -> None:
    click.echo(
        click.style("Error", fg="red", bold=True) + click.style(f": {message}", fg="red"),
        err=True,
    )


def bold(text: object) -> str:
    return click.style(str(text), bold=True)


def underline(text: str) -> str:
    return click.style(text, underline=True)


def ask_yes_no(prompt: str) -> bool:
    """Ask until the answer is yes or no."""
    return click.confirm(prompt, default=None)


def success(text: str) -> str:
    return click.style(text, fg="green")


def muted(text: str) -> str:
    return click.style(text, fg="bright_black")
