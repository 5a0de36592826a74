"""
Shapes — CLI entrypoint.

Usage:
    shapes help
    shapes list
    shapes mkdir <template> <dirname>

click provides terminal I/O, prompting and the test runner, but the
argument vector is handed untouched to ``shapes.core.options``: commands
and options are declared in ``shapes.ui.cli.commands``.
"""

from __future__ import annotations

import sys

import click

from shapes.core.config.loader import ConfigError
from shapes.core.errors import ShapesError
from shapes.ui.cli import console
from shapes.ui.cli.commands import run


class RawArgvCommand(click.Command):
    """A click command that skips click's own parsing.

    Every token (including ``--help`` and ``--``) reaches the callback as
    the ``argv`` list.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        ctx.params["argv"] = list(args)
        ctx.args = []
        return []


@click.command(cls=RawArgvCommand, add_help_option=False)
def cli(argv: list[str]) -> None:
    """Shapes — scaffold new directories from templates."""
    try:
        run(argv)
    except (ShapesError, ConfigError, OSError) as e:
        console.error(str(e))
        sys.exit(1)


def main() -> None:
    cli(prog_name="shapes")


if __name__ == "__main__":
    main()
