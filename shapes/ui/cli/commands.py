"""
Built-in commands and the global option schema.

    shapes [<options>] <command> [<args>]

Every command's options are merged into one schema, so any option may be
given anywhere on the command line.  ``run`` parses the argument vector
with ``shapes.core.options`` and dispatches; an unknown or missing command
shows help.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from shapes import __version__
from shapes.core.config.loader import config_path
from shapes.core.observability.logging_config import setup_from_environment
from shapes.core.options import (
    ArgumentDefinition,
    OptionDefinition,
    map_args,
    parse_options,
)
from shapes.core.services.repository import (
    UNKNOWN_VERSION,
    get_version,
    list_known_templates,
    sync_with_remote,
)
from shapes.core.use_cases.scaffold import resolve_template, scaffold
from shapes.ui.cli import console

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """What a command receives: mapped positionals and all option values."""

    args: dict[str, str]
    options: dict[str, str | bool]


@dataclass
class Command:
    description: str
    run: Callable[[Invocation], None]
    args: tuple[ArgumentDefinition, ...] = ()
    options: dict[str, OptionDefinition] = field(default_factory=dict)


# ── Commands ────────────────────────────────────────────────────


def _config(invocation: Invocation) -> None:
    console.log(str(config_path()))


def _list(invocation: Invocation) -> None:
    templates = list_known_templates(
        git_disabled=bool(invocation.options["git_disabled"]),
        warn=console.warn,
    )

    if templates:
        console.log(console.underline("Available Templates"))
    for template in templates:
        console.log(f"∙ {console.muted(str(template.parent) + os.sep)}{console.bold(template.name)}")

    console.log()
    console.log(f"{console.bold(len(templates))} total")


def _mkdir(invocation: Invocation) -> None:
    target_dir = Path(invocation.args["dirname"]).resolve()
    template_dir = resolve_template(
        invocation.args["template"],
        lambda: list_known_templates(
            git_disabled=bool(invocation.options["git_disabled"]),
            warn=console.warn,
        ),
    )

    result = scaffold(
        template_dir,
        target_dir,
        preview=not invocation.options["preview_disabled"],
        echo=console.log,
        confirm=console.ask_yes_no,
    )
    if result.completed:
        console.log()
        console.log(console.success("Finished!"))


def _update(invocation: Invocation) -> None:
    old_version = get_version()
    sync_with_remote(warn=console.warn)
    new_version = get_version()

    if old_version == new_version:
        console.log("No updates available.")
    else:
        console.log(console.success(f"Updated CLI from {old_version} to {console.bold(new_version)}."))


def _version(invocation: Invocation) -> None:
    version = get_version()
    if version == UNKNOWN_VERSION:
        version = __version__
    console.log(f"Shapes version: {console.bold(version)}")


def _help(invocation: Invocation) -> None:
    console.log(console.underline("General Usage:"))
    console.log(console.bold("shapes [<options>] <command> [<args>]"))
    console.log()

    console.log(console.underline("Commands:"))
    for name, command in COMMANDS.items():
        usage = "".join(
            f" [{arg.name}]" if arg.optional else f" <{arg.name}>" for arg in command.args
        )
        console.log(f"∙ {console.bold(f'shapes [<options>] {name}{usage}')}")
        console.log(f"  {command.description}")
        console.log()

    console.log(console.underline("Options:"))
    for definition in OPTIONS.values():
        aliases = ", ".join(definition.aliases())
        if definition.has_value:
            aliases += " <value>" if definition.required else f" <value={definition.default}>"
        console.log(f"∙ {console.bold(aliases)}")
        console.log(f"  {definition.description}")
        console.log()


COMMANDS: dict[str, Command] = {
    "config": Command(
        description="Prints the absolute path to the current shapes config file.",
        run=_config,
    ),
    "list": Command(
        description="Lists available templates.",
        run=_list,
    ),
    "mkdir": Command(
        description="Sets up a new directory using a template.",
        run=_mkdir,
        args=(ArgumentDefinition("template"), ArgumentDefinition("dirname")),
        options={
            "preview_disabled": OptionDefinition(
                long=("force",),
                short=("f",),
                description="Force run without preview.",
            ),
        },
    ),
    "update": Command(
        description="Updates the built-in templates to the newest version.",
        run=_update,
    ),
    "version": Command(
        description="Prints the CLI version.",
        run=_version,
    ),
    "help": Command(
        description="Show help.",
        run=_help,
    ),
}

SHARED_OPTIONS: dict[str, OptionDefinition] = {
    "git_disabled": OptionDefinition(
        long=("no-git",),
        short=("g",),
        description="Disable Git operations (pull).",
    ),
    "verbose": OptionDefinition(
        long=("verbose",),
        short=("v",),
        description="Log progress to stderr.",
    ),
    "debug": OptionDefinition(
        long=("debug",),
        description="Log everything, including git invocations.",
    ),
}


def merged_options(commands: Mapping[str, Command]) -> dict[str, OptionDefinition]:
    """The shared options plus every command's own options."""
    merged = dict(SHARED_OPTIONS)
    for command in commands.values():
        merged.update(command.options)
    return merged


OPTIONS = merged_options(COMMANDS)


# ── Dispatch ────────────────────────────────────────────────────


def run(argv: list[str]) -> None:
    """Parse ``argv`` and execute the selected command.

    Raises:
        ShapesError, ConfigError, OSError: Left for the entry point to report.
    """
    parsed = parse_options(OPTIONS, argv)
    setup_from_environment(
        verbose=bool(parsed.options["verbose"]),
        debug=bool(parsed.options["debug"]),
    )

    name = parsed.args[0] if parsed.args else "help"
    command = COMMANDS.get(name)
    if command is None:
        logger.info("Unknown command '%s'; showing help", name)
        command, rest = COMMANDS["help"], []
    else:
        rest = parsed.args[1:]

    logger.debug("Running '%s' with %s", name, parsed.options)
    command.run(Invocation(args=map_args(command.args, rest), options=parsed.options))
