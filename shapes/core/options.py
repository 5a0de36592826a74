"""
Option grammar — turns a raw argument vector into options and positionals.

Options are declared as a mapping of key -> ``OptionDefinition``.  Every
alias is matched literally (``-x`` / ``--long-name``), boolean flags may be
clustered (``-xyz``), and value flags accept both ``--name value`` and
``--name=value``.  A literal ``--`` ends option scanning; it is not an
option token, so it stays in the positionals along with everything after it.

Positionals left over after option parsing are assigned to named slots by
``map_args``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from shapes.core.errors import (
    ConfigurationError,
    MissingArgumentError,
    MissingOptionError,
    TooManyArgumentsError,
    UnexpectedValueError,
    UnrecognizedOptionError,
    ValueRequiredError,
)

# -xyz  |  --long-name[=value]
_RE_OPTION = re.compile(
    r"^(?:-([a-z0-9]+)|--([a-z0-9]+(?:-[a-z0-9]+)*)(?:=(.*))?)$",
    re.IGNORECASE | re.DOTALL,
)

END_OF_OPTIONS = "--"


@dataclass(frozen=True)
class OptionDefinition:
    """One flag of a command.

    Attributes:
        long:        Long aliases, used as ``--name``.
        short:       Single-character aliases, used as ``-n``.
        has_value:   Whether the option consumes a string value.  Options
                     are boolean flags otherwise.
        default:     Default for value options.  A value option without a
                     default is required.
        description: Help text.
    """

    long: tuple[str, ...] = ()
    short: tuple[str, ...] = ()
    has_value: bool = False
    default: str | None = None
    description: str = ""

    @property
    def required(self) -> bool:
        return self.has_value and self.default is None

    def aliases(self) -> list[str]:
        """All literal token forms, short ones first."""
        return [f"-{a}" for a in self.short] + [f"--{a}" for a in self.long]

    def display_name(self) -> str:
        """The alias used when reporting this option."""
        if self.long:
            return f"--{self.long[0]}"
        return f"-{self.short[0]}"


@dataclass(frozen=True)
class ArgumentDefinition:
    """A named positional slot of a command."""

    name: str
    optional: bool = False


@dataclass
class ParsedInvocation:
    """Options keyed by definition key, plus the unconsumed positionals."""

    options: dict[str, str | bool] = field(default_factory=dict)
    args: list[str] = field(default_factory=list)


# ── Options ─────────────────────────────────────────────────────


def build_alias_table(
    definitions: Mapping[str, OptionDefinition],
) -> dict[str, tuple[str, OptionDefinition]]:
    """Map every literal alias token to its (key, definition).

    Raises:
        ConfigurationError: On an empty long alias, a short alias that is
            not exactly one character, or an alias claimed twice.
    """
    table: dict[str, tuple[str, OptionDefinition]] = {}

    for key, definition in definitions.items():
        if not definition.long and not definition.short:
            raise ConfigurationError(f"Option '{key}' declares no aliases.")

        for alias in definition.long:
            if not alias:
                raise ConfigurationError("Command alias must not be an empty string.")
            _claim(table, f"--{alias}", key, definition)

        for alias in definition.short:
            if len(alias) != 1:
                raise ConfigurationError(
                    f"Invalid short alias '{alias}'. "
                    "Short aliases must be exactly one character long."
                )
            _claim(table, f"-{alias}", key, definition)

    return table


def _claim(
    table: dict[str, tuple[str, OptionDefinition]],
    token: str,
    key: str,
    definition: OptionDefinition,
) -> None:
    if token in table:
        raise ConfigurationError(f"Alias {token} is used by multiple options.")
    table[token] = (key, definition)


def parse_options(
    definitions: Mapping[str, OptionDefinition],
    argv: Sequence[str],
) -> ParsedInvocation:
    """Parse options out of an argument vector.

    Args:
        definitions: Option schema keyed by option key.
        argv: Raw CLI arguments.  Not modified.

    Returns:
        ParsedInvocation with every option key populated and the remaining
        positionals in their original relative order.

    Raises:
        ConfigurationError: If the schema is malformed.
        UnrecognizedOptionError: On an option-shaped token with no definition.
        ValueRequiredError: On a clustered value option, or a value option
            with nothing after it.
        UnexpectedValueError: On ``--flag=value`` for a boolean flag.
        MissingOptionError: If a required value option was not supplied.
    """
    table = build_alias_table(definitions)
    result = ParsedInvocation(args=list(argv))

    for key, definition in definitions.items():
        if not definition.has_value:
            result.options[key] = False
        elif definition.default is not None:
            result.options[key] = definition.default

    def lookup(token: str) -> tuple[str, OptionDefinition]:
        try:
            return table[token]
        except KeyError:
            raise UnrecognizedOptionError(token) from None

    def value_after(i: int, token: str) -> str:
        if i + 1 >= len(result.args):
            raise ValueRequiredError(token)
        return result.args[i + 1]

    args = result.args
    i = 0
    while i < len(args):
        token = args[i]
        if token == END_OF_OPTIONS:
            break

        match = _RE_OPTION.match(token)
        if match is None:
            i += 1
            continue

        shorts, long_name, inline_value = match.groups()
        size = 1

        if shorts is not None and len(shorts) == 1:
            key, definition = lookup(token)
            if definition.has_value:
                result.options[key] = value_after(i, token)
                size = 2
            else:
                result.options[key] = True

        elif shorts is not None:
            for char in shorts:
                key, definition = lookup(f"-{char}")
                if definition.has_value:
                    raise ValueRequiredError(f"-{char}")
                result.options[key] = True

        else:
            flag = f"--{long_name}"
            key, definition = lookup(flag)
            if definition.has_value:
                if inline_value is None:
                    result.options[key] = value_after(i, flag)
                    size = 2
                else:
                    result.options[key] = inline_value
            else:
                if inline_value is not None:
                    raise UnexpectedValueError(flag)
                result.options[key] = True

        del args[i:i + size]

    for key, definition in definitions.items():
        if key not in result.options:
            raise MissingOptionError(definition.display_name())

    return result


# ── Positional arguments ────────────────────────────────────────


def map_args(
    definitions: Sequence[ArgumentDefinition],
    positionals: Sequence[str],
) -> dict[str, str]:
    """Assign positionals to named slots in order.

    Raises:
        TooManyArgumentsError: If more positionals than slots were given.
        MissingArgumentError: If the first unfilled slot is required.
    """
    if len(positionals) > len(definitions):
        raise TooManyArgumentsError()

    count = min(len(definitions), len(positionals))
    mapped = {definitions[i].name: positionals[i] for i in range(count)}

    if count < len(definitions) and not definitions[count].optional:
        raise MissingArgumentError(definitions[count].name)

    return mapped


def validate_argument_schema(definitions: Sequence[ArgumentDefinition]) -> None:
    """Reject schemas where a required slot follows an optional one.

    ``map_args`` does not call this; it is meant for checking static
    command tables.
    """
    seen_optional = False
    for definition in definitions:
        if definition.optional:
            seen_optional = True
        elif seen_optional:
            raise ConfigurationError(
                f"Required argument <{definition.name}> must not be "
                "preceded by optional arguments."
            )
