"""
Error taxonomy — every failure the scaffolding pipeline reports.

All of these reach the entry point unchanged and are printed as a single
``Error: ...`` line.  Filesystem errors (``OSError``) are never wrapped.
"""

from __future__ import annotations


class ShapesError(Exception):
    """Base class for all errors raised by shapes itself."""


# ── Option schema / argument vector ─────────────────────────────


class ConfigurationError(ShapesError):
    """The option schema itself is malformed (programmer error)."""


class OptionError(ShapesError):
    """The argument vector contains an invalid option."""


class UnrecognizedOptionError(OptionError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Unrecognized option: {token}")
        self.token = token


class ValueRequiredError(OptionError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Option {token} requires a value.")
        self.token = token


class UnexpectedValueError(OptionError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Option {token} does not accept a value.")
        self.token = token


class MissingOptionError(OptionError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Missing required option {token}")
        self.token = token


class ArgumentError(ShapesError):
    """Positional arguments do not fit the command's argument slots."""


class TooManyArgumentsError(ArgumentError):
    def __init__(self) -> None:
        super().__init__("Too many arguments.")


class MissingArgumentError(ArgumentError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Missing required argument: <{name}>")
        self.name = name


# ── Templates ───────────────────────────────────────────────────


class TemplateNotFoundError(ShapesError):
    def __init__(self, search: str) -> None:
        super().__init__(
            f"Template '{search}' not found. "
            "Use 'shapes list' for a list of available templates."
        )
        self.search = search


class TemplateError(ShapesError):
    """A template file could not be expanded.

    ``location`` is ``"<path>:<line>"`` of the tag that failed, once known.
    """

    location: str | None = None

    def at(self, location: str) -> TemplateError:
        """Prefix the message with ``location`` unless one is already set."""
        if self.location is None:
            self.location = location
            self.args = (f"{location}: {self}",)
        return self


class UnterminatedTagError(TemplateError):
    """An opening ``<%`` has no matching ``%>``."""


class MissingEnvironmentVariableError(TemplateError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Required environment variable {name} was not set.")
        self.name = name


class ExpressionError(TemplateError):
    """An embedded expression failed while evaluating."""


class ExpressionSyntaxError(ExpressionError):
    """An embedded expression is not well formed."""


# ── External tools ──────────────────────────────────────────────


class GitError(ShapesError):
    """A git invocation exited with a non-zero status."""
