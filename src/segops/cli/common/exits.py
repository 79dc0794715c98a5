"""Exit handling utilities for the CLI."""

from typing import NoReturn

import typer

from segops.cli.common.output import out
from segops.core.auth import AuthError
from segops.core.errors import PreconditionError, SegmentError

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID_INPUT = 2


def ok_exit(msg: str | None = None) -> NoReturn:
    """Exit successfully with an optional informational message."""
    if msg:
        out.info(msg)
    raise typer.Exit(EXIT_OK)


def die(msg: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def warn_exit(msg: str, code: int = EXIT_OK) -> NoReturn:
    """Exit with a warning message and optional exit code."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = EXIT_FAILURE) -> NoReturn:
    """Print an error message and exit with a given code, chaining ``exc``."""
    out.error(message)
    raise typer.Exit(code) from exc


def exit_code_for(exc: SegmentError) -> int:
    """Invalid input and configuration exit 2; upstream and transport failures exit 1."""
    if isinstance(exc, (PreconditionError, AuthError)):
        return EXIT_INVALID_INPUT
    return EXIT_FAILURE


def exit_from_segment_error(exc: SegmentError) -> NoReturn:
    exit_from_exc(exc, message=str(exc), code=exit_code_for(exc))
