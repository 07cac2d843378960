"""
Error handling for the Tontoo command line.

Command handlers raise :class:`CLIError` subclasses (or let a
:class:`~tontoo.errors.TontooError` escape); ``handle_cli_exception``
prints them and exits.
"""

from __future__ import annotations

import os
import sys
import traceback
from typing import Any, Dict, Optional

_CLI_TRACE_LIMIT = 4000


class CLIError(Exception):
    """
    Base exception for CLI operations.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code
        hint: Optional suggestion for resolving the error
        context: Additional metadata about the error
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        hint: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.hint = hint
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class CLIFileNotFoundError(CLIError):
    """A bundle or project directory given on the command line does not exist."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "CLI_FILE_NOT_FOUND")
        super().__init__(message, **kwargs)


class CLIRuntimeError(CLIError):
    """Failures while a command runs, as opposed to argument errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "CLI_RUNTIME_ERROR")
        super().__init__(message, **kwargs)


class CLIBuildError(CLIRuntimeError):
    """Project collection, syntax check or artefact writing failed."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("code", "CLI_BUILD_ERROR")
        super().__init__(message, **kwargs)


def _env_flag(name: str) -> bool:
    val = os.getenv(name)
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "yes", "on"}


def cli_verbose_enabled(verbose_flag: bool = False) -> bool:
    """Verbose output is on with ``--verbose`` or ``TONTOO_VERBOSE=1``."""
    return verbose_flag or _env_flag("TONTOO_VERBOSE")


def format_traceback_excerpt() -> str:
    trace = traceback.format_exc().strip()
    if len(trace) <= _CLI_TRACE_LIMIT:
        return trace
    return f"{trace[:_CLI_TRACE_LIMIT - 3]}..."


def format_cli_error(exc: BaseException, *, verbose: bool = False, include_traceback: bool = False) -> str:
    """
    Format an exception for display.

    Args:
        exc: Exception to format
        verbose: Include the error context
        include_traceback: Append the current traceback

    Returns:
        Message lines prefixed with ``✗``
    """
    lines = []
    if isinstance(exc, CLIError):
        lines.append(f"✗ {exc.message}")
        if exc.hint:
            lines.append(f"Hint: {exc.hint}")
        if verbose and exc.context:
            lines.append("Context:")
            for key, value in exc.context.items():
                lines.append(f"  {key}: {value}")
    else:
        formatter = getattr(exc, "format", None)
        detail = formatter() if callable(formatter) else f"{exc.__class__.__name__}: {exc}"
        lines.append(f"✗ {detail}")

    if include_traceback:
        lines.append("Traceback:")
        lines.append(format_traceback_excerpt())
    return "\n".join(lines)


def handle_cli_exception(exc: BaseException, *, verbose: bool = False, exit_code: int = 1) -> None:
    """
    Print ``exc`` to stderr and exit with ``exit_code``.

    Note:
        This function calls sys.exit() and does not return.
    """
    verbose_effective = cli_verbose_enabled(verbose)
    print(
        format_cli_error(exc, verbose=verbose_effective, include_traceback=verbose_effective),
        file=sys.stderr,
    )
    sys.exit(exit_code)


__all__ = [
    "CLIError",
    "CLIFileNotFoundError",
    "CLIRuntimeError",
    "CLIBuildError",
    "cli_verbose_enabled",
    "format_cli_error",
    "handle_cli_exception",
]
