"""Unified error model for Tontoo."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorLocation:
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None

    def describe(self) -> str:
        if self.path and self.line is not None and self.column is not None:
            return f"{self.path}:{self.line}:{self.column}"
        if self.path and self.line is not None:
            return f"{self.path}:{self.line}"
        if self.path:
            return self.path
        return "unknown location"


class TontooError(Exception):
    """Base class for all build/runtime errors surfaced to users."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = ErrorLocation(path=path, line=line, column=column)
        self.path = path
        self.line = line
        self.column = column
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        location_desc = self.location.describe()
        if location_desc != "unknown location":
            meta_parts.append(location_desc)
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)


class BuildError(TontooError):
    """Raised when a project cannot be collected or written as a bundle."""

    code = "BUILD_ERROR"


class BuildSyntaxError(BuildError):
    """Raised by the pre-build syntax check (unbalanced braces, dangling keyword)."""

    code = "BUILD_SYNTAX"


class DirectiveSyntaxError(TontooError):
    """Raised when the runtime parser cannot make sense of a block."""

    code = "DIRECTIVE_SYNTAX"


class CorruptBundleError(TontooError):
    """Raised when a bundle cannot be decompressed, decrypted or parsed."""

    code = "CORRUPT_BUNDLE"


class DirectiveRuntimeError(TontooError):
    """Raised by a primitive action; logged by the runtime, never fatal."""

    code = "DIRECTIVE_RUNTIME"


class ModuleResolutionError(DirectiveRuntimeError):
    """Raised when a ``load`` entry names neither a package nor a root file."""

    code = "MODULE_NOT_FOUND"


class QueryError(DirectiveRuntimeError):
    """Raised when an external SQL query fails."""

    code = "QUERY_FAILED"


class ListenerError(TontooError):
    """Raised when an HTTP or HTTPS listener cannot be started."""

    code = "LISTENER_ERROR"


class ConfigError(TontooError):
    """Raised when a manifest or setting is unreadable."""

    code = "CONFIG_ERROR"


class RequestError(TontooError):
    """An error while serving a request, converted to an HTTP response."""

    code = "REQUEST_ERROR"

    def __init__(self, message: str, *, status_code: int = 500, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code


__all__ = [
    "ErrorLocation",
    "TontooError",
    "BuildError",
    "BuildSyntaxError",
    "DirectiveSyntaxError",
    "CorruptBundleError",
    "DirectiveRuntimeError",
    "ModuleResolutionError",
    "QueryError",
    "ListenerError",
    "ConfigError",
    "RequestError",
]
