"""Result types and the jnav error hierarchy.

Store and launcher operations return ``Ok``/``Err`` instead of raising, and
callers branch with ``match``:

    match store.remove(cwd):
        case Ok(True):
            ...
        case Ok(False):
            ...
        case Err(err):
            print(err.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        return Ok(fn(self.value))


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def map(self, fn: Callable[[T], U]) -> Err[E]:
        return self


Result = Ok[T] | Err[E]


# ---------------------------------------------------------------------------
# Domain-specific error hierarchy
# ---------------------------------------------------------------------------


class JNavError(Exception):
    """Base exception for all jnav errors.

    Every failure the engine reports to the shell is one of these, carried
    inside an ``Err`` rather than raised across a command boundary.
    """

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class NotFoundError(JNavError):
    """Raised when resolution exhausts every stage without a directory.

    Examples:
    - No database match and no path/registry fallback hit
    - ``j -`` with no previous directory
    - Interactive mode with an empty database
    """

    pass


class InvalidSelectionError(JNavError):
    """Raised when interactive input is not a valid list index."""

    pass


class StoreCorruptError(JNavError):
    """Describes a store line that failed to parse.

    Never propagated: the line is skipped and the error is logged.
    """

    pass


class StoreReadError(JNavError):
    """Raised when the store file exists but cannot be read."""

    pass


class WriteFailedError(JNavError):
    """Raised when the temporary write or atomic rename of the store fails.

    The store file is left at its last-known-good contents.
    """

    pass


class ConfigurationError(JNavError):
    """Raised for configuration issues.

    Examples:
    - Invalid config values
    - Config file parse errors
    - Unsupported shell for init
    """

    pass


class ToolExecutionError(JNavError):
    """Raised when an external collaborator fails to execute.

    Examples:
    - Launcher binary not found
    - Launcher failed to start
    """

    pass


__all__ = [
    "Ok",
    "Err",
    "Result",
    "JNavError",
    "NotFoundError",
    "InvalidSelectionError",
    "StoreCorruptError",
    "StoreReadError",
    "WriteFailedError",
    "ConfigurationError",
    "ToolExecutionError",
]
