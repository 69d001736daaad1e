"""Error types for the L5 toolchain.

Every stage raises a subclass of `L5Error`. The checker never accumulates
errors: the first one raised aborts the whole check. Callers that prefer a
value over an exception use `TypeCheckResult`.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class L5Error(Exception):
    """Base class for reader, parser and type-check failures."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass
class ReaderError(L5Error):
    """Lexical or bracket-structure error in the source text."""

    line: int = 0

    def __str__(self) -> str:
        return f"reader error in line {self.line + 1}: {self.message}"


@dataclass
class ParseError(L5Error):
    """An s-expression that is not a valid L5 form or type annotation."""


@dataclass
class L5TypeError(L5Error):
    """Type-check failure."""


@dataclass(frozen=True)
class TypeCheckResult:
    """Outcome of checking one source text.

    Exactly one of `type_str` and `message` is set.
    """

    success: bool
    type_str: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, type_str: str) -> TypeCheckResult:
        """Build a successful result."""
        return cls(success=True, type_str=type_str)

    @classmethod
    def failure(cls, error: L5Error) -> TypeCheckResult:
        """Build a failed result from the error that aborted the check."""
        return cls(success=False, message=str(error))

    def __bool__(self) -> bool:
        return self.success

    def __str__(self) -> str:
        if self.success:
            return f"TypeCheckResult: {self.type_str}"
        return f"TypeCheckResult: failed\n  {self.message}"
