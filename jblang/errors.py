"""Errors raised while translating a program."""

from __future__ import annotations

from enum import Enum


class ErrorType(Enum):
    """Kind of compiler error."""

    TYPE_ERROR = "type"
    NAME_ERROR = "name"
    SYNTAX_ERROR = "syntax"
    REFERENCE_ERROR = "reference"
    OTHER = "other"


class CompilerError(RuntimeError):
    """An error found while compiling, with an optional source position."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.OTHER,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.line = line
        self.column = column