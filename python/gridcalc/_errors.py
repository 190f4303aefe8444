"""Formula error kinds.

Every failure inside the parser, resolver or function library raises a
:class:`FormulaError` subclass. The evaluator catches them at its boundary
and turns them into a ``CellError`` value, so none of these ever reach the
code that writes cells.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    INVALID_ADDRESS = "InvalidAddress"
    RANGE_NOT_ALLOWED_HERE = "RangeNotAllowedHere"
    UNKNOWN_FUNCTION = "UnknownFunction"
    ARGUMENT_COUNT_MISMATCH = "ArgumentCountMismatch"
    CIRCULAR_REFERENCE = "CircularReference"
    MALFORMED_FORMULA = "MalformedFormula"


class FormulaError(Exception):
    """Base for all formula errors. ``message`` is what the cell displays."""

    kind: ErrorKind = ErrorKind.MALFORMED_FORMULA

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAddressError(FormulaError):
    kind = ErrorKind.INVALID_ADDRESS

    def __init__(self, address: object) -> None:
        super().__init__(f"Invalid cell address: {address}")
        self.address = address


class RangeNotAllowedHereError(FormulaError):
    kind = ErrorKind.RANGE_NOT_ALLOWED_HERE

    def __init__(self, message: str = "Cell ranges can only be used within functions") -> None:
        super().__init__(message)


class UnknownFunctionError(FormulaError):
    kind = ErrorKind.UNKNOWN_FUNCTION

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown function: {name}")
        self.name = name


class ArgumentCountMismatchError(FormulaError):
    kind = ErrorKind.ARGUMENT_COUNT_MISMATCH

    def __init__(self, name: str, expected: str = "exactly one argument") -> None:
        super().__init__(f"{name} function requires {expected}")
        self.name = name


class CircularReferenceError(FormulaError):
    kind = ErrorKind.CIRCULAR_REFERENCE

    def __init__(self, address: str) -> None:
        super().__init__(f"Circular reference detected at {address}")
        self.address = address


class MalformedFormulaError(FormulaError):
    kind = ErrorKind.MALFORMED_FORMULA

    def __init__(self, detail: str) -> None:
        super().__init__(f"Malformed formula: {detail}")
        self.detail = detail
