"""Cell value types, coercion rules and the builtin function library."""

from __future__ import annotations

import math
import re
from typing import Any, Callable, NamedTuple, Union

from gridcalc._errors import ArgumentCountMismatchError, ErrorKind, FormulaError


# ---------------------------------------------------------------------------
# CellError: the error variant of a cell value
# ---------------------------------------------------------------------------


class CellError:
    """Error value stored as a cell's computed value.

    Renders as ``"#ERROR: <message>"`` and compares equal to that text, so
    callers that only deal in display strings can treat it as one.
    """

    __slots__ = ("kind", "message")

    ERROR_PREFIX = "#ERROR: "

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message

    @classmethod
    def from_exception(cls, exc: FormulaError) -> CellError:
        return cls(exc.kind, exc.message)

    @property
    def text(self) -> str:
        return f"{self.ERROR_PREFIX}{self.message}"

    def __repr__(self) -> str:
        return f"CellError({self.kind.value}, {self.message!r})"

    def __str__(self) -> str:
        return self.text

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CellError):
            return self.kind is other.kind and self.message == other.message
        if isinstance(other, str):
            return self.text == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.text)


# Number | Text | Error | Empty
CellValue = Union[int, float, str, CellError, None]


def is_error(val: Any) -> bool:
    """Return True if *val* is a CellError instance."""
    return isinstance(val, CellError)


def is_empty(val: Any) -> bool:
    return val is None or val == ""


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------

_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def parse_number(text: str) -> int | float | None:
    """Parse decimal text. Returns None when the text is not a plain number.

    ``inf``/``nan`` and other spellings ``float()`` would accept are rejected.
    """
    stripped = text.strip()
    if not _DECIMAL_RE.match(stripped):
        return None
    if _INTEGER_RE.match(stripped):
        return int(stripped)
    return float(stripped)


def to_number(value: Any) -> int | float | None:
    """Numeric form of a cell value, or None when it is not numeric."""
    if value is None or isinstance(value, (bool, CellError)):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value
    if isinstance(value, str):
        return parse_number(value)
    return None


def is_numeric(value: Any) -> bool:
    return to_number(value) is not None


def to_text(value: Any) -> str:
    """Textual form of a cell value."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def coerce_literal(text: str) -> CellValue:
    """Literal text as typed by the user: a number when it looks like one."""
    num = parse_number(text)
    return text if num is None else num


def _coerce_numeric(values: list[Any]) -> list[int | float]:
    """Flatten range arguments and keep only numeric values.

    Empty cells and text that does not parse are skipped, never counted as 0.
    """
    result: list[int | float] = []
    for v in values:
        if isinstance(v, (list, tuple)):
            result.extend(_coerce_numeric(list(v)))
            continue
        num = to_number(v)
        if num is not None:
            result.append(num)
    return result


def _single_value(name: str, args: list[Any]) -> Any:
    """The one argument of a unary function.

    A range argument contributes its first non-empty value.
    """
    if len(args) != 1:
        raise ArgumentCountMismatchError(name)
    value = args[0]
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


# ---------------------------------------------------------------------------
# Aggregate builtins
# ---------------------------------------------------------------------------


def _builtin_sum(args: list[Any]) -> int | float:
    return sum(_coerce_numeric(args))


def _builtin_average(args: list[Any]) -> int | float:
    nums = _coerce_numeric(args)
    if not nums:
        return 0
    return sum(nums) / len(nums)


def _builtin_max(args: list[Any]) -> int | float:
    nums = _coerce_numeric(args)
    if not nums:
        return 0
    return max(nums)


def _builtin_min(args: list[Any]) -> int | float:
    nums = _coerce_numeric(args)
    if not nums:
        return 0
    return min(nums)


def _builtin_count(args: list[Any]) -> int:
    """COUNT - counts numeric values only."""
    return len(_coerce_numeric(args))


# ---------------------------------------------------------------------------
# Text builtins
# ---------------------------------------------------------------------------


def _builtin_trim(args: list[Any]) -> str:
    """TRIM: remove leading/trailing whitespace only."""
    return to_text(_single_value("TRIM", args)).strip()


def _builtin_upper(args: list[Any]) -> str:
    return to_text(_single_value("UPPER", args)).upper()


def _builtin_lower(args: list[Any]) -> str:
    return to_text(_single_value("LOWER", args)).lower()


# ---------------------------------------------------------------------------
# Help metadata, shown by the host application's function reference.
# ---------------------------------------------------------------------------


class FunctionHelp(NamedTuple):
    category: str
    description: str
    example: str


FUNCTION_HELP: dict[str, FunctionHelp] = {
    "SUM": FunctionHelp("math", "Calculates the sum of a range of cells.", "=SUM(A1:A5)"),
    "AVERAGE": FunctionHelp("math", "Calculates the average of a range of cells.", "=AVERAGE(B1:B10)"),
    "MAX": FunctionHelp("math", "Returns the maximum value from a range of cells.", "=MAX(C1:C20)"),
    "MIN": FunctionHelp("math", "Returns the minimum value from a range of cells.", "=MIN(D5:D15)"),
    "COUNT": FunctionHelp(
        "math", "Counts the number of cells containing numerical values in a range.", "=COUNT(E1:E30)",
    ),
    "TRIM": FunctionHelp("text", "Removes leading and trailing whitespace from a cell.", "=TRIM(A1)"),
    "UPPER": FunctionHelp("text", "Converts the text in a cell to uppercase.", "=UPPER(B5)"),
    "LOWER": FunctionHelp("text", "Converts the text in a cell to lowercase.", "=LOWER(C10)"),
}


def is_supported(func_name: str) -> bool:
    """Check if a function name is one of the builtins."""
    return func_name.upper() in _BUILTINS


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_BUILTINS: dict[str, Callable[..., Any]] = {
    "SUM": _builtin_sum,
    "AVERAGE": _builtin_average,
    "MAX": _builtin_max,
    "MIN": _builtin_min,
    "COUNT": _builtin_count,
    "TRIM": _builtin_trim,
    "UPPER": _builtin_upper,
    "LOWER": _builtin_lower,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions. Each
    function takes the list of resolved arguments, one entry per argument
    written in the formula; a range argument arrives as a list.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[..., Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[..., Any]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[..., Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
