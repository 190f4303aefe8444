"""Formula parser: ``=NAME(args)`` / ``=TERM`` classification and range helpers."""

from __future__ import annotations

import re
from collections.abc import Iterator
from enum import Enum
from typing import NamedTuple, Union

from gridcalc._errors import (
    FormulaError,
    InvalidAddressError,
    MalformedFormulaError,
    RangeNotAllowedHereError,
)
from gridcalc._utils import Address, a1_to_rowcol, is_a1, rowcol_to_a1

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Function name immediately followed by its opening paren: SUM(, TRIM(
_FUNC_RE = re.compile(r"^([A-Za-z_]+)\(")

# A single reference as written in a formula. Row validity (no A0) is
# checked later by the address codec.
_REFERENCE_RE = re.compile(r"^[A-Z]+[0-9]+$")


# ---------------------------------------------------------------------------
# Parse results
# ---------------------------------------------------------------------------


class FunctionCall(NamedTuple):
    name: str
    args: tuple[str, ...]


class BareTerm(NamedTuple):
    text: str


ParsedFormula = Union[FunctionCall, BareTerm]


class ArgKind(Enum):
    STRING = "string"
    CALL = "call"
    RANGE = "range"
    REFERENCE = "reference"
    LITERAL = "literal"


# ---------------------------------------------------------------------------
# Scanning helpers
# ---------------------------------------------------------------------------


def _find_matching_paren(expr: str, start: int) -> int:
    """Index of the ``')'`` matching the ``'('`` at *expr[start]*, or -1."""
    depth = 1
    i = start + 1
    in_string = False
    while i < len(expr):
        ch = expr[i]
        if ch == '"':
            in_string = not in_string
        elif not in_string:
            if ch == '(':
                depth += 1
            elif ch == ')':
                depth -= 1
                if depth == 0:
                    return i
        i += 1
    return -1


def _match_function_call(expr: str) -> tuple[str, str] | None:
    """If *expr* is exactly ``FUNC(balanced_args)``, return ``(name, args_str)``.

    Raises :class:`MalformedFormulaError` when *expr* opens a call whose
    parentheses never balance or close before the end of the text.
    """
    m = _FUNC_RE.match(expr)
    if not m:
        return None
    open_idx = m.end() - 1
    close_idx = _find_matching_paren(expr, open_idx)
    if close_idx < 0:
        raise MalformedFormulaError("unbalanced parentheses")
    if close_idx != len(expr) - 1:
        raise MalformedFormulaError(f"unexpected text after {m.group(1)}(...)")
    return (m.group(1), expr[open_idx + 1 : close_idx])


def _is_quoted(text: str) -> bool:
    return len(text) >= 2 and text[0] == '"' and text[-1] == '"'


def _has_top_level_colon(expr: str) -> bool:
    """``True`` when *expr* contains ``:`` outside parens and quotes."""
    depth = 0
    in_string = False
    for ch in expr:
        if ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
        elif ch == ':' and depth == 0:
            return True
    return False


def _check_balanced(expr: str) -> None:
    depth = 0
    in_string = False
    for ch in expr:
        if ch == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                raise MalformedFormulaError("unbalanced parentheses")
    if in_string:
        raise MalformedFormulaError("unterminated string")
    if depth != 0:
        raise MalformedFormulaError("unbalanced parentheses")


# ---------------------------------------------------------------------------
# Formula parsing
# ---------------------------------------------------------------------------


def split_arguments(args_str: str) -> list[str]:
    """Split an argument list on top-level commas.

    Three things are tracked together while scanning: parenthesis depth (a
    comma inside a nested call belongs to that call), double-quoted strings,
    and range state (a ``:`` opens a range that lasts until its end
    reference is complete). ``"A1:B5, SUM(C1,C2)"`` gives two arguments.
    """
    if not args_str.strip():
        return []

    args: list[str] = []
    current: list[str] = []
    depth = 0
    in_string = False
    in_range = False

    def flush() -> None:
        piece = "".join(current).strip()
        if not piece:
            raise MalformedFormulaError("empty argument")
        args.append(piece)
        current.clear()

    for ch in args_str:
        if in_string:
            current.append(ch)
            if ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                raise MalformedFormulaError("unbalanced parentheses")
        elif depth == 0:
            if ch == ',':
                flush()
                in_range = False
                continue
            if ch == ':':
                if in_range:
                    raise MalformedFormulaError("a range takes exactly two references")
                in_range = True
            elif in_range and not (ch.isalnum() or ch.isspace()):
                in_range = False
        current.append(ch)

    if in_string:
        raise MalformedFormulaError("unterminated string")
    if depth != 0:
        raise MalformedFormulaError("unbalanced parentheses")
    flush()
    return args


def parse_formula(formula: str) -> ParsedFormula:
    """Parse formula text (leading ``=`` optional) into a call or bare term."""
    body = formula.strip()
    if body.startswith("="):
        body = body[1:].strip()
    if not body:
        raise MalformedFormulaError("empty formula")

    call = _match_function_call(body)
    if call is not None:
        name, args_str = call
        return FunctionCall(name, tuple(split_arguments(args_str)))

    _check_balanced(body)
    if _has_top_level_colon(body):
        raise RangeNotAllowedHereError()
    return BareTerm(body)


def classify_argument(raw: str) -> ArgKind:
    """Decide how a raw argument string is resolved."""
    if _is_quoted(raw):
        return ArgKind.STRING
    if _FUNC_RE.match(raw):
        return ArgKind.CALL
    if _has_top_level_colon(raw):
        return ArgKind.RANGE
    if is_reference(raw):
        return ArgKind.REFERENCE
    return ArgKind.LITERAL


def is_reference(text: str) -> bool:
    return bool(_REFERENCE_RE.match(text))


def unquote(raw: str) -> str:
    """Strip the surrounding quotes and collapse each doubled quote to one."""
    return raw[1:-1].replace('""', '"')


# ---------------------------------------------------------------------------
# Range expansion
# ---------------------------------------------------------------------------


def range_bounds(range_ref: str) -> tuple[Address, Address]:
    """Normalize ``"B3:A1"`` into ``(Address(0, 0), Address(2, 1))``."""
    parts = range_ref.split(":")
    if len(parts) != 2:
        raise InvalidAddressError(range_ref)
    start_row, start_col = a1_to_rowcol(parts[0].strip())
    end_row, end_col = a1_to_rowcol(parts[1].strip())
    return (
        Address(min(start_row, end_row), min(start_col, end_col)),
        Address(max(start_row, end_row), max(start_col, end_col)),
    )


def iter_range(start: Address, end: Address) -> Iterator[Address]:
    """Row-major walk over an inclusive rectangle: outer rows, inner columns."""
    for r in range(start.row, end.row + 1):
        for c in range(start.col, end.col + 1):
            yield Address(r, c)


def expand_range(range_ref: str) -> list[str]:
    """Expand a range like ``"A1:B2"`` into ``["A1", "B1", "A2", "B2"]``."""
    start, end = range_bounds(range_ref)
    return [rowcol_to_a1(r, c) for r, c in iter_range(start, end)]


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def all_references(formula: str) -> list[str]:
    """All A1 addresses a formula reads, ranges expanded, first-seen order.

    Malformed formulas and malformed ranges contribute nothing; evaluating
    them reports the error.
    """
    refs: list[str] = []
    seen: set[str] = set()

    def add(ref: str) -> None:
        if ref not in seen:
            seen.add(ref)
            refs.append(ref)

    def visit_arg(raw: str) -> None:
        kind = classify_argument(raw)
        if kind is ArgKind.REFERENCE:
            if is_a1(raw):
                add(raw)
        elif kind is ArgKind.RANGE:
            try:
                for ref in expand_range(raw):
                    add(ref)
            except InvalidAddressError:
                pass
        elif kind is ArgKind.CALL:
            visit(raw)

    def visit(text: str) -> None:
        parsed = parse_formula(text)
        if isinstance(parsed, FunctionCall):
            for raw in parsed.args:
                visit_arg(raw)
        elif is_a1(parsed.text):
            add(parsed.text)

    if not formula.startswith("="):
        return []
    try:
        visit(formula)
    except FormulaError:
        return refs
    return refs
