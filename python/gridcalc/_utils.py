"""A1 address codec and cell-id helpers.

Rows and columns are zero-based everywhere inside gridcalc. Only the A1
text form is one-based on the row (``(0, 0)`` <-> ``"A1"``).
"""

from __future__ import annotations

import re
from typing import NamedTuple

from gridcalc._errors import InvalidAddressError

# Row number must not carry a leading zero so every address has exactly one
# textual form.
_A1_RE = re.compile(r"([A-Z]+)([1-9][0-9]*)")


class Address(NamedTuple):
    row: int
    col: int

    def to_a1(self) -> str:
        return rowcol_to_a1(self.row, self.col)


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------


def column_to_letters(col: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA (bijective base-26, no zero digit)."""
    if col < 0:
        raise ValueError(f"Column index must be non-negative, got {col}")
    letters: list[str] = []
    n = col + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def letters_to_column(letters: str) -> int:
    """A -> 0, Z -> 25, AA -> 26."""
    if not letters or not letters.isalpha() or not letters.isupper():
        raise ValueError(f"Invalid column letters: {letters!r}")
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


# ---------------------------------------------------------------------------
# A1 <-> (row, col)
# ---------------------------------------------------------------------------


def rowcol_to_a1(row: int, col: int) -> str:
    if row < 0:
        raise ValueError(f"Row index must be non-negative, got {row}")
    return f"{column_to_letters(col)}{row + 1}"


def a1_to_rowcol(text: str) -> Address:
    """Parse ``"C12"`` into ``Address(row=11, col=2)``.

    Raises :class:`InvalidAddressError` for anything that is not
    upper-case column letters followed by a positive row number.
    """
    m = _A1_RE.fullmatch(text.strip()) if isinstance(text, str) else None
    if m is None:
        raise InvalidAddressError(text)
    return Address(int(m.group(2)) - 1, letters_to_column(m.group(1)))


def is_a1(text: str) -> bool:
    return bool(_A1_RE.fullmatch(text))


# ---------------------------------------------------------------------------
# Cell ids
# ---------------------------------------------------------------------------


def cell_id(row: int, col: int) -> str:
    """Canonical grid key for a zero-based address."""
    if row < 0 or col < 0:
        raise ValueError(f"Negative address: ({row}, {col})")
    return f"{row}:{col}"


def parse_cell_id(cid: str) -> Address:
    row_str, sep, col_str = cid.partition(":")
    if not sep or not row_str.isdigit() or not col_str.isdigit():
        raise ValueError(f"Invalid cell id: {cid!r}")
    return Address(int(row_str), int(col_str))


def a1_to_cell_id(text: str) -> str:
    return cell_id(*a1_to_rowcol(text))


def cell_id_to_a1(cid: str) -> str:
    return rowcol_to_a1(*parse_cell_id(cid))


def to_cell_id(ref: str) -> str:
    """Accept either A1 text or a cell id and return the cell id."""
    if ":" in ref:
        row, col = parse_cell_id(ref)
        return cell_id(row, col)
    return a1_to_cell_id(ref)
