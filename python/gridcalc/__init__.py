"""gridcalc: in-grid formula evaluation for tabular data sheets.

Usage::

    from gridcalc import Sheet

    sheet = Sheet()
    sheet["A1"] = 2
    sheet["A2"] = "x"
    sheet["A3"] = 5
    sheet["B1"] = "=SUM(A1:A3)"
    print(sheet["B1"].value)        # 7

    sheet["C1"] = "=FOO(A1)"
    print(sheet["C1"].value)        # #ERROR: Unknown function: FOO
"""

from gridcalc._cell import Cell
from gridcalc._errors import (
    ArgumentCountMismatchError,
    CircularReferenceError,
    ErrorKind,
    FormulaError,
    InvalidAddressError,
    MalformedFormulaError,
    RangeNotAllowedHereError,
    UnknownFunctionError,
)
from gridcalc._sheet import Sheet
from gridcalc._utils import Address, a1_to_rowcol, cell_id, parse_cell_id, rowcol_to_a1
from gridcalc.calc import CellError, CellValue, FormulaEvaluator, FunctionRegistry, RecalcResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Address",
    "ArgumentCountMismatchError",
    "Cell",
    "CellError",
    "CircularReferenceError",
    "ErrorKind",
    "FormulaError",
    "FormulaEvaluator",
    "FunctionRegistry",
    "InvalidAddressError",
    "MalformedFormulaError",
    "RangeNotAllowedHereError",
    "RecalcResult",
    "Sheet",
    "UnknownFunctionError",
    "a1_to_rowcol",
    "cell_id",
    "evaluate_formula",
    "parse_cell_id",
    "rowcol_to_a1",
]


def evaluate_formula(formula: str, sheet: Sheet, target: str | None = None) -> CellValue:
    """Evaluate formula text against *sheet*; shorthand for ``sheet.evaluate``."""
    return sheet.evaluate(formula, target=target)
