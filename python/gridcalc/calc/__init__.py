"""gridcalc.calc - Formula evaluation engine for gridcalc sheets."""

from gridcalc.calc._evaluator import FormulaEvaluator
from gridcalc.calc._functions import (
    FUNCTION_HELP,
    CellError,
    CellValue,
    FunctionRegistry,
    is_error,
    is_numeric,
    is_supported,
    to_number,
    to_text,
)
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._parser import (
    BareTerm,
    FunctionCall,
    all_references,
    classify_argument,
    expand_range,
    parse_formula,
    split_arguments,
)
from gridcalc.calc._protocol import CalcEngine, CellDelta, GridReader, RecalcResult

__all__ = [
    "BareTerm",
    "CalcEngine",
    "CellDelta",
    "CellError",
    "CellValue",
    "DependencyGraph",
    "FUNCTION_HELP",
    "FormulaEvaluator",
    "FunctionCall",
    "FunctionRegistry",
    "GridReader",
    "RecalcResult",
    "all_references",
    "classify_argument",
    "expand_range",
    "is_error",
    "is_numeric",
    "is_supported",
    "parse_formula",
    "split_arguments",
    "to_number",
    "to_text",
]
