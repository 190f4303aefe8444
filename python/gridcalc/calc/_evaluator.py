"""FormulaEvaluator: pull-based evaluator for grid formulas.

A formula is either a single function call, ``=SUM(A1:A3, 4)``, or a bare
term, ``=B2`` / ``=42``. Arguments are resolved before dispatch: ranges
become lists of non-empty values, references are resolved (re-evaluating
the referenced cell's formula when it has one), nested calls are evaluated
recursively and literals pass through as text for the function to coerce.

Referenced formulas are re-evaluated on every top-level call; nothing is
cached between calls. Within one call each referenced cell is evaluated once,
dependencies first, so a long chain of references does not nest Python
frames. A ``visiting`` set of cell ids travels down each evaluation so a
reference cycle fails with ``CircularReference`` instead of recursing forever.
"""

from __future__ import annotations

import logging
from typing import Any

from gridcalc._errors import (
    CircularReferenceError,
    FormulaError,
    MalformedFormulaError,
    UnknownFunctionError,
)
from gridcalc._utils import a1_to_cell_id, a1_to_rowcol, cell_id, parse_cell_id, rowcol_to_a1, to_cell_id
from gridcalc.calc._functions import (
    CellError,
    CellValue,
    FunctionRegistry,
    coerce_literal,
    is_empty,
)
from gridcalc.calc._parser import (
    ArgKind,
    FunctionCall,
    all_references,
    classify_argument,
    iter_range,
    parse_formula,
    range_bounds,
    unquote,
)
from gridcalc.calc._protocol import GridReader

logger = logging.getLogger(__name__)


class FormulaEvaluator:
    """Evaluates formula text against a grid.

    Usage::

        evaluator = FormulaEvaluator(sheet)
        evaluator.evaluate("=SUM(A1:A3)")          # -> 7
        evaluator.evaluate("=B1", target="A1")     # cycle-safe for A1

    ``grid`` is anything with ``get(cell_id) -> Cell | None``.
    """

    def __init__(self, grid: GridReader, functions: FunctionRegistry | None = None) -> None:
        self._grid = grid
        self._functions = functions if functions is not None else FunctionRegistry()

    @property
    def grid(self) -> GridReader:
        return self._grid

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def evaluate(self, formula: Any, target: str | None = None) -> CellValue:
        """Evaluate *formula* and return its value or a :class:`CellError`.

        Text that does not start with ``=`` is returned unchanged. *target*
        (A1 text or cell id) is the cell the result will be written to; it
        is marked as visiting so a formula that reads back into it is
        reported as circular.
        """
        if not isinstance(formula, str) or not formula.startswith("="):
            return formula

        visiting: set[str] = set()
        if target is not None:
            visiting.add(to_cell_id(target))
        resolved: dict[str, Any] = {}

        try:
            self._prime(formula, visiting, resolved)
            return self._evaluate_formula(formula, visiting, resolved)
        except FormulaError as exc:
            logger.debug("Formula %r (target %s) failed: %s", formula, target, exc.message)
            return CellError.from_exception(exc)
        except RecursionError:
            exc = MalformedFormulaError("formula nesting too deep")
            logger.debug("Formula (target %s) failed: %s", target, exc.message)
            return CellError.from_exception(exc)

    def evaluate_cell(self, ref: str) -> CellValue:
        """Re-evaluate the formula stored at *ref* (A1 text or cell id).

        Cells without a formula return their stored value.
        """
        cid = to_cell_id(ref)
        cell = self._grid.get(cid)
        if cell is None:
            return None
        if cell.formula is None:
            return cell.value
        return self.evaluate(cell.formula, target=cid)

    # ------------------------------------------------------------------
    # Dependency-first pass
    # ------------------------------------------------------------------

    def _reads(self, formula: str) -> list[str]:
        return [a1_to_cell_id(ref) for ref in all_references(formula)]

    def _formula_closure(self, formula: str, visiting: set[str]) -> list[str]:
        """Formula cells *formula* reads, directly or not, deepest first."""
        order: list[str] = []
        seen = set(visiting)
        stack: list[tuple[str | None, Any]] = [(None, iter(self._reads(formula)))]
        while stack:
            owner, reads = stack[-1]
            for cid in reads:
                if cid in seen:
                    continue
                seen.add(cid)
                cell = self._grid.get(cid)
                if cell is not None and cell.formula is not None:
                    stack.append((cid, iter(self._reads(cell.formula))))
                    break
            else:
                stack.pop()
                if owner is not None:
                    order.append(owner)
        return order

    def _prime(self, formula: str, visiting: set[str], resolved: dict[str, Any]) -> None:
        """Resolve every formula cell *formula* depends on before the main pass.

        Each cell's own references are already in *resolved* when it is
        evaluated, so recursion depth stays at one level per cell. A cell
        that fails here is recorded with its error, which later reads raise.
        """
        for cid in self._formula_closure(formula, visiting):
            row, col = parse_cell_id(cid)
            try:
                self._resolve_cell(row, col, rowcol_to_a1(row, col), visiting, resolved)
            except FormulaError as exc:
                resolved[cid] = exc

    # ------------------------------------------------------------------
    # Recursive evaluation (raises FormulaError)
    # ------------------------------------------------------------------

    def _evaluate_formula(
        self, formula: str, visiting: set[str], resolved: dict[str, Any],
    ) -> CellValue:
        parsed = parse_formula(formula)
        if isinstance(parsed, FunctionCall):
            return self._eval_function(parsed, visiting, resolved)
        return self._eval_bare_term(parsed.text, visiting, resolved)

    def _eval_bare_term(
        self, text: str, visiting: set[str], resolved: dict[str, Any],
    ) -> CellValue:
        kind = classify_argument(text)
        if kind is ArgKind.REFERENCE:
            return self.resolve_reference(text, visiting, resolved)
        if kind is ArgKind.STRING:
            return unquote(text)
        return coerce_literal(text)

    def _eval_function(
        self, call: FunctionCall, visiting: set[str], resolved: dict[str, Any],
    ) -> CellValue:
        func = self._functions.get(call.name)
        if func is None:
            raise UnknownFunctionError(call.name)
        args = [self._resolve_arg(raw, visiting, resolved) for raw in call.args]
        return func(args)

    def _resolve_arg(self, raw: str, visiting: set[str], resolved: dict[str, Any]) -> Any:
        """Resolve one raw argument string.

        Ranges resolve to a list, everything else to a single value.
        """
        kind = classify_argument(raw)
        if kind is ArgKind.RANGE:
            return self.expand_range_values(raw, visiting, resolved)
        if kind is ArgKind.REFERENCE:
            return self.resolve_reference(raw, visiting, resolved)
        if kind is ArgKind.CALL:
            return self._evaluate_formula(raw, visiting, resolved)
        if kind is ArgKind.STRING:
            return unquote(raw)
        return raw

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def resolve_reference(
        self,
        ref: str,
        visiting: set[str] | None = None,
        resolved: dict[str, Any] | None = None,
    ) -> CellValue:
        """Value of the cell at A1 *ref*; ``None`` when the cell is absent."""
        row, col = a1_to_rowcol(ref)
        return self._resolve_cell(
            row, col, ref,
            set() if visiting is None else visiting,
            {} if resolved is None else resolved,
        )

    def expand_range_values(
        self,
        range_ref: str,
        visiting: set[str] | None = None,
        resolved: dict[str, Any] | None = None,
    ) -> list[CellValue]:
        """Values of a range in row-major order, empty cells omitted."""
        if visiting is None:
            visiting = set()
        if resolved is None:
            resolved = {}
        start, end = range_bounds(range_ref)
        values: list[CellValue] = []
        for addr in iter_range(start, end):
            value = self._resolve_cell(addr.row, addr.col, addr.to_a1(), visiting, resolved)
            if not is_empty(value):
                values.append(value)
        return values

    def _resolve_cell(
        self, row: int, col: int, ref: str, visiting: set[str], resolved: dict[str, Any],
    ) -> CellValue:
        cid = cell_id(row, col)
        # Checked before the lookup: the target cell may not hold its new
        # formula yet, but reading it back is still a cycle.
        if cid in visiting:
            raise CircularReferenceError(ref)
        # Results from inside a nested evaluation are kept only on success:
        # a value that completed never touched a visiting cell.
        if cid in resolved:
            known = resolved[cid]
            if isinstance(known, FormulaError):
                raise known
            return known
        cell = self._grid.get(cid)
        if cell is None:
            return None
        # A formula that is literally the reference text is not re-entered.
        if cell.formula is None or cell.formula == ref:
            return cell.value

        visiting.add(cid)
        try:
            value = self._evaluate_formula(cell.formula, visiting, resolved)
        finally:
            visiting.discard(cid)
        resolved[cid] = value
        return value
