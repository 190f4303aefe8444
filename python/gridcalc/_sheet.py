"""Sheet: the grid store. Provides ``sheet['A1']`` access and formula writes."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from gridcalc._cell import Cell
from gridcalc._utils import Address, cell_id, parse_cell_id, to_cell_id
from gridcalc.calc._evaluator import FormulaEvaluator
from gridcalc.calc._functions import CellValue, FunctionRegistry, parse_number
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._protocol import CellDelta, RecalcResult

logger = logging.getLogger(__name__)

# Initial grid size of a new sheet: 100 rows, columns A-Z.
DEFAULT_ROWS = 100
DEFAULT_COLUMNS = 26


def _values_differ(a: Any, b: Any, tolerance: float) -> bool:
    """Check if two computed values differ beyond tolerance."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return abs(float(a) - float(b)) > tolerance
    return type(a) is not type(b) or a != b


class Sheet:
    """A single grid of cells.

    Cells are stored sparsely by cell id and created on first write.
    Every write replaces the whole :class:`Cell`, so a cell's formula and
    its computed value always change together. Writes hold a re-entrant
    lock for the duration of the evaluation they trigger.
    """

    __slots__ = ("_cells", "_row_count", "_column_count", "_evaluator", "_lock")

    def __init__(
        self,
        rows: int = DEFAULT_ROWS,
        columns: int = DEFAULT_COLUMNS,
        functions: FunctionRegistry | None = None,
    ) -> None:
        if rows < 0 or columns < 0:
            raise ValueError(f"Sheet size must be non-negative, got {rows}x{columns}")
        self._cells: dict[str, Cell] = {}
        self._row_count = rows
        self._column_count = columns
        self._evaluator = FormulaEvaluator(self, functions)
        self._lock = threading.RLock()

    @property
    def row_count(self) -> int:
        return self._row_count

    @property
    def column_count(self) -> int:
        return self._column_count

    @property
    def evaluator(self) -> FormulaEvaluator:
        return self._evaluator

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def get(self, cid: str) -> Cell | None:
        """Stored cell for a cell id, or None. This is the evaluator's read path."""
        return self._cells.get(cid)

    def __getitem__(self, ref: str) -> Cell:
        """``sheet['A1']`` -> Cell (an unstored empty Cell when absent)."""
        cid = to_cell_id(ref)
        cell = self._cells.get(cid)
        return cell if cell is not None else Cell(cid)

    def __setitem__(self, ref: str, value: Any) -> None:
        """``sheet['A1'] = 42`` / ``sheet['B1'] = '=SUM(A1:A3)'``."""
        if isinstance(value, str):
            self.enter(ref, value)
        else:
            self.set_value(ref, value)

    def __contains__(self, ref: str) -> bool:
        return to_cell_id(ref) in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def cell(self, row: int, column: int, value: Any = None) -> Cell:
        """Get a cell by zero-based (row, column), optionally writing *value* first."""
        cid = cell_id(row, column)
        if value is not None:
            self[cid] = value
        return self[cid]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_value(self, ref: str, value: CellValue) -> Cell:
        """Store a plain value with no formula. ``""`` is stored as empty."""
        if isinstance(value, bool) or not isinstance(value, (int, float, str, type(None))):
            raise TypeError(f"Cell values must be numbers, text or None, got {type(value).__name__}")
        if value == "":
            value = None
        cid = to_cell_id(ref)
        new = Cell(cid, raw_value=value)
        with self._lock:
            self._cells[cid] = new
        return new

    def apply_formula(self, ref: str, formula: str) -> Cell:
        """Evaluate *formula* for the cell at *ref* and store both together."""
        if not formula.startswith("="):
            raise ValueError(f"Formula must start with '=': {formula!r}")
        cid = to_cell_id(ref)
        with self._lock:
            computed = self._evaluator.evaluate(formula, target=cid)
            new = Cell(cid, formula=formula, computed_value=computed)
            self._cells[cid] = new
        logger.debug("%s %r -> %r", new.coordinate, formula, computed)
        return new

    def enter(self, ref: str, text: str) -> Cell:
        """Store text the way a user typed it into the formula bar.

        ``=...`` is a formula, numeric text becomes a number, anything
        else is stored as text.
        """
        if text.startswith("="):
            return self.apply_formula(ref, text)
        number = parse_number(text) if text.strip() else None
        return self.set_value(ref, text if number is None else number)

    def clear(self, ref: str) -> None:
        """Remove the cell at *ref*; later reads see an empty cell."""
        with self._lock:
            self._cells.pop(to_cell_id(ref), None)

    def evaluate(self, formula: str, target: str | None = None) -> CellValue:
        """Evaluate formula text against this sheet without writing anything."""
        return self._evaluator.evaluate(formula, target=target)

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def recalculate(
        self,
        changed: Iterable[str] | None = None,
        tolerance: float = 1e-10,
    ) -> RecalcResult:
        """Re-evaluate formula cells and store the new computed values.

        With *changed* (A1 refs or cell ids) only formulas that depend on
        those cells, directly or transitively, are re-evaluated. Cells are
        visited in dependency order; cells in a reference cycle come last
        and end up holding a ``CircularReference`` error.
        """
        with self._lock:
            graph = DependencyGraph.from_sheet(self)
            if changed is None:
                order = graph.topological_order()
            else:
                order = graph.affected_cells({to_cell_id(ref) for ref in changed})

            deltas: list[CellDelta] = []
            for cid in order:
                cell = self._cells[cid]
                new_value = self._evaluator.evaluate(cell.formula, target=cid)
                if _values_differ(cell.computed_value, new_value, tolerance):
                    deltas.append(CellDelta(
                        cell_id=cid,
                        address=cell.coordinate,
                        old_value=cell.computed_value,
                        new_value=new_value,
                        formula=cell.formula,
                    ))
                    self._cells[cid] = cell.with_changes(computed_value=new_value)

        logger.debug(
            "Recalculated %d of %d formula cells, %d changed",
            len(order), len(graph.formulas), len(deltas),
        )
        return RecalcResult(
            deltas=tuple(deltas),
            total_formula_cells=len(graph.formulas),
            evaluated_cells=len(order),
            cyclic_cells=graph.cyclic_cells,
        )

    # ------------------------------------------------------------------
    # Row / column structure
    # ------------------------------------------------------------------

    def insert_row(self, index: int) -> None:
        """Insert an empty row before zero-based *index*."""
        if not 0 <= index <= self._row_count:
            raise IndexError(f"Row index {index} out of range")
        with self._lock:
            self._rekey(lambda a: Address(a.row + 1, a.col) if a.row >= index else a)
            self._row_count += 1

    def delete_row(self, index: int) -> None:
        """Delete row *index*; rows below move up. Formula text is not rewritten."""
        if not 0 <= index < self._row_count:
            raise IndexError(f"Row index {index} out of range")
        with self._lock:
            self._rekey(
                lambda a: None if a.row == index
                else Address(a.row - 1, a.col) if a.row > index else a
            )
            self._row_count -= 1

    def insert_column(self, index: int) -> None:
        """Insert an empty column before zero-based *index*."""
        if not 0 <= index <= self._column_count:
            raise IndexError(f"Column index {index} out of range")
        with self._lock:
            self._rekey(lambda a: Address(a.row, a.col + 1) if a.col >= index else a)
            self._column_count += 1

    def delete_column(self, index: int) -> None:
        """Delete column *index*; columns to the right move left."""
        if not 0 <= index < self._column_count:
            raise IndexError(f"Column index {index} out of range")
        with self._lock:
            self._rekey(
                lambda a: None if a.col == index
                else Address(a.row, a.col - 1) if a.col > index else a
            )
            self._column_count -= 1

    def _rekey(self, move: Callable[[Address], Address | None]) -> None:
        cells: dict[str, Cell] = {}
        for cid, cell in self._cells.items():
            target = move(parse_cell_id(cid))
            if target is None:
                continue
            new_id = cell_id(*target)
            cells[new_id] = cell if new_id == cid else cell.with_changes(id=new_id)
        self._cells = cells

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def iter_cells(self) -> Iterator[Cell]:
        """Stored cells in row-major order."""
        for cid in sorted(self._cells, key=parse_cell_id):
            yield self._cells[cid]

    def iter_rows(
        self,
        min_row: int = 0,
        max_row: int | None = None,
        min_col: int = 0,
        max_col: int | None = None,
        values_only: bool = False,
    ) -> Iterator[tuple[Any, ...]]:
        """Iterate over rows of the grid (zero-based, inclusive bounds)."""
        r_max = self._row_count - 1 if max_row is None else max_row
        c_max = self._column_count - 1 if max_col is None else max_col

        for r in range(min_row, r_max + 1):
            row = tuple(self[cell_id(r, c)] for c in range(min_col, c_max + 1))
            if values_only:
                yield tuple(c.value for c in row)
            else:
                yield row

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Cell records in the shape the host application saves.

        ``{"cells": {cell_id: {...}}, "rowCount": n, "columnCount": m}``
        """
        with self._lock:
            return {
                "cells": {cell.id: cell.to_dict() for cell in self.iter_cells()},
                "rowCount": self._row_count,
                "columnCount": self._column_count,
            }

    def __repr__(self) -> str:
        return f"<Sheet {self._row_count}x{self._column_count} cells={len(self._cells)}>"
