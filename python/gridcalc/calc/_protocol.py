"""Grid-reader and engine protocols, plus recalculation result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gridcalc._cell import Cell
    from gridcalc.calc._functions import CellValue


@runtime_checkable
class GridReader(Protocol):
    """Read side of a grid: lookup by cell id, ``None`` for absent cells.

    A ``Sheet`` satisfies it, and so does a plain ``dict[str, Cell]``.
    """

    def get(self, cell_id: str) -> Cell | None:
        ...


@dataclass(frozen=True)
class CellDelta:
    """A single cell's computed-value change from recalculation."""

    cell_id: str
    address: str  # A1 form of cell_id
    old_value: CellValue
    new_value: CellValue
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class RecalcResult:
    """Result of a full or change-driven recalculation."""

    deltas: tuple[CellDelta, ...]  # cells whose computed value changed
    total_formula_cells: int = 0
    evaluated_cells: int = 0
    cyclic_cells: frozenset[str] = frozenset()  # cell ids caught in a cycle

    @property
    def changed_cells(self) -> int:
        return len(self.deltas)


@runtime_checkable
class CalcEngine(Protocol):
    """Protocol for formula evaluation engines."""

    def evaluate(self, formula: str, target: str | None = None) -> CellValue:
        """Evaluate formula text against the grid.

        Returns the value, or a ``CellError`` for any formula failure.
        """
        ...
