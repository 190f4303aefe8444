"""Reference graph over a sheet's formula cells, keyed by cell id."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import TYPE_CHECKING

from gridcalc._utils import a1_to_cell_id
from gridcalc.calc._parser import all_references

if TYPE_CHECKING:
    from gridcalc._sheet import Sheet


class DependencyGraph:
    """Which cells each formula reads, and which formulas read each cell.

    Used by ``Sheet.recalculate`` to order re-evaluation. Evaluation itself
    never consults the graph; it follows references on demand.
    """

    __slots__ = ("dependencies", "dependents", "formulas", "cyclic_cells")

    def __init__(self) -> None:
        self.dependencies: dict[str, set[str]] = {}   # formula cell -> cells read
        self.dependents: dict[str, set[str]] = {}     # cell -> formula cells reading it
        self.formulas: dict[str, str] = {}            # insertion order is registration order
        self.cyclic_cells: frozenset[str] = frozenset()

    def add_formula(self, cell_id: str, formula: str) -> None:
        """Register *formula* at *cell_id*, replacing any earlier registration."""
        self.remove_formula(cell_id)
        reads = {a1_to_cell_id(ref) for ref in all_references(formula)}
        self.formulas[cell_id] = formula
        self.dependencies[cell_id] = reads
        for source in reads:
            self.dependents.setdefault(source, set()).add(cell_id)

    def remove_formula(self, cell_id: str) -> None:
        self.formulas.pop(cell_id, None)
        for source in self.dependencies.pop(cell_id, ()):
            readers = self.dependents.get(source)
            if readers is None:
                continue
            readers.discard(cell_id)
            if not readers:
                del self.dependents[source]

    def topological_order(self) -> list[str]:
        """Formula cells, each after every formula cell it reads.

        Kahn's algorithm seeded in registration order. Cells that never reach
        in-degree zero sit on or behind a cycle; they follow the ordered
        cells and are recorded in ``cyclic_cells``.
        """
        pending = {
            cid: len(self.dependencies[cid].intersection(self.formulas))
            for cid in self.formulas
        }
        ready = deque(cid for cid, count in pending.items() if count == 0)
        ordered: list[str] = []

        while ready:
            cid = ready.popleft()
            ordered.append(cid)
            for reader in sorted(self.dependents.get(cid, ())):
                if reader not in pending:
                    continue
                pending[reader] -= 1
                if pending[reader] == 0:
                    ready.append(reader)

        done = set(ordered)
        stuck = [cid for cid in self.formulas if cid not in done]
        self.cyclic_cells = frozenset(stuck)
        return ordered + stuck

    def affected_cells(self, changed: Iterable[str]) -> list[str]:
        """Formula cells to re-evaluate after *changed* cells were written.

        Changed cells that hold formulas are included. The result follows
        :meth:`topological_order`.
        """
        seen = set(changed)
        frontier = deque(seen)
        while frontier:
            for reader in self.dependents.get(frontier.popleft(), ()):
                if reader not in seen:
                    seen.add(reader)
                    frontier.append(reader)
        return [cid for cid in self.topological_order() if cid in seen]

    @classmethod
    def from_sheet(cls, sheet: Sheet) -> DependencyGraph:
        """Graph of every formula cell stored in *sheet*."""
        graph = cls()
        for cell in sheet.iter_cells():
            if cell.formula is not None:
                graph.add_formula(cell.id, cell.formula)
        return graph
