"""Cell record stored in a :class:`~gridcalc.Sheet`."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from gridcalc._utils import cell_id_to_a1
from gridcalc.calc._functions import CellError, CellValue


@dataclass(frozen=True)
class Cell:
    """Immutable cell record.

    Sheets replace cells whole, so ``formula`` and ``computed_value`` are
    always updated together.
    """

    id: str
    raw_value: CellValue = None
    formula: str | None = None
    computed_value: CellValue = None

    @property
    def coordinate(self) -> str:
        return cell_id_to_a1(self.id)

    @property
    def value(self) -> CellValue:
        """What the grid displays: the computed value for formula cells."""
        if self.formula is not None:
            return self.computed_value
        return self.raw_value

    @property
    def has_formula(self) -> bool:
        return self.formula is not None

    @property
    def is_empty(self) -> bool:
        return self.formula is None and self.raw_value is None

    def with_changes(self, **changes: Any) -> Cell:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form used by ``Sheet.snapshot()``."""
        computed = self.computed_value
        if isinstance(computed, CellError):
            computed = computed.text
        return {
            "id": self.id,
            "rawValue": self.raw_value,
            "formulaText": self.formula,
            "computedValue": computed,
        }

    def __repr__(self) -> str:
        if self.formula is not None:
            return f"<Cell {self.coordinate} {self.formula!r} -> {self.computed_value!r}>"
        return f"<Cell {self.coordinate} {self.raw_value!r}>"
