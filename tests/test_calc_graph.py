"""Tests for gridcalc.calc dependency graph."""

from __future__ import annotations

from gridcalc._sheet import Sheet
from gridcalc.calc._graph import DependencyGraph


class TestAddFormula:
    def test_dependencies_recorded(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=SUM(A1:A2)")
        assert g.dependencies["0:1"] == {"0:0", "1:0"}
        assert g.dependents["0:0"] == {"0:1"}
        assert g.dependents["1:0"] == {"0:1"}

    def test_bare_reference(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        assert g.dependencies["0:1"] == {"0:0"}

    def test_replace_formula_drops_old_edges(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        g.add_formula("0:1", "=A2")
        assert g.dependencies["0:1"] == {"1:0"}
        assert "0:0" not in g.dependents

    def test_remove_formula(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        g.remove_formula("0:1")
        assert g.formulas == {}
        assert g.dependents == {}

    def test_malformed_formula_has_no_edges(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=SUM(A1")
        assert g.dependencies["0:1"] == set()


class TestTopologicalOrder:
    def test_empty(self) -> None:
        assert DependencyGraph().topological_order() == []

    def test_chain_registered_backwards(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:2", "=B1")
        g.add_formula("0:1", "=A1")
        assert g.topological_order() == ["0:1", "0:2"]
        assert g.cyclic_cells == frozenset()

    def test_independent_cells_keep_registration_order(self) -> None:
        g = DependencyGraph()
        g.add_formula("5:0", "=SUM(1)")
        g.add_formula("0:0", "=SUM(2)")
        assert g.topological_order() == ["5:0", "0:0"]

    def test_diamond(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:3", "=SUM(B1, C1)")
        g.add_formula("0:1", "=A1")
        g.add_formula("0:2", "=A1")
        order = g.topological_order()
        assert order.index("0:1") < order.index("0:3")
        assert order.index("0:2") < order.index("0:3")

    def test_cycle_and_downstream_cells_go_last(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:0", "=B1")
        g.add_formula("0:1", "=A1")
        g.add_formula("0:2", "=A1")
        g.add_formula("0:3", "=SUM(5)")
        order = g.topological_order()
        assert order[0] == "0:3"
        assert set(order[1:]) == {"0:0", "0:1", "0:2"}
        assert g.cyclic_cells == frozenset({"0:0", "0:1", "0:2"})

    def test_self_reference_is_cyclic(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:0", "=A1")
        assert g.topological_order() == ["0:0"]
        assert g.cyclic_cells == frozenset({"0:0"})


class TestAffectedCells:
    def test_transitive_dependents(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        g.add_formula("0:2", "=B1")
        g.add_formula("0:3", "=SUM(9)")
        assert g.affected_cells({"0:0"}) == ["0:1", "0:2"]

    def test_changed_formula_cell_included(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        g.add_formula("0:2", "=B1")
        assert g.affected_cells({"0:1"}) == ["0:1", "0:2"]

    def test_unrelated_change(self) -> None:
        g = DependencyGraph()
        g.add_formula("0:1", "=A1")
        assert g.affected_cells({"9:9"}) == []


class TestFromSheet:
    def test_only_formula_cells(self) -> None:
        sheet = Sheet()
        sheet["A1"] = 1
        sheet["A2"] = 2
        sheet["B1"] = "=SUM(A1:A2)"
        sheet["C1"] = "=B1"
        g = DependencyGraph.from_sheet(sheet)
        assert set(g.formulas) == {"0:1", "0:2"}
        assert g.topological_order() == ["0:1", "0:2"]
