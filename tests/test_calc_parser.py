"""Tests for gridcalc.calc formula parser, argument splitting and range helpers."""

from __future__ import annotations

import pytest

from gridcalc._errors import (
    InvalidAddressError,
    MalformedFormulaError,
    RangeNotAllowedHereError,
)
from gridcalc._utils import Address
from gridcalc.calc._parser import (
    ArgKind,
    BareTerm,
    FunctionCall,
    all_references,
    classify_argument,
    expand_range,
    iter_range,
    parse_formula,
    range_bounds,
    split_arguments,
    unquote,
)


class TestParseFormula:
    def test_function_call(self) -> None:
        assert parse_formula("=SUM(A1:A3)") == FunctionCall("SUM", ("A1:A3",))

    def test_leading_equals_and_whitespace_stripped(self) -> None:
        assert parse_formula("=  UPPER(B5)  ") == FunctionCall("UPPER", ("B5",))

    def test_name_case_preserved(self) -> None:
        assert parse_formula("=sum(A1)") == FunctionCall("sum", ("A1",))

    def test_underscore_in_name(self) -> None:
        assert parse_formula("=MY_FN(1)").name == "MY_FN"

    def test_empty_argument_list(self) -> None:
        assert parse_formula("=SUM()") == FunctionCall("SUM", ())

    def test_bare_reference(self) -> None:
        assert parse_formula("=B2") == BareTerm("B2")

    def test_bare_literal(self) -> None:
        assert parse_formula("=42") == BareTerm("42")
        assert parse_formula("=hello world") == BareTerm("hello world")

    def test_bare_range_rejected(self) -> None:
        with pytest.raises(RangeNotAllowedHereError, match="only be used within functions"):
            parse_formula("=A1:B2")

    def test_quoted_colon_is_not_a_range(self) -> None:
        assert parse_formula('="10:30"') == BareTerm('"10:30"')

    def test_empty_formula(self) -> None:
        with pytest.raises(MalformedFormulaError, match="empty formula"):
            parse_formula("=")
        with pytest.raises(MalformedFormulaError):
            parse_formula("=   ")

    def test_unbalanced_call(self) -> None:
        with pytest.raises(MalformedFormulaError, match="unbalanced parentheses"):
            parse_formula("=SUM(A1:A3")

    def test_trailing_text_after_call(self) -> None:
        with pytest.raises(MalformedFormulaError, match="unexpected text"):
            parse_formula("=SUM(A1)B2")

    def test_unbalanced_bare_term(self) -> None:
        with pytest.raises(MalformedFormulaError, match="unbalanced parentheses"):
            parse_formula("=(A1")
        with pytest.raises(MalformedFormulaError):
            parse_formula("=A1)")

    def test_space_before_paren_is_not_a_call(self) -> None:
        assert parse_formula("=SUM (A1)") == BareTerm("SUM (A1)")


class TestSplitArguments:
    def test_simple(self) -> None:
        assert split_arguments("A1,B2,3") == ["A1", "B2", "3"]

    def test_pieces_are_stripped(self) -> None:
        assert split_arguments(" A1 ,  B2 ") == ["A1", "B2"]

    def test_empty(self) -> None:
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_range_then_reference(self) -> None:
        assert split_arguments("A1:A3,B1") == ["A1:A3", "B1"]

    def test_two_ranges(self) -> None:
        assert split_arguments("A1:B5, C1:C2") == ["A1:B5", "C1:C2"]

    def test_nested_call_keeps_its_commas(self) -> None:
        assert split_arguments("A1, SUM(B1,B2), C1") == ["A1", "SUM(B1,B2)", "C1"]

    def test_nested_call_with_range(self) -> None:
        assert split_arguments("SUM(A1:A2,B1),MAX(C1:C3)") == ["SUM(A1:A2,B1)", "MAX(C1:C3)"]

    def test_deeply_nested(self) -> None:
        assert split_arguments("SUM(MAX(A1,A2),MIN(B1,B2)),1") == [
            "SUM(MAX(A1,A2),MIN(B1,B2))",
            "1",
        ]

    def test_quoted_comma(self) -> None:
        assert split_arguments('"a,b",C1') == ['"a,b"', "C1"]

    def test_quoted_whitespace_kept(self) -> None:
        assert split_arguments('"  hi "') == ['"  hi "']

    def test_escaped_quote(self) -> None:
        assert split_arguments('"say ""hi""",1') == ['"say ""hi"""', "1"]

    def test_empty_piece_rejected(self) -> None:
        with pytest.raises(MalformedFormulaError, match="empty argument"):
            split_arguments("A1,,B1")
        with pytest.raises(MalformedFormulaError):
            split_arguments("A1,")

    def test_three_part_range_rejected(self) -> None:
        with pytest.raises(MalformedFormulaError, match="exactly two references"):
            split_arguments("A1:B2:C3")

    def test_unbalanced_parens_rejected(self) -> None:
        with pytest.raises(MalformedFormulaError, match="unbalanced"):
            split_arguments("SUM(A1")
        with pytest.raises(MalformedFormulaError, match="unbalanced"):
            split_arguments("A1)")

    def test_unterminated_string_rejected(self) -> None:
        with pytest.raises(MalformedFormulaError, match="unterminated string"):
            split_arguments('"abc')


class TestClassifyArgument:
    @pytest.mark.parametrize(
        ("raw", "kind"),
        [
            ("A1:B5", ArgKind.RANGE),
            ("A1", ArgKind.REFERENCE),
            ("AB123", ArgKind.REFERENCE),
            ("A0", ArgKind.REFERENCE),
            ("a1", ArgKind.LITERAL),
            ("42", ArgKind.LITERAL),
            ("hello", ArgKind.LITERAL),
            ('"x:y"', ArgKind.STRING),
            ('"A1"', ArgKind.STRING),
            ("SUM(A1:A3)", ArgKind.CALL),
        ],
    )
    def test_kinds(self, raw: str, kind: ArgKind) -> None:
        assert classify_argument(raw) is kind

    def test_unquote(self) -> None:
        assert unquote('"  hi "') == "  hi "
        assert unquote('"say ""hi"""') == 'say "hi"'
        assert unquote('""') == ""


class TestRanges:
    def test_row_major_order(self) -> None:
        assert expand_range("A1:B2") == ["A1", "B1", "A2", "B2"]

    def test_single_column(self) -> None:
        assert expand_range("A1:A3") == ["A1", "A2", "A3"]

    def test_single_cell_range(self) -> None:
        assert expand_range("C3:C3") == ["C3"]

    def test_reversed_endpoints_normalized(self) -> None:
        assert expand_range("B2:A1") == ["A1", "B1", "A2", "B2"]
        assert range_bounds("A3:B1") == (Address(0, 0), Address(2, 1))

    def test_iter_range(self) -> None:
        cells = list(iter_range(Address(0, 0), Address(1, 2)))
        assert cells == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]

    def test_bad_endpoint(self) -> None:
        with pytest.raises(InvalidAddressError):
            expand_range("A1:B")
        with pytest.raises(InvalidAddressError):
            range_bounds("A1:B2:C3")


class TestAllReferences:
    def test_range_expanded(self) -> None:
        assert all_references("=SUM(A1:A3)") == ["A1", "A2", "A3"]

    def test_references_and_nested_calls(self) -> None:
        assert all_references("=SUM(B1, MAX(C1:C2), B1)") == ["B1", "C1", "C2"]

    def test_bare_reference(self) -> None:
        assert all_references("=D4") == ["D4"]

    def test_literals_and_strings_ignored(self) -> None:
        assert all_references('=SUM(1, "A1", x)') == []

    def test_not_a_formula(self) -> None:
        assert all_references("A1") == []

    def test_malformed_formula(self) -> None:
        assert all_references("=SUM(A1") == []

    def test_invalid_address_skipped(self) -> None:
        assert all_references("=SUM(A0, B1)") == ["B1"]
