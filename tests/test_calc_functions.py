"""Tests for liveledger.calc builtin functions."""

from __future__ import annotations

import math

import pytest
from liveledger import ErrorKind, Sheet
from liveledger._utils import CellRange, parse_range
from liveledger.calc._functions import (
    MAX_RANGE_VALUES,
    FunctionRegistry,
    power,
    range_numbers,
    select_branch,
    xlookup,
)
from liveledger.calc._protocol import FormulaError


class TestAggregates:
    def setup_method(self) -> None:
        self.reg = FunctionRegistry()

    def test_sum(self) -> None:
        assert self.reg.get("SUM")([10.0, 20.0, 30.0, 40.0, 50.0]) == 150.0

    def test_sum_overflow_is_inf(self) -> None:
        assert self.reg.get("SUM")([1e308, 1e308]) == math.inf
        assert self.reg.get("AVG")([1e308, 1e308]) == math.inf

    def test_sum_opposite_infinities_is_nan(self) -> None:
        assert math.isnan(self.reg.get("SUM")([math.inf, -math.inf]))

    def test_sum_is_exact(self) -> None:
        assert self.reg.get("SUM")([0.1] * 10) == 1.0

    def test_avg(self) -> None:
        assert self.reg.get("AVG")([1.0, 2.0, 6.0]) == 3.0

    def test_avg_empty(self) -> None:
        assert self.reg.get("AVG")([]) == 0.0

    def test_max_min(self) -> None:
        assert self.reg.get("MAX")([3.0, -1.0, 7.0]) == 7.0
        assert self.reg.get("MIN")([3.0, -1.0, 7.0]) == -1.0
        assert self.reg.get("MAX")([]) == 0.0
        assert self.reg.get("MIN")([]) == 0.0

    def test_median_odd(self) -> None:
        assert self.reg.get("MEDIAN")([1.0, 3.0, 2.0, 5.0, 4.0]) == 3.0

    def test_median_even(self) -> None:
        assert self.reg.get("MEDIAN")([1.0, 2.0, 3.0, 4.0]) == 2.5

    def test_median_leaves_input_alone(self) -> None:
        values = [3.0, 1.0, 2.0]
        self.reg.get("MEDIAN")(values)
        assert values == [3.0, 1.0, 2.0]

    def test_mode(self) -> None:
        assert self.reg.get("MODE")([1.0, 2.0, 2.0, 3.0]) == 2.0

    def test_mode_tie_first_wins(self) -> None:
        assert self.reg.get("MODE")([5.0, 1.0, 1.0, 5.0]) == 5.0

    def test_mode_all_distinct(self) -> None:
        assert self.reg.get("MODE")([4.0, 2.0, 9.0]) == 4.0

    def test_mode_tolerance(self) -> None:
        assert self.reg.get("MODE")([1.0, 2.0, 2.0 + 1e-12, 1.0 + 1e-12, 2.0]) == 2.0

    def test_case_insensitive_lookup(self) -> None:
        assert self.reg.has("sum")
        assert self.reg.get("sum") is self.reg.get("SUM")

    def test_register_custom(self) -> None:
        self.reg.register("count", lambda values: float(len(values)))
        assert self.reg.get("COUNT")([1.0, 2.0]) == 2.0
        assert "COUNT" in self.reg.supported_functions


class TestPowerAndBranch:
    def test_power(self) -> None:
        assert power(2.0, 10.0) == 1024.0
        assert power(9.0, 0.5) == 3.0

    def test_power_domain_error_is_nan(self) -> None:
        assert math.isnan(power(-8.0, 1.0 / 3.0))

    def test_power_overflow_is_inf(self) -> None:
        assert power(10.0, 400.0) == math.inf
        assert power(-10.0, 401.0) == -math.inf

    def test_select_branch(self) -> None:
        assert select_branch(1.0, "yes", 2.0) == "yes"
        assert select_branch(0.0, "yes", 2.0) == 2.0
        assert select_branch(-3.0, 1.0, 2.0) == 1.0


def _fruit_sheet() -> Sheet:
    sheet = Sheet(10, 5)
    sheet["A1"] = "Apple"
    sheet["A2"] = "Orange"
    sheet["A3"] = "Banana"
    sheet["B1"] = 0.5
    sheet["B2"] = 0.75
    sheet["B3"] = 0.3
    return sheet


class TestRangeNumbers:
    def test_skips_text_counts_empty(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = 1
        sheet["A2"] = "x"
        sheet["A4"] = 4
        assert range_numbers(sheet, CellRange(0, 0, 3, 0)) == [1.0, 0.0, 4.0]

    def test_skips_formula_errors(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = 2
        sheet["A2"] = "=1/0"
        sheet["A3"] = "=A1*3"
        sheet.recalculate()
        assert range_numbers(sheet, CellRange(0, 0, 2, 0)) == [2.0, 6.0]

    def test_capped_past_the_grid(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = 3
        # A1:ZZZ999999 would be about 18 billion positions
        values = range_numbers(sheet, parse_range("A1:ZZZ999999"))
        assert len(values) == MAX_RANGE_VALUES
        assert values[0] == 3.0
        assert sum(values) == 3.0

    def test_text_cells_do_not_count_towards_cap(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = "label"
        values = range_numbers(sheet, CellRange(0, 0, 0, 2000))
        assert len(values) == MAX_RANGE_VALUES


class TestXlookup:
    def test_exact_string(self) -> None:
        sheet = _fruit_sheet()
        assert xlookup(sheet, "Orange", parse_range("A1:A3"), parse_range("B1:B3")) == 0.75

    def test_missing_key_is_na(self) -> None:
        sheet = _fruit_sheet()
        with pytest.raises(FormulaError) as exc:
            xlookup(sheet, "Kiwi", parse_range("A1:A3"), parse_range("B1:B3"))
        assert exc.value.kind is ErrorKind.NA

    def test_shape_mismatch_is_ref(self) -> None:
        sheet = _fruit_sheet()
        with pytest.raises(FormulaError) as exc:
            xlookup(sheet, "Apple", parse_range("A1:A3"), parse_range("B1:B2"))
        assert exc.value.kind is ErrorKind.REF

    def test_exact_number(self) -> None:
        sheet = Sheet(10, 5)
        for i, (key, val) in enumerate([(10, 1), (20, 2), (30, 3)]):
            sheet.set_number(i, 0, key)
            sheet.set_number(i, 1, val)
        assert xlookup(sheet, 20.0, parse_range("A1:A3"), parse_range("B1:B3")) == 2.0

    def test_approximate_closest_from_below(self) -> None:
        sheet = Sheet(10, 5)
        for i, (key, val) in enumerate([(10, 1), (30, 2), (20, 3), (40, 4)]):
            sheet.set_number(i, 0, key)
            sheet.set_number(i, 1, val)
        lookup, ret = parse_range("A1:A4"), parse_range("B1:B4")
        assert xlookup(sheet, 25.0, lookup, ret, exact=False) == 3.0
        with pytest.raises(FormulaError):
            xlookup(sheet, 25.0, lookup, ret, exact=True)
        with pytest.raises(FormulaError) as exc:
            xlookup(sheet, 5.0, lookup, ret, exact=False)
        assert exc.value.kind is ErrorKind.NA

    def test_horizontal(self) -> None:
        sheet = Sheet(10, 5)
        for col in range(3):
            sheet.set_number(0, col, col + 1)
            sheet.set_number(1, col, (col + 1) * 100)
        assert xlookup(sheet, 2.0, parse_range("A1:C1"), parse_range("A2:C2")) == 200.0

    def test_text_return_cell_skipped(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = 5
        sheet["A2"] = 5
        sheet["B1"] = "x"
        sheet["B2"] = 9
        assert xlookup(sheet, 5.0, parse_range("A1:A2"), parse_range("B1:B2")) == 9.0

    def test_empty_return_cell_is_zero(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = 5
        assert xlookup(sheet, 5.0, parse_range("A1:A2"), parse_range("B1:B2")) == 0.0

    def test_number_lookup_ignores_text_keys(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A1"] = "7"
        sheet["A2"] = 7
        sheet["B1"] = 1
        sheet["B2"] = 2
        assert xlookup(sheet, 7.0, parse_range("A1:A2"), parse_range("B1:B2")) == 2.0

    def test_lookup_range_past_the_grid(self) -> None:
        sheet = Sheet(10, 5)
        sheet["A10"] = 4
        sheet["B10"] = 44
        lookup, ret = parse_range("A1:A999999"), parse_range("B1:B999999")
        assert xlookup(sheet, 4.0, lookup, ret) == 44.0
        with pytest.raises(FormulaError) as exc:
            xlookup(sheet, 5.0, lookup, ret)
        assert exc.value.kind is ErrorKind.NA
