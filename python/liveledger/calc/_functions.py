"""Builtin function implementations for formula evaluation."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable

from liveledger._cell import Cell, ErrorKind, Formula, Number, Text
from liveledger._utils import CellRange
from liveledger.calc._protocol import FormulaError

if TYPE_CHECKING:
    from liveledger._sheet import Sheet

FLOAT_COMPARISON_EPSILON = 1e-10

# Upper bound on the values one range contributes to a function call
MAX_RANGE_VALUES = 1000

# ---------------------------------------------------------------------------
# Aggregate builtins.  Each takes a freshly built list of floats that it may
# reorder; nothing is kept between calls.
# ---------------------------------------------------------------------------


def _builtin_sum(values: list[float]) -> float:
    if not values:
        return 0.0
    try:
        return math.fsum(values)
    except (OverflowError, ValueError):
        # fsum refuses to overflow or to add opposite infinities; plain
        # float addition gives inf or nan instead
        return sum(values)


def _builtin_avg(values: list[float]) -> float:
    if not values:
        return 0.0
    return _builtin_sum(values) / len(values)


def _builtin_max(values: list[float]) -> float:
    if not values:
        return 0.0
    return max(values)


def _builtin_min(values: list[float]) -> float:
    if not values:
        return 0.0
    return min(values)


def _builtin_median(values: list[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2.0
    return ordered[mid]


def _builtin_mode(values: list[float]) -> float:
    """Most frequent value; ties go to the value seen first."""
    if not values:
        return 0.0
    mode = values[0]
    max_count = 1
    for i, v in enumerate(values):
        count = 1
        for other in values[i + 1:]:
            if abs(v - other) < FLOAT_COMPARISON_EPSILON:
                count += 1
        if count > max_count:
            max_count = count
            mode = v
    return mode


_BUILTINS: dict[str, Callable[[list[float]], float]] = {
    "SUM": _builtin_sum,
    "AVG": _builtin_avg,
    "MAX": _builtin_max,
    "MIN": _builtin_min,
    "MEDIAN": _builtin_median,
    "MODE": _builtin_mode,
}


class FunctionRegistry:
    """Registry of aggregate implementations (``list[float] -> float``).

    Starts with the builtins and can be extended with custom aggregates.
    POWER, IF and XLOOKUP take structured arguments and are dispatched by
    the evaluator directly.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[[list[float]], float]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[[list[float]], float]) -> None:
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[[list[float]], float] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())


# ---------------------------------------------------------------------------
# POWER / IF
# ---------------------------------------------------------------------------


def power(base: float, exponent: float) -> float:
    """Real exponentiation.  Domain errors give NaN, overflow gives inf."""
    try:
        return math.pow(base, exponent)
    except ValueError:
        # e.g. negative base with a fractional exponent, or 0 ** -1
        if base == 0.0 and exponent < 0:
            return math.inf
        return math.nan
    except OverflowError:
        if base < 0 and float(exponent).is_integer() and int(exponent) % 2 == 1:
            return -math.inf
        return math.inf


def select_branch(condition: float, true_value: float | str, false_value: float | str) -> float | str:
    """IF: nonzero condition picks the true branch."""
    return true_value if condition != 0.0 else false_value


# ---------------------------------------------------------------------------
# Range member resolution
# ---------------------------------------------------------------------------


def range_numbers(sheet: Sheet, rng: CellRange) -> list[float]:
    """Numeric members of *rng* in row-major order.

    Empty and missing positions (also those past the grid) count as 0.0.
    Text cells, text results and formulas in error are skipped.  At most
    MAX_RANGE_VALUES values are collected.
    """
    values: list[float] = []
    for row, col in rng.cells():
        if len(values) >= MAX_RANGE_VALUES:
            break
        cell = sheet.get_cell(row, col)
        if cell is None:
            values.append(0.0)
            continue
        kind = cell.kind
        if isinstance(kind, Number):
            values.append(kind.value)
        elif isinstance(kind, Formula):
            if not kind.error and not kind.is_text_result:
                values.append(kind.cached_value)
        elif isinstance(kind, Text):
            continue
        else:
            values.append(0.0)
    return values


def _lookup_number(cell: Cell) -> float | None:
    """Numeric value of a lookup-array cell, or None to skip it."""
    kind = cell.kind
    if isinstance(kind, Number):
        return kind.value
    if isinstance(kind, Formula) and not kind.error and not kind.is_text_result:
        return kind.cached_value
    return None


def _nth(rng: CellRange, i: int, vertical: bool) -> tuple[int, int]:
    if vertical:
        return (rng.start_row + i, rng.start_col)
    return (rng.start_row, rng.start_col + i)


# ---------------------------------------------------------------------------
# XLOOKUP
# ---------------------------------------------------------------------------


def xlookup(
    sheet: Sheet,
    lookup_value: float | str,
    lookup_range: CellRange,
    return_range: CellRange,
    exact: bool = True,
) -> float:
    """XLOOKUP(lookup_value, lookup_range, return_range, [match_mode]).

    Both ranges must have the same shape (``REF`` otherwise).  The search
    runs down the first column when the range spans several rows, else
    along the first row.  String lookups always match exactly against text
    cells and text results.  Numeric lookups match within
    ``FLOAT_COMPARISON_EPSILON`` in exact mode; in approximate mode they
    take the largest value not above the target.

    A match whose return cell is text or in error is passed over and the
    search goes on.  No match raises ``NA``.
    """
    if (lookup_range.n_rows != return_range.n_rows
            or lookup_range.n_cols != return_range.n_cols):
        raise FormulaError(ErrorKind.REF, "XLOOKUP ranges differ in shape")

    vertical = lookup_range.n_rows > 1
    count = lookup_range.n_rows if vertical else lookup_range.n_cols
    # positions past the grid never match
    if vertical:
        count = min(count, sheet.rows - lookup_range.start_row)
    else:
        count = min(count, sheet.cols - lookup_range.start_col)

    # Lookup column resolved once; None marks cells a numeric search skips
    keys: list[Cell | None] = [sheet.get_cell(*_nth(lookup_range, i, vertical)) for i in range(count)]
    numbers = [None if c is None else _lookup_number(c) for c in keys]

    for i, cell in enumerate(keys):
        if cell is None:
            continue
        if isinstance(lookup_value, str):
            matched = cell.text_value() == lookup_value
        else:
            value = numbers[i]
            if value is None:
                continue
            if exact:
                matched = abs(value - lookup_value) < FLOAT_COMPARISON_EPSILON
            else:
                # closest from below: no later candidate may sit between
                matched = value <= lookup_value and not any(
                    n is not None and value < n <= lookup_value
                    for n in numbers[i + 1:]
                )
        if not matched:
            continue

        result = sheet.get_cell(*_nth(return_range, i, vertical))
        if result is None:
            return 0.0
        kind = result.kind
        if isinstance(kind, Number):
            return kind.value
        if isinstance(kind, Formula):
            if not kind.error and not kind.is_text_result:
                return kind.cached_value
            continue
        if isinstance(kind, Text):
            continue
        return 0.0

    raise FormulaError(ErrorKind.NA, "XLOOKUP found no match")
