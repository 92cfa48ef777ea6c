"""Tests for the cell record and its enums."""

from __future__ import annotations

import pytest
from liveledger import Align, Cell, Color, ErrorKind, Number, Text, parse_color
from liveledger._cell import Formula


class TestErrorKind:
    def test_tokens(self) -> None:
        assert ErrorKind.DIV_ZERO.token == "#DIV/0!"
        assert ErrorKind.REF.token == "#REF!"
        assert ErrorKind.VALUE.token == "#VALUE!"
        assert ErrorKind.PARSE.token == "#PARSE!"
        assert ErrorKind.NA.token == "#N/A!"
        assert ErrorKind.NONE.token == ""

    def test_truthiness(self) -> None:
        assert not ErrorKind.NONE
        assert all(kind for kind in ErrorKind if kind is not ErrorKind.NONE)


class TestCellValues:
    def test_defaults(self) -> None:
        cell = Cell(3, 4)
        assert cell.is_empty
        assert cell.width == 10
        assert cell.precision == 2
        assert cell.text_value() is None

    def test_alignment_follows_kind(self) -> None:
        cell = Cell(0, 0)
        cell.set_text("label")
        assert cell.align == Align.LEFT
        cell.set_number(3)
        assert cell.align == Align.RIGHT
        assert cell.kind == Number(3.0)

    def test_formula_keeps_alignment(self) -> None:
        cell = Cell(0, 0)
        cell.set_text("x")
        cell.set_formula("=1+1")
        assert cell.is_formula
        assert cell.align == Align.LEFT

    def test_clear_keeps_formatting(self) -> None:
        cell = Cell(0, 0)
        cell.set_number(1)
        cell.width = 20
        cell.set_background_color(Color.BLUE)
        cell.clear()
        assert cell.is_empty
        assert cell.width == 20
        assert cell.background_color == Color.BLUE

    def test_text_value(self) -> None:
        cell = Cell(0, 0)
        cell.set_text("abc")
        assert cell.text_value() == "abc"
        cell.kind = Formula("=IF(1,\"hi\",\"lo\")", cached_text="hi")
        assert cell.text_value() == "hi"
        cell.kind = Formula("=1", cached_value=1.0)
        assert cell.text_value() is None


class TestFormula:
    def test_text_result(self) -> None:
        f = Formula("=x")
        assert not f.is_text_result
        f.cached_text = "ok"
        assert f.is_text_result

    def test_reset_cache(self) -> None:
        f = Formula("=1/0", cached_value=3.0, cached_text="t", error=ErrorKind.DIV_ZERO)
        f.reset_cache()
        assert (f.cached_value, f.cached_text, f.error) == (0.0, None, ErrorKind.NONE)
        assert f.source == "=1/0"


class TestCopy:
    def test_copy_is_independent(self) -> None:
        cell = Cell(1, 1)
        cell.set_formula("=A1")
        cell.kind.cached_value = 5.0
        dup = cell.copy()
        cell.kind.cached_value = 6.0
        cell.width = 30
        assert dup.kind.cached_value == 5.0
        assert dup.width == 10

    def test_copy_display_from(self) -> None:
        src = Cell(0, 0)
        src.set_text("x")
        src.width = 15
        src.precision = 4
        src.set_text_color(Color.RED)
        src.row_height = 3
        dest = Cell(1, 1)
        dest.copy_display_from(src)
        assert (dest.width, dest.precision, dest.align) == (15, 4, Align.LEFT)
        assert dest.text_color == Color.RED
        assert dest.row_height == 3
        assert dest.kind != Text("x")


class TestParseColor:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("red", Color.RED),
            ("white", Color.WHITE),
            ("#000000", Color.BLACK),
            ("#000070", Color.BLUE),
            ("#606060", Color.WHITE),
            ("#FF0000", Color.RED | Color.BRIGHT),
            ("#00FF00", Color.GREEN | Color.BRIGHT),
            ("#FFFF00", Color.YELLOW | Color.BRIGHT),
            ("#FF00FF", Color.MAGENTA | Color.BRIGHT),
            ("#00FFFF", Color.CYAN | Color.BRIGHT),
            ("#808080", Color.WHITE | Color.BRIGHT),
        ],
    )
    def test_known(self, text: str, expected: int) -> None:
        assert parse_color(text) == expected

    @pytest.mark.parametrize("text", [None, "", "RED", "purple", "#GGGGGG", "#FFF"])
    def test_unknown(self, text: str | None) -> None:
        assert parse_color(text) is None
