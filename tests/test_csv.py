"""Tests for CSV import/export."""

from __future__ import annotations

from pathlib import Path

from liveledger import (
    Number,
    Sheet,
    Text,
    dumps_csv,
    load_csv,
    loads_csv,
    save_csv,
)
from liveledger._cell import Formula


class TestDumps:
    def test_empty_sheet(self) -> None:
        assert dumps_csv(Sheet(5, 5)) == ""

    def test_values_and_quoting(self) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = "Name"
        sheet["B1"] = "Qty"
        sheet["A2"] = "a,b"
        sheet["B2"] = 2.5
        sheet["A3"] = 'say "hi"'
        sheet["B3"] = "two\nlines"
        assert dumps_csv(sheet) == (
            'Name,Qty\n"a,b",2.5\n"say ""hi""","two\nlines"\n'
        )

    def test_bounding_box_from_a1(self) -> None:
        sheet = Sheet(10, 10)
        sheet["B2"] = 1
        sheet["C3"] = "x"
        assert dumps_csv(sheet) == ",,\n,1,\n,,x\n"

    def test_display_values_vs_formulas(self) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = 1
        sheet["A2"] = "=A1*2"
        sheet["A3"] = "=A1/0"
        sheet.recalculate()
        assert dumps_csv(sheet) == "1\n2\n#DIV/0!\n"
        assert dumps_csv(sheet, preserve_formulas=True) == "1\n=A1*2\n=A1/0\n"

    def test_formatted_display(self) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = 3.14159
        assert dumps_csv(sheet) == "3.14\n"

    def test_edge_whitespace_quoted(self) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = "  padded"
        sheet["B1"] = "trail\t"
        sheet["C1"] = "in side"
        assert dumps_csv(sheet) == '"  padded","trail\t",in side\n'


class TestLoads:
    def test_numbers_and_text(self) -> None:
        sheet = Sheet(10, 10)
        loads_csv(sheet, "1, abc ,2.5,1e3,-4,12abc,+.5\n")
        kinds = [sheet.get_cell(0, c).kind for c in range(7)]
        assert kinds == [
            Number(1.0),
            Text("abc"),
            Number(2.5),
            Number(1000.0),
            Number(-4.0),
            Text("12abc"),
            Number(0.5),
        ]

    def test_empty_fields_skipped(self) -> None:
        sheet = Sheet(10, 10)
        loads_csv(sheet, "1,,3\n\n,x\n")
        assert sheet.get_cell(0, 1) is None
        assert sheet.get_cell(2, 1).kind == Text("x")

    def test_quoted_fields(self) -> None:
        sheet = Sheet(10, 10)
        loads_csv(sheet, '"a,b","say ""hi""","42"\n')
        assert sheet.get_cell(0, 0).kind == Text("a,b")
        assert sheet.get_cell(0, 1).kind == Text('say "hi"')
        assert sheet.get_cell(0, 2).kind == Number(42.0)

    def test_quoted_whitespace_kept(self) -> None:
        sheet = Sheet(10, 10)
        loads_csv(sheet, '"  x  ",  y  ,\t"z "\n')
        assert sheet.get_cell(0, 0).kind == Text("  x  ")
        assert sheet.get_cell(0, 1).kind == Text("y")
        assert sheet.get_cell(0, 2).kind == Text("z ")

    def test_text_after_closing_quote_dropped(self) -> None:
        sheet = Sheet(10, 10)
        loads_csv(sheet, '"ab"cd,2\r\n"multi\nline"\n')
        assert sheet.get_cell(0, 0).kind == Text("ab")
        assert sheet.get_cell(0, 1).kind == Number(2.0)
        assert sheet.get_cell(1, 0).kind == Text("multi\nline")

    def test_formulas_only_in_preserve_mode(self) -> None:
        text = "2,=A1*5\n"
        plain = Sheet(10, 10)
        loads_csv(plain, text)
        assert plain.get_cell(0, 1).kind == Text("=A1*5")

        live = Sheet(10, 10)
        loads_csv(live, text, preserve_formulas=True)
        assert isinstance(live.get_cell(0, 1).kind, Formula)
        assert live.get_display_value(0, 1) == "10"
        assert not live.needs_recalc

    def test_clears_existing_content(self) -> None:
        sheet = Sheet(10, 10)
        sheet["E5"] = 99
        sheet["E5"].width = 25
        loads_csv(sheet, "1\n")
        assert sheet["E5"].is_empty
        assert sheet["E5"].width == 25
        assert sheet.get_display_value(0, 0) == "1"

    def test_rows_and_columns_past_grid_ignored(self) -> None:
        sheet = Sheet(2, 2)
        loads_csv(sheet, "1,2,3\n4,5,6\n7,8,9\n")
        assert sheet.used_range().to_a1() == "A1:B2"
        assert sheet.get_display_value(1, 1) == "5"


class TestFiles:
    def test_roundtrip_values(self, tmp_path: Path) -> None:
        sheet = Sheet(20, 10)
        sheet["A1"] = "Item"
        sheet["B1"] = "Price"
        sheet["A2"] = "Apples, red"
        sheet["B2"] = 0.5
        sheet["A3"] = "Oranges"
        sheet["B3"] = 1234.25
        sheet["C3"] = -7
        path = tmp_path / "sheet.csv"
        assert save_csv(sheet, path)

        loaded = Sheet(20, 10)
        assert load_csv(loaded, path)
        for cell in sheet.iter_cells():
            assert loaded.get_display_value(cell.row, cell.col) == sheet.get_display_value(
                cell.row, cell.col
            )

    def test_roundtrip_edge_whitespace(self, tmp_path: Path) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = "  padded"
        sheet["B1"] = "trail  "
        sheet["A2"] = " , "
        sheet["B2"] = "plain"
        path = tmp_path / "blanks.csv"
        assert save_csv(sheet, path)

        loaded = Sheet(10, 10)
        assert load_csv(loaded, path)
        for ref in ("A1", "B1", "A2", "B2"):
            assert loaded[ref].kind == sheet[ref].kind

    def test_roundtrip_formulas(self, tmp_path: Path) -> None:
        sheet = Sheet(10, 10)
        sheet["A1"] = 3
        sheet["A2"] = 4
        sheet["A3"] = "=SUM(A1:A2)"
        path = tmp_path / "formulas.csv"
        assert save_csv(sheet, str(path), preserve_formulas=True)
        assert path.read_text() == "3\n4\n=SUM(A1:A2)\n"

        loaded = Sheet(10, 10)
        assert load_csv(loaded, path, preserve_formulas=True)
        assert loaded.get_display_value(2, 0) == "7"

    def test_missing_file(self, tmp_path: Path) -> None:
        sheet = Sheet(5, 5)
        sheet["A1"] = 1
        assert not load_csv(sheet, tmp_path / "nope.csv")
        # a failed load leaves the sheet alone
        assert sheet.get_display_value(0, 0) == "1"

    def test_unwritable_path(self, tmp_path: Path) -> None:
        sheet = Sheet(5, 5)
        sheet["A1"] = 1
        assert not save_csv(sheet, tmp_path / "missing-dir" / "out.csv")
