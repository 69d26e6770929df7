"""Tests for the Excel/CSV row source adapter."""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from src.ledger.importing.adapters.excel_row_source import OpenpyxlRowSource


@pytest.fixture
def source():
    return OpenpyxlRowSource()


def workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()


@pytest.fixture
def tablet_workbook():
    """Tablet ledger with a title row above the headers."""
    return workbook_bytes(
        [
            ["タブレット管理台帳"],
            ["端末CD(必須)", "型番(必須)", "社員コード", "貸与日"],
            ["T-001", "iPad 9", 1001, datetime(2024, 1, 10)],
            ["T-002", "iPad 10", None, None],
            [None, None, None, None],
            ["T-003", "iPad mini", None, None, "stray"],
        ]
    )


class TestExcelRows:
    def test_headers_from_header_row(self, source, tablet_workbook):
        sheet = source.read(tablet_workbook, header_row=2)

        assert sheet.headers == ["端末CD(必須)", "型番(必須)", "社員コード", "貸与日"]

    def test_raw_values_preserved(self, source, tablet_workbook):
        sheet = source.read(tablet_workbook, header_row=2)

        first = sheet.rows[0]
        assert first.index == 0
        assert first.values[:3] == ["T-001", "iPad 9", 1001]
        assert first.values[3] == datetime(2024, 1, 10)

    def test_trailing_empty_cells_trimmed(self, source, tablet_workbook):
        sheet = source.read(tablet_workbook, header_row=2)

        assert sheet.rows[1].values == ["T-002", "iPad 10"]
        assert sheet.rows[2].is_blank()

    def test_cells_past_headers_kept(self, source, tablet_workbook):
        sheet = source.read(tablet_workbook, header_row=2)

        assert sheet.rows[3].extra_cells(len(sheet.headers)) == ["stray"]

    def test_header_row_one(self, source):
        content = workbook_bytes([["端末CD", "SIM電番"], ["R-001", "08012345678"]])

        sheet = source.read(content)

        assert sheet.headers == ["端末CD", "SIM電番"]
        assert len(sheet.rows) == 1


class TestCsvRows:
    def test_reads_csv(self, source):
        content = "端末CD(必須),型番(必須)\nT-001,iPad 9\nT-002,iPad 10\n".encode("utf-8")

        sheet = source.read(content)

        assert sheet.headers == ["端末CD(必須)", "型番(必須)"]
        assert [r.values for r in sheet.rows] == [["T-001", "iPad 9"], ["T-002", "iPad 10"]]

    def test_strips_bom_and_trims_headers(self, source):
        content = "\ufeff 端末CD ,SIM電番\nR-001,\n".encode("utf-8")

        sheet = source.read(content)

        assert sheet.headers == ["端末CD", "SIM電番"]
        assert sheet.rows[0].values == ["R-001"]


class TestErrors:
    def test_invalid_header_row(self, source):
        with pytest.raises(ValueError):
            source.read(b"a,b\n1,2\n", header_row=0)

    def test_not_enough_rows(self, source):
        content = workbook_bytes([["only a title"]])

        with pytest.raises(ValueError, match="File is empty"):
            source.read(content, header_row=2)

    def test_empty_header_row(self, source):
        content = workbook_bytes([["title"], [None, None], ["T-001", "iPad"]])

        with pytest.raises(ValueError, match="Header row 2 is empty"):
            source.read(content, header_row=2)

    def test_garbage_content(self, source):
        with pytest.raises(ValueError, match="Failed to parse Excel file"):
            source.read(b"\x00\x01\x02 not a workbook")
