"""Unit tests for the Excel workbook writer."""

import io
from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from src.adapters.exporters import ExcelExporter, import_template_sheet
from src.adapters.exporters.excel_exporter import IMPORT_TEMPLATE_HEADERS
from src.domain.ports import SheetWriteError
from src.domain.tabular import Sheet


def _load(content):
    return load_workbook(io.BytesIO(content))


class TestExcelExporter:
    """Test writing sheets to xlsx bytes."""

    def test_writes_header_and_rows(self):
        sheet = Sheet(headers=["S.NO", "PAEC No"], rows=[[1, "P1"], [2, "P2"]], name="Baseline Forms")

        wb = _load(ExcelExporter().write([sheet]))

        ws = wb["Baseline Forms"]
        assert [list(row) for row in ws.iter_rows(values_only=True)] == [
            ["S.NO", "PAEC No"], [1, "P1"], [2, "P2"],
        ]
        assert ws["A1"].font.bold

    def test_plain_header(self):
        content = ExcelExporter(bold_header=False).write([Sheet(headers=["A"], rows=[])])
        assert not _load(content).active["A1"].font.bold

    def test_multiple_sheets_in_order(self):
        content = ExcelExporter().write([Sheet(headers=["A"], name="First"), Sheet(headers=["B"], name="Second")])
        assert _load(content).sheetnames == ["First", "Second"]

    def test_long_titles_truncated(self):
        content = ExcelExporter().write([Sheet(headers=["A"], name="X" * 40)])
        assert _load(content).sheetnames == ["X" * 31]

    def test_no_sheets(self):
        with pytest.raises(SheetWriteError):
            ExcelExporter().write([])

    def test_write_failure(self):
        """Test openpyxl failures surface as SheetWriteError."""
        with patch("src.adapters.exporters.excel_exporter.Workbook", side_effect=OSError("disk full")):
            with pytest.raises(SheetWriteError, match="disk full"):
                ExcelExporter().write([Sheet(headers=["A"])])


class TestImportTemplate:
    """Test the blank import template."""

    def test_headers_and_samples(self):
        sheet = import_template_sheet()
        assert sheet.headers == IMPORT_TEMPLATE_HEADERS
        assert [row[4] for row in sheet.rows] == ["PAEC001", "PAEC002"]

    def test_template_headers_resolve(self, resolver):
        """Test every template header except the sequence column is importable."""
        unresolved = [h for h in IMPORT_TEMPLATE_HEADERS if resolver.resolve(h) is None]
        assert unresolved == ["S.NO"]
