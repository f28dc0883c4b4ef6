"""Unit tests for the Excel sheet reader."""

import io
from datetime import datetime

import pytest
from openpyxl import Workbook

from src.adapters.ingesters import CSVIngester, ExcelIngester, get_adapter
from src.domain.ports import SheetReadError, SourceNotFoundError, UnsupportedSourceError


def _workbook_bytes(rows):
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


class TestExcelIngester:
    """Test reading workbooks into a Sheet."""

    @pytest.mark.parametrize("source, expected", [
        ("baseline.xlsx", True),
        ("baseline.XLSM", True),
        ("baseline.xls", False),
        ("baseline.csv", False),
        ("", False),
    ])
    def test_can_ingest(self, source, expected):
        assert ExcelIngester().can_ingest(source) is expected

    def test_read_file_keeps_cell_types(self, tmp_path):
        """Test numbers and dates reach the domain with their native types."""
        path = tmp_path / "baseline.xlsx"
        path.write_bytes(_workbook_bytes([
            ["PAEC No", "PATIENT NAME", "AGE", "Visit Date"],
            ["PAEC001", "John Doe", 14, datetime(2024, 3, 5)],
        ]))

        sheet = ExcelIngester().read(str(path))

        assert sheet.headers == ["PAEC No", "PATIENT NAME", "AGE", "Visit Date"]
        assert len(sheet.rows) == 1
        key, name, age, visit = sheet.rows[0]
        assert (key, name) == ("PAEC001", "John Doe")
        assert age == 14
        assert visit == datetime(2024, 3, 5)

    def test_empty_cells_become_none(self):
        sheet = ExcelIngester().read(_workbook_bytes([
            ["PAEC No", "UHID", "Patient Name"],
            ["P1", None, "Asha"],
        ]))
        assert sheet.rows == [["P1", None, "Asha"]]

    def test_iter_rows_numbers_from_two(self):
        """Test data rows are numbered as in the workbook (header is row 1)."""
        sheet = ExcelIngester().read(_workbook_bytes([["PAEC No"], ["P1"], ["P2"]]))
        assert [number for number, _ in sheet.iter_rows()] == [2, 3]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            ExcelIngester().read(str(tmp_path / "missing.xlsx"))

    def test_corrupt_workbook(self, tmp_path):
        path = tmp_path / "corrupt.xlsx"
        path.write_bytes(b"not a zip archive")
        with pytest.raises(SheetReadError):
            ExcelIngester().read(str(path))


class TestGetAdapter:
    """Test reader selection by extension."""

    def test_selects_excel(self):
        assert isinstance(get_adapter("upload.xlsx"), ExcelIngester)

    def test_selects_csv(self):
        assert isinstance(get_adapter("upload.csv"), CSVIngester)

    def test_passes_kwargs(self):
        assert get_adapter("upload.csv", delimiter=";").delimiter == ";"

    def test_bad_kwargs(self):
        with pytest.raises(UnsupportedSourceError):
            get_adapter("upload.xlsx", chunk_size=10)

    @pytest.mark.parametrize("source", ["upload.xls", "upload.json", "upload"])
    def test_unsupported(self, source):
        with pytest.raises(UnsupportedSourceError, match="No adapter found"):
            get_adapter(source)
