"""Unit tests for the CSV sheet reader.

Tests cover:
- Extension detection
- Header row and raw text cells
- Byte uploads, BOMs and tab-separated files
- Error handling for missing and unreadable sources
"""

from unittest.mock import patch

import pandas as pd
import pytest

from src.adapters.ingesters.csv_ingester import CSVIngester
from src.domain.ports import SheetReadError, SourceNotFoundError


class TestCSVIngesterInitialization:
    """Test CSV ingester initialization."""

    def test_init_defaults(self):
        ingester = CSVIngester()
        assert ingester.delimiter == ','
        assert ingester.encoding == 'utf-8-sig'
        assert ingester.adapter_name == "csv_ingester"

    @pytest.mark.parametrize("source, expected", [
        ("baseline.csv", True),
        ("BASELINE.CSV", True),
        ("baseline.tsv", True),
        ("baseline.xlsx", False),
        ("", False),
    ])
    def test_can_ingest(self, source, expected):
        assert CSVIngester().can_ingest(source) is expected


class TestCSVRead:
    """Test reading CSV content into a Sheet."""

    def test_read_file(self, tmp_path):
        """Test the first line becomes the header and cells stay text."""
        path = tmp_path / "baseline.csv"
        path.write_text("PAEC No,PATIENT NAME,SEX,AGE\nPAEC001,John Doe,Male,14\nPAEC002,,Female,012\n")

        sheet = CSVIngester().read(str(path))

        assert sheet.headers == ["PAEC No", "PATIENT NAME", "SEX", "AGE"]
        assert sheet.rows == [
            ["PAEC001", "John Doe", "Male", "14"],
            ["PAEC002", "", "Female", "012"],
        ]

    def test_na_is_not_interpreted(self, tmp_path):
        """Test pandas NA guessing is off; the domain decides what is blank."""
        path = tmp_path / "baseline.csv"
        path.write_text("PAEC No,UHID\nPAEC001,NA\n")
        assert CSVIngester().read(str(path)).rows == [["PAEC001", "NA"]]

    def test_read_bytes_with_bom(self):
        content = "\ufeffPAEC No,Patient Name\nP1,Asha\n".encode("utf-8")
        sheet = CSVIngester().read(content)
        assert sheet.headers == ["PAEC No", "Patient Name"]
        assert sheet.rows == [["P1", "Asha"]]

    def test_tsv_uses_tab(self, tmp_path):
        path = tmp_path / "baseline.tsv"
        path.write_text("PAEC No\tPatient Name\nP1\tDoe, John\n")
        assert CSVIngester().read(str(path)).rows == [["P1", "Doe, John"]]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")
        sheet = CSVIngester().read(str(path))
        assert sheet.headers == []
        assert sheet.rows == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            CSVIngester().read(str(tmp_path / "nope.csv"))

    def test_parse_failure(self, tmp_path):
        """Test parser errors surface as SheetReadError."""
        path = tmp_path / "broken.csv"
        path.write_text("a,b\n1,2\n")
        with patch("src.adapters.ingesters.csv_ingester.pd.read_csv",
                   side_effect=pd.errors.ParserError("bad quoting")):
            with pytest.raises(SheetReadError, match="bad quoting"):
                CSVIngester().read(str(path))
