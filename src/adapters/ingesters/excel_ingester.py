"""Excel Sheet Reader Adapter.

This adapter implements the SheetReaderPort contract for Excel workbooks.
It reads the first worksheet of a workbook into a header row plus raw data
rows; header interpretation is left to the domain.

Security Impact:
    - Only the first worksheet is read; formulas are read as cached values
    - Read failures abort the run before any row is reconciled

Architecture:
    - Implements SheetReaderPort (Hexagonal Architecture)
    - Uses pandas with the openpyxl engine; cells are kept as objects so that
      the domain coercer sees the original types (str, int, float, datetime)
"""

import io
import logging
from pathlib import Path
from typing import Any, Union

import pandas as pd

from src.domain.ports import SheetReadError, SheetReaderPort, SourceNotFoundError
from src.domain.tabular import Sheet

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = ('.xlsx', '.xlsm')


def _cell(value: Any) -> Any:
    """Normalize a pandas cell: NaN/NaT become None, Timestamps become datetimes."""
    if isinstance(value, (list, dict)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def dataframe_to_sheet(frame: pd.DataFrame, name: str = "Sheet1") -> Sheet:
    """Convert a header-less DataFrame (row 0 is the header) into a Sheet."""
    if frame.empty:
        return Sheet(headers=[], rows=[], name=name)

    records = frame.values.tolist()
    headers = [_cell(value) for value in records[0]]
    rows = [[_cell(value) for value in row] for row in records[1:]]
    return Sheet(headers=headers, rows=rows, name=name)


class ExcelIngester(SheetReaderPort):
    """Reads the first worksheet of an .xlsx workbook.

    Parameters:
        sheet_name: Worksheet to read (index or name); defaults to the first
    """

    def __init__(self, sheet_name: Union[int, str] = 0):
        self.sheet_name = sheet_name
        self.adapter_name = "excel_ingester"

    def can_ingest(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier (file path)

        Returns:
            bool: True if source is an Excel workbook, False otherwise
        """
        if not source:
            return False
        return Path(str(source)).suffix.lower() in EXCEL_EXTENSIONS

    def read(self, source: Union[str, Path, bytes]) -> Sheet:
        """Read a workbook from a path or from raw bytes.

        Raises:
            SourceNotFoundError: If the path does not exist
            SheetReadError: If the workbook cannot be parsed
        """
        if isinstance(source, (bytes, bytearray)):
            handle = io.BytesIO(source)
            label = "<upload>"
        else:
            path = Path(source)
            if not path.exists():
                raise SourceNotFoundError(f"Excel source not found: {source}", source=str(source))
            handle = path
            label = str(source)

        try:
            frame = pd.read_excel(
                handle,
                sheet_name=self.sheet_name,
                header=None,
                dtype=object,
                engine="openpyxl",
            )
        except Exception as e:
            raise SheetReadError(f"Failed to read Excel workbook: {str(e)}", source=label) from e

        sheet = dataframe_to_sheet(frame, name=str(self.sheet_name))
        logger.info(f"Read {len(sheet)} data row(s) and {len(sheet.headers)} column(s) from {label}")
        return sheet
