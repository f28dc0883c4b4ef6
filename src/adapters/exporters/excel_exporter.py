"""Excel Workbook Writer Adapter.

This adapter implements the SheetWriterPort contract: it serializes one or
more sheets into an .xlsx workbook held in memory.

Security Impact:
    - Workbooks are produced in memory; nothing is written to disk here
    - Write failures abort the export before any audit entry claims success

Architecture:
    - Implements SheetWriterPort (Hexagonal Architecture)
    - Uses openpyxl directly (append rows, save to BytesIO)
"""

import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Font

from src.domain.ports import SheetWriteError, SheetWriterPort
from src.domain.tabular import Sheet

logger = logging.getLogger(__name__)

# Excel limits sheet titles to 31 characters
_MAX_TITLE = 31

IMPORT_TEMPLATE_HEADERS = [
    'S.NO', 'PATIENT NAME', 'SEX', 'AGE', 'PAEC No', 'FINAL DIAGNOSIS 1',
    'Address', 'Phone no1', 'Phone no2', 'Phone 3', 'UHID',
]

IMPORT_TEMPLATE_SAMPLES = [
    [1, 'John Doe', 'Male', 14, 'PAEC001', 'Isolated GHD', '123 Main St, New Delhi',
     '9876543210', '9876543211', '01123456789', 'UHID123456'],
    [2, 'Jane Smith', 'Female', 12, 'PAEC002', 'Hypopituitarism', '456 Oak Ave, Mumbai',
     '9876543212', '9876543213', '01123456790', 'UHID123457'],
]


def import_template_sheet() -> Sheet:
    """Blank import template: the minimal accepted headers plus two sample rows."""
    return Sheet(
        headers=list(IMPORT_TEMPLATE_HEADERS),
        rows=[list(row) for row in IMPORT_TEMPLATE_SAMPLES],
        name="Template",
    )


class ExcelExporter(SheetWriterPort):
    """Writes sheets to an in-memory .xlsx workbook.

    Parameters:
        bold_header: Render the header row in bold
    """

    def __init__(self, bold_header: bool = True):
        self.bold_header = bold_header

    def write(self, sheets: list[Sheet]) -> bytes:
        """Serialize sheets, in order, into one workbook.

        Raises:
            SheetWriteError: If no sheet is given or openpyxl fails
        """
        if not sheets:
            raise SheetWriteError("No sheets to write")

        try:
            wb = Workbook()
            ws = wb.active
            for index, sheet in enumerate(sheets):
                if index > 0:
                    ws = wb.create_sheet()
                ws.title = (sheet.name or f"Sheet{index + 1}")[:_MAX_TITLE]
                ws.append(list(sheet.headers))
                if self.bold_header:
                    for cell in ws[1]:
                        cell.font = Font(bold=True)
                for row in sheet.rows:
                    ws.append(list(row))

            buffer = io.BytesIO()
            wb.save(buffer)
        except Exception as e:
            raise SheetWriteError(f"Failed to write workbook: {str(e)}") from e

        content = buffer.getvalue()
        logger.debug(f"Wrote workbook with {len(sheets)} sheet(s), {len(content)} bytes")
        return content
