"""Tabular Data Models.

Transient, in-memory representations of spreadsheet content exchanged between
the sheet adapters and the domain services.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ExportLayout(str, Enum):
    """Column layout of an exported sheet.

    ANALYSIS is the full labelled export; TEMPLATE uses the import-template
    headers so that the file can be edited and imported again.
    """

    ANALYSIS = "analysis"
    TEMPLATE = "template"


@dataclass
class Sheet:
    """One header row plus data rows of heterogeneous cells."""

    headers: list[str]
    rows: list[list[Any]] = field(default_factory=list)
    name: str = "Sheet1"

    def __len__(self) -> int:
        return len(self.rows)

    def iter_rows(self):
        """Yield ``(sheet_row_number, cells)`` with the header as row 1."""
        for index, row in enumerate(self.rows):
            yield index + 2, list(row)


@dataclass(frozen=True)
class ExportFile:
    """Binary spreadsheet ready to hand to a caller."""

    filename: str
    content: bytes
    content_type: str = XLSX_CONTENT_TYPE
    row_count: int = 0
