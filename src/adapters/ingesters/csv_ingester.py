"""CSV Sheet Reader Adapter.

This adapter implements the SheetReaderPort contract for CSV data sources, so
that registry sheets saved as CSV can be imported the same way as workbooks.

Security Impact:
    - Cells are read as text; no value is evaluated or type-guessed here
    - Read failures abort the run before any row is reconciled

Architecture:
    - Implements SheetReaderPort (Hexagonal Architecture)
    - Uses pandas for parsing (quoting, encodings, delimiters)
    - Isolated from domain core - only depends on ports and tabular models
"""

import io
import logging
from pathlib import Path
from typing import Union

import pandas as pd

from src.adapters.ingesters.excel_ingester import dataframe_to_sheet
from src.domain.ports import SheetReadError, SheetReaderPort, SourceNotFoundError
from src.domain.tabular import Sheet

logger = logging.getLogger(__name__)


class CSVIngester(SheetReaderPort):
    """CSV reader producing a header row plus raw text cells.

    Parameters:
        delimiter: CSV delimiter character (default: ',', '.tsv' files use tab)
        encoding: File encoding (default: utf-8, BOM tolerated)
    """

    def __init__(self, delimiter: str = ',', encoding: str = 'utf-8-sig'):
        self.delimiter = delimiter
        self.encoding = encoding
        self.adapter_name = "csv_ingester"

    def can_ingest(self, source: str) -> bool:
        """Check if this adapter can handle the given source.

        Parameters:
            source: Source identifier (file path)

        Returns:
            bool: True if source is a CSV file, False otherwise
        """
        if not source:
            return False
        return Path(str(source)).suffix.lower() in ('.csv', '.tsv')

    def read(self, source: Union[str, Path, bytes]) -> Sheet:
        """Read a CSV file (or raw bytes) into a Sheet.

        Raises:
            SourceNotFoundError: If the path does not exist
            SheetReadError: If the content cannot be parsed
        """
        delimiter = self.delimiter
        if isinstance(source, (bytes, bytearray)):
            handle = io.BytesIO(source)
            label = "<upload>"
        else:
            path = Path(source)
            if not path.exists():
                raise SourceNotFoundError(f"CSV source not found: {source}", source=str(source))
            if path.suffix.lower() == '.tsv':
                delimiter = '\t'
            handle = path
            label = str(source)

        try:
            frame = pd.read_csv(
                handle,
                header=None,
                dtype=str,
                delimiter=delimiter,
                encoding=self.encoding,
                keep_default_na=False,
                skip_blank_lines=False,
            )
        except pd.errors.EmptyDataError:
            logger.warning(f"CSV source is empty: {label}")
            return Sheet(headers=[], rows=[], name=Path(label).stem)
        except Exception as e:
            raise SheetReadError(f"Failed to read CSV: {str(e)}", source=label) from e

        sheet = dataframe_to_sheet(frame, name=Path(label).stem)
        logger.info(f"Read {len(sheet)} data row(s) and {len(sheet.headers)} column(s) from {label}")
        return sheet
