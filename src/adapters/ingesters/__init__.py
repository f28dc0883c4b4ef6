"""Sheet reader adapters for PAEC Tabular Sync.

This module contains reader adapters that implement the SheetReaderPort
interface for reading tabular sources (Excel workbooks, CSV files).
"""

from pathlib import Path

from src.adapters.ingesters.csv_ingester import CSVIngester
from src.adapters.ingesters.excel_ingester import ExcelIngester
from src.domain.ports import SheetReaderPort, UnsupportedSourceError

__all__ = ["CSVIngester", "ExcelIngester", "get_adapter"]


def get_adapter(source: str, **kwargs) -> SheetReaderPort:
    """Factory function to get the appropriate sheet reader for a source.

    This function selects the reader based on the source file extension.

    Parameters:
        source: Source identifier (file path)
        **kwargs: Additional arguments passed to the reader constructor

    Returns:
        SheetReaderPort: Appropriate reader instance

    Raises:
        UnsupportedSourceError: If no reader can handle the source

    Example Usage:
        ```python
        reader = get_adapter("baseline_import.xlsx")
        sheet = reader.read("baseline_import.xlsx")
        ```
    """
    extension = Path(str(source)).suffix.lower()

    adapters = [
        ((".xlsx", ".xlsm"), ExcelIngester),
        ((".csv", ".tsv"), CSVIngester),
    ]

    for extensions, adapter_class in adapters:
        if extension in extensions:
            try:
                return adapter_class(**kwargs)
            except TypeError as e:
                raise UnsupportedSourceError(
                    f"Failed to create {adapter_class.__name__}: {str(e)}",
                    source=str(source),
                    adapter=adapter_class.__name__
                )

    raise UnsupportedSourceError(
        f"No adapter found for source: {source}. Supported formats: XLSX, CSV",
        source=str(source)
    )
