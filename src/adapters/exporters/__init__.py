"""Sheet writer adapters for PAEC Tabular Sync.

This module contains writer adapters that implement the SheetWriterPort
interface for producing export workbooks.
"""

from src.adapters.exporters.excel_exporter import ExcelExporter, import_template_sheet

__all__ = ["ExcelExporter", "import_template_sheet"]
