"""Value Coercion Service.

Converts raw spreadsheet cells into the typed values stored at a document
path (import), and stored values into display strings (export).

Rules:
    - Blank cells (None, NaN, empty or whitespace, and the export sentinel
      ``NA``/``N/A``) are missing on import
    - Missing values always export as the literal ``NA``
    - Dates are stored as ISO ``YYYY-MM-DD`` and displayed ``DD/MM/YYYY``
    - Boolean tokens are declared per path (1/2, Yes/No, True/False)

Security Impact:
    - Warning messages name the column, never the cell value of a sensitive path

Architecture:
    - Pure domain service; uses pandas only for NaN/NaT detection
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

import pandas as pd

from src.domain.field_mapping import BooleanEncoding, FieldType, MappingEntry
from src.domain.paths import MISSING, FieldPath
from src.domain.ports import CoercionError
from src.domain.services.field_resolver import FieldPathResolver
from src.domain.tabular import ExportLayout

logger = logging.getLogger(__name__)

MISSING_DISPLAY = "NA"
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
STORAGE_DATE_FORMAT = "%Y-%m-%d"

_BLANK_TOKENS = {"na", "n/a"}
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)
# Excel's day zero (accounts for the 1900 leap-year bug)
_EXCEL_EPOCH = date(1899, 12, 30)
_EXCEL_MAX_SERIAL = 2958465


def is_blank(value: Any) -> bool:
    """Check whether a cell counts as missing."""
    if value is None or value is MISSING:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return not stripped or stripped.casefold() in _BLANK_TOKENS
    if isinstance(value, (list, dict)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_date(value: Any) -> Optional[date]:
    """Parse a cell or stored value into a date, or None if it is not one."""
    if isinstance(value, datetime):
        return None if pd.isna(value) else value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isnan(value) or not 0 < value <= _EXCEL_MAX_SERIAL:
            return None
        return _EXCEL_EPOCH + timedelta(days=int(value))
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class ValueCoercer:
    """Typed conversion between spreadsheet cells and document values.

    Parameters:
        resolver: Resolver used to find the mapping entry of a path
    """

    def __init__(self, resolver: Optional[FieldPathResolver] = None):
        self.resolver = resolver or FieldPathResolver()

    def _entry(self, path: Union[FieldPath, MappingEntry]) -> MappingEntry:
        if not isinstance(path, FieldPath):
            return path
        entry = self.resolver.spec_for(path)
        if entry is None:
            raise KeyError(f"No mapping for path '{path}'")
        return entry

    # ------------------------------------------------------------------
    # Import direction
    # ------------------------------------------------------------------

    def coerce_in(
        self,
        path: Union[FieldPath, MappingEntry],
        raw: Any,
        warnings: Optional[list] = None,
        column: Optional[str] = None,
    ) -> Any:
        """Convert a raw cell to the typed value for ``path``.

        Parameters:
            path: Target path (or its mapping entry)
            raw: Raw cell value from the sheet
            warnings: Optional list that receives messages for dropped values
            column: Header of the cell, used in messages

        Returns:
            The typed value, or ``MISSING`` when the cell is blank or dropped

        Raises:
            CoercionError: If a date cell cannot be parsed
        """
        entry = self._entry(path)
        if is_blank(raw):
            return MISSING

        column = column or entry.label
        field_type = entry.field_type

        if field_type == FieldType.DATE:
            parsed = parse_date(raw)
            if parsed is None:
                raise CoercionError(f"Invalid date in column '{column}'", column=column)
            return parsed.strftime(STORAGE_DATE_FORMAT)

        if field_type == FieldType.INTEGER:
            value = self._to_number(raw, int)
            if value is not None:
                return value
            if entry.default_zero:
                return 0
            return self._drop(warnings, column, "is not a whole number")

        if field_type == FieldType.DECIMAL:
            value = self._to_number(raw, float)
            if value is not None:
                return value
            return self._drop(warnings, column, "is not a number")

        if field_type == FieldType.BOOLEAN:
            value = self._to_boolean(raw, entry.boolean_encoding or BooleanEncoding.YES_NO)
            if value is not None:
                return value
            return self._drop(warnings, column, "is not a recognised yes/no value")

        if field_type == FieldType.CHOICE:
            text = self._to_text(raw)
            return entry.choices.get(text.casefold(), text)

        return self._to_text(raw)

    @staticmethod
    def _drop(warnings: Optional[list], column: str, reason: str) -> Any:
        message = f"Column '{column}' {reason}; value ignored"
        logger.debug(message)
        if warnings is not None:
            warnings.append(message)
        return MISSING

    @staticmethod
    def _to_text(raw: Any) -> str:
        if isinstance(raw, float) and raw.is_integer():
            return str(int(raw))
        if isinstance(raw, datetime):
            return raw.date().isoformat() if raw.time() == datetime.min.time() else raw.isoformat()
        return str(raw).strip()

    @staticmethod
    def _to_number(raw: Any, kind: type) -> Optional[Union[int, float]]:
        if isinstance(raw, bool):
            return None
        try:
            number = float(raw) if isinstance(raw, (int, float)) else float(str(raw).strip())
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        return int(number) if kind is int else number

    @staticmethod
    def _to_boolean(raw: Any, encoding: BooleanEncoding) -> Optional[bool]:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)):
            if encoding == BooleanEncoding.ONE_TWO and raw in (1, 2):
                return raw == 1
            return None
        token = str(raw).strip().casefold()
        if token == encoding.true_token.casefold():
            return True
        if token == encoding.false_token.casefold():
            return False
        return None

    # ------------------------------------------------------------------
    # Export direction
    # ------------------------------------------------------------------

    def coerce_out(
        self,
        path: Union[FieldPath, MappingEntry],
        value: Any,
        layout: ExportLayout = ExportLayout.ANALYSIS,
    ) -> str:
        """Render a stored value for display; missing values render as ``NA``."""
        entry = self._entry(path)
        if is_blank(value):
            return MISSING_DISPLAY

        field_type = entry.field_type

        if field_type == FieldType.DATE:
            parsed = parse_date(value)
            return parsed.strftime(DISPLAY_DATE_FORMAT) if parsed else MISSING_DISPLAY

        if field_type == FieldType.BOOLEAN:
            encoding = entry.boolean_encoding or BooleanEncoding.YES_NO
            flag = value if isinstance(value, bool) else self._to_boolean(value, encoding)
            if flag is None:
                return str(value)
            return encoding.true_token if flag else encoding.false_token

        if field_type == FieldType.CHOICE:
            text = self._to_text(value)
            if layout == ExportLayout.TEMPLATE:
                return entry.template_codes.get(text, text)
            return text

        if field_type in (FieldType.INTEGER, FieldType.DECIMAL):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return _format_number(value)
            return str(value)

        if isinstance(value, float):
            return _format_number(value)
        if isinstance(value, datetime):
            return value.strftime(DISPLAY_DATE_FORMAT)
        return str(value)
