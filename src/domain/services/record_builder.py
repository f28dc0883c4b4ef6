"""Record Building Service.

Turns one spreadsheet row (header row + data row) into a typed ``Patch``: an
ordered set of (path, value) entries that can be applied to a nested
document.

Security Impact:
    - Only paths declared importable in the mapping table can be written
    - Record metadata (creator, center, timestamps) can never come from a sheet

Architecture:
    - Pure domain service; resolves headers with FieldPathResolver and types
      cells with ValueCoercer
    - A missing natural key rejects the row, never the whole sheet
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from src.domain.field_mapping import PRESENCE_FLAG, Section
from src.domain.paths import MISSING, FieldPath, set_value
from src.domain.ports import RowValidationError
from src.domain.services.field_resolver import FieldPathResolver
from src.domain.services.value_coercer import ValueCoercer, is_blank

logger = logging.getLogger(__name__)

NATURAL_KEY_REQUIRED = "PAEC No is required"


@dataclass
class Patch:
    """Typed set of path assignments produced from one row.

    Entries keep insertion order; setting a path twice keeps the last value.
    """

    entries: dict = field(default_factory=dict)
    natural_key: Optional[str] = None

    def set(self, path: FieldPath, value: Any) -> None:
        self.entries[path] = value

    def get(self, path: FieldPath, default: Any = MISSING) -> Any:
        return self.entries.get(path, default)

    def __contains__(self, path: FieldPath) -> bool:
        return path in self.entries

    def __iter__(self) -> Iterator[tuple[FieldPath, Any]]:
        return iter(self.entries.items())

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def paths(self) -> list[FieldPath]:
        return list(self.entries)

    def apply_to(self, document: dict) -> dict:
        """Return a deep copy of ``document`` with every entry applied.

        Intermediate dictionaries and lists are created on demand; keyed array
        entries are matched by their key field.
        """
        updated = copy.deepcopy(document) if document else {}
        for path, value in self.entries.items():
            set_value(updated, path, copy.deepcopy(value))
        return updated


class RecordBuilder:
    """Builds patches from flat rows.

    Parameters:
        resolver: Field path resolver
        coercer: Value coercer
    """

    def __init__(self, resolver: Optional[FieldPathResolver] = None, coercer: Optional[ValueCoercer] = None):
        self.resolver = resolver or FieldPathResolver()
        self.coercer = coercer or ValueCoercer(self.resolver)

    def build(self, header_row: list, data_row: list) -> tuple[Patch, list[str]]:
        """Build a patch from one data row.

        Parameters:
            header_row: Header cells exactly as read from the sheet
            data_row: Data cells (shorter rows are padded with blanks)

        Returns:
            Tuple of (patch, warnings)

        Raises:
            RowValidationError: If the natural key is blank or a date cell is invalid
        """
        warnings: list[str] = []
        cells = list(data_row) + [None] * max(0, len(header_row) - len(data_row))
        key_path = self.resolver.natural_key_path()

        patch = Patch()
        seen: dict[FieldPath, str] = {}

        for header, raw in zip(header_row, cells):
            resolved = self.resolver.resolve_column(header)
            if resolved is None:
                continue
            entry, path = resolved
            if not entry.importable:
                continue

            header_text = str(header).strip()
            if path in seen and not is_blank(raw):
                warnings.append(f"Column '{header_text}' repeats '{seen[path]}'; later value used")

            value = self.coercer.coerce_in(entry, raw, warnings, column=header_text)
            if value is MISSING:
                continue

            seen[path] = header_text
            patch.set(path, value)
            if entry.section.has_presence_flag:
                patch.set(FieldPath((entry.section.value, PRESENCE_FLAG)), True)

        key = patch.get(key_path)
        if key is MISSING or is_blank(key):
            raise RowValidationError(NATURAL_KEY_REQUIRED, column=self.resolver.natural_key_spec().label)
        patch.natural_key = str(key)

        return patch, warnings

    def build_document(self, header_row: list, data_row: list) -> dict:
        """Convenience: build a patch and apply it to an empty document."""
        patch, _ = self.build(header_row, data_row)
        return patch.apply_to({})
