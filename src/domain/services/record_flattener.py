"""Record Flattening Service.

Walks a stored patient record and produces one ordered flat row
(label -> display value) per record, in a fixed column order so that exports
can be diffed over time.

Repeating structures (siblings, stimulation test time points) are expanded
into their fixed, numbered columns. Entries that do not fit those columns are
not exported; the number of such entries is reported as ``truncated``.

Architecture:
    - Pure domain service; uses the resolver for column order and labels and
      the coercer for display formatting
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from src.domain.field_mapping import SEQUENCE_LABEL, RepeatingFieldSpec, Section
from src.domain.paths import MISSING, get_value
from src.domain.record import PatientRecord
from src.domain.services.field_resolver import FieldPathResolver
from src.domain.services.value_coercer import ValueCoercer
from src.domain.tabular import ExportLayout, Sheet

logger = logging.getLogger(__name__)


@dataclass
class FlattenedRow:
    """One exported row plus the count of array entries that did not fit."""

    values: "OrderedDict[str, Any]" = field(default_factory=OrderedDict)
    truncated: int = 0


class RecordFlattener:
    """Flattens nested records into ordered export rows.

    Parameters:
        resolver: Field path resolver (column order and labels)
        coercer: Value coercer (display formatting)
    """

    def __init__(self, resolver: Optional[FieldPathResolver] = None, coercer: Optional[ValueCoercer] = None):
        self.resolver = resolver or FieldPathResolver()
        self.coercer = coercer or ValueCoercer(self.resolver)

    def header(self, layout: ExportLayout = ExportLayout.ANALYSIS, excluded_labels: Iterable[str] = ()) -> list[str]:
        """Header row of an export, sequence column first."""
        excluded = set(excluded_labels)
        labels = [SEQUENCE_LABEL] + [label for _, label, _ in self.resolver.export_columns(layout)]
        return [label for label in labels if label not in excluded]

    def flatten(
        self,
        record: PatientRecord,
        layout: ExportLayout = ExportLayout.ANALYSIS,
        excluded_labels: Iterable[str] = (),
        sequence: Optional[int] = None,
    ) -> FlattenedRow:
        """Flatten one record.

        Parameters:
            record: Record to flatten
            layout: Column layout (analysis or template)
            excluded_labels: Labels to omit entirely
            sequence: Value of the ``S.NO`` column (``NA`` when None)

        Returns:
            FlattenedRow: Ordered label -> display value mapping and truncation count
        """
        excluded = set(excluded_labels)
        row = FlattenedRow()

        if SEQUENCE_LABEL not in excluded:
            row.values[SEQUENCE_LABEL] = sequence if sequence is not None else "NA"

        envelope = _envelope(record)
        for entry, label, path in self.resolver.export_columns(layout):
            if label in excluded:
                continue
            source = envelope if entry.section == Section.METADATA else record.document
            row.values[label] = self.coercer.coerce_out(entry, get_value(source, path), layout)

        for group in self._repeating_groups(layout):
            row.truncated += count_unexported(record.document, group)

        if row.truncated:
            logger.debug(f"Record {record.record_id}: {row.truncated} array entries not exported")
        return row

    def _repeating_groups(self, layout: ExportLayout) -> list[list[RepeatingFieldSpec]]:
        """Exported repeating fields grouped by the array they live in."""
        groups: dict[str, list[RepeatingFieldSpec]] = {}
        for entry in self.resolver.mappings:
            if isinstance(entry, RepeatingFieldSpec) and entry.columns(layout):
                groups.setdefault(str(entry.array_path), []).append(entry)
        return list(groups.values())

    def flatten_many(
        self,
        records: Iterable[PatientRecord],
        layout: ExportLayout = ExportLayout.ANALYSIS,
        excluded_labels: Iterable[str] = (),
    ) -> tuple[Sheet, int]:
        """Flatten records into a sheet, numbering rows from 1.

        Returns:
            Tuple of (sheet, total truncated array entries)
        """
        excluded = list(excluded_labels)
        headers = self.header(layout, excluded)
        sheet = Sheet(headers=headers, name="Template" if layout == ExportLayout.TEMPLATE else "Baseline Forms")
        truncated = 0
        for sequence, record in enumerate(records, start=1):
            flat = self.flatten(record, layout, excluded, sequence)
            sheet.rows.append([flat.values[label] for label in headers])
            truncated += flat.truncated
        return sheet, truncated


def _envelope(record: PatientRecord) -> dict:
    return {
        "createdBy": record.created_by,
        "center": record.center,
        "createdAt": record.created_at,
    }


def count_unexported(document: dict, entries: Iterable[RepeatingFieldSpec]) -> int:
    """Count array entries holding a value that no fixed column exports.

    ``entries`` are the repeating fields of one array; an entry is counted
    once however many of its fields fall outside the fixed slots.
    """
    entries = list(entries)
    if not entries:
        return 0
    items = get_value(document, entries[0].array_path)
    if items is MISSING or not isinstance(items, list):
        return 0

    return sum(
        1 for index, item in enumerate(items)
        if isinstance(item, dict) and any(_outside_slots(entry, index, item) for entry in entries)
    )


def _outside_slots(entry: RepeatingFieldSpec, index: int, item: dict) -> bool:
    if item.get(entry.item_field) is None:
        return False
    if entry.is_keyed:
        return item.get(entry.key_field) not in entry.keys
    return index >= entry.cardinality
