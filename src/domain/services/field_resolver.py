"""Field Path Resolver.

Maps spreadsheet header labels to document paths (import) and document paths
back to export labels (export), using the field mapping table.

Matching ignores case and runs of whitespace, so ``" PAEC   no "`` and
``"PAEC No"`` resolve to the same path. Unknown headers resolve to None and
are ignored by import.

Architecture:
    - Pure domain service built once from the static mapping table
    - Building the index fails loudly when two paths claim the same header,
      so mapping drift is caught at startup rather than during an import
"""

import logging
import re
from typing import Any, Optional, Union

from src.domain.field_mapping import (
    FIELD_MAPPINGS,
    MAPPING_VERSION,
    FieldSpec,
    MappingEntry,
    RepeatingFieldSpec,
)
from src.domain.paths import FieldPath
from src.domain.tabular import ExportLayout

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(header: Any) -> str:
    """Case- and whitespace-normalize a header cell."""
    if header is None:
        return ""
    return _WHITESPACE.sub(" ", str(header)).strip().casefold()


class FieldPathResolver:
    """Resolves headers to paths and paths to labels.

    Parameters:
        mappings: Mapping entries in export order (defaults to the baseline form table)

    Raises:
        ValueError: If two different paths claim the same normalized header,
            or the table does not declare exactly one natural key
    """

    def __init__(self, mappings: tuple = FIELD_MAPPINGS):
        self.mappings = tuple(mappings)
        self.version = MAPPING_VERSION
        self._by_header: dict[str, tuple[MappingEntry, FieldPath]] = {}
        self._by_canonical: dict[str, MappingEntry] = {}
        self._build_index()

    def _build_index(self) -> None:
        natural_keys = [entry for entry in self.mappings if entry.natural_key]
        if len(natural_keys) != 1:
            raise ValueError(f"Mapping table must declare exactly one natural key, found {len(natural_keys)}")
        self._natural_key = natural_keys[0]

        for entry in self.mappings:
            if entry.canonical in self._by_canonical:
                raise ValueError(f"Duplicate mapping for path '{entry.canonical}'")
            self._by_canonical[entry.canonical] = entry

            for header, path in entry.accepted_headers():
                key = normalize_header(header)
                existing = self._by_header.get(key)
                if existing is not None and existing[1] != path:
                    raise ValueError(
                        f"Header '{header}' maps to both '{existing[1]}' and '{path}'"
                    )
                self._by_header[key] = (entry, path)

        logger.debug(
            f"Field mapping v{self.version} indexed: {len(self.mappings)} entries, "
            f"{len(self._by_header)} accepted headers"
        )

    def resolve(self, header: Any) -> Optional[FieldPath]:
        """Return the document path for a header, or None if the header is unknown."""
        resolved = self.resolve_column(header)
        return resolved[1] if resolved else None

    def resolve_column(self, header: Any) -> Optional[tuple[MappingEntry, FieldPath]]:
        """Return the owning mapping entry and the concrete path for a header."""
        key = normalize_header(header)
        if not key:
            return None
        return self._by_header.get(key)

    def natural_key_path(self) -> FieldPath:
        return self._natural_key.path

    def natural_key_spec(self) -> FieldSpec:
        return self._natural_key

    def spec_for(self, path: Union[FieldPath, str]) -> Optional[MappingEntry]:
        """Look up the mapping entry owning a path (slot indices and keys are ignored)."""
        canonical = path.canonical if isinstance(path, FieldPath) else str(path)
        return self._by_canonical.get(canonical)

    def labels_for(
        self,
        path: Union[FieldPath, str],
        layout: ExportLayout = ExportLayout.ANALYSIS,
    ) -> Union[str, list[str], None]:
        """Export label(s) of a path.

        Returns a single label for scalar paths and the fixed, ordered label
        list for repeating paths. Returns None when the path is not exported
        in this layout.
        """
        entry = self.spec_for(path)
        if entry is None:
            return None
        labels = [label for label, _ in entry.columns(layout)]
        if isinstance(entry, RepeatingFieldSpec):
            return labels or None
        return labels[0] if labels else None

    def export_columns(self, layout: ExportLayout = ExportLayout.ANALYSIS) -> list[tuple[MappingEntry, str, FieldPath]]:
        """Ordered export columns (excluding the sequence column)."""
        columns = []
        for entry in self.mappings:
            for label, path in entry.columns(layout):
                columns.append((entry, label, path))
        return columns

    def accepted_headers(self) -> dict[str, str]:
        """Every accepted normalized header and the path it resolves to."""
        return {header: str(path) for header, (_, path) in sorted(self._by_header.items())}
