"""Change Detection Service.

This service computes field-level change sets between a stored patient
document and an incoming patch, for the audit log.

Only paths present in the patch are compared; paths the patch does not touch
can never appear in a diff. Unchanged values produce no entry.

Security Impact:
    - Values of sensitive paths (contact details, address) are replaced by a
      redaction placeholder before they leave this service
    - Change sets are logged for audit trail by the caller

Architecture:
    - Pure domain service with no infrastructure dependencies
    - Uses pandas for NaN/None-aware value comparison
    - Returns domain models (FieldChange) for use by the reconciliation engine
"""

import logging
from typing import Any, Optional

import pandas as pd

from src.domain.cdc_models import FieldChange, FieldDiff
from src.domain.paths import MISSING, FieldPath, get_value
from src.domain.services.field_resolver import FieldPathResolver

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Service for detecting field-level changes between a document and a patch.

    Parameters:
        resolver: Resolver used to look up path sensitivity
    """

    def __init__(self, resolver: Optional[FieldPathResolver] = None):
        self.resolver = resolver or FieldPathResolver()

    def is_sensitive(self, path: FieldPath) -> bool:
        entry = self.resolver.spec_for(path)
        return bool(entry and entry.sensitive)

    def diff(self, existing: dict, patch) -> FieldDiff:
        """Compare the patch paths against their prior values.

        Parameters:
            existing: Stored document (before the patch is applied)
            patch: Patch about to be applied (iterable of (path, value))

        Returns:
            Mapping of path string -> FieldChange, in patch order
        """
        changes: FieldDiff = {}
        for path, new_value in patch:
            old_value = get_value(existing, path)
            had_old = old_value is not MISSING and old_value is not None
            old_value = old_value if had_old else None

            if self.values_equal(old_value, new_value):
                continue

            if self.is_sensitive(path):
                changes[str(path)] = FieldChange.redacted(had_old)
            else:
                changes[str(path)] = FieldChange(old_value=old_value, new_value=new_value)

        logger.debug(f"Detected {len(changes)} changed path(s) out of {len(patch)} patched")
        return changes

    def diff_created(self, patch) -> FieldDiff:
        """Change set of a newly created record: every patched path from None."""
        return self.diff({}, patch)

    @staticmethod
    def values_equal(old: Any, new: Any) -> bool:
        """Compare two values accounting for NaN, None, arrays, etc.

        Parameters:
            old: Old value
            new: New value

        Returns:
            True if values are equal, False otherwise
        """
        # Handle arrays/lists first (before NaN check, as pd.isna() doesn't work on lists)
        if isinstance(old, (list, tuple)) and isinstance(new, (list, tuple)):
            return list(old) == list(new)
        if isinstance(old, (list, tuple)) or isinstance(new, (list, tuple)):
            return False

        if isinstance(old, dict) and isinstance(new, dict):
            return old == new
        if isinstance(old, dict) or isinstance(new, dict):
            return False

        # Booleans must not compare equal to 1/0
        if isinstance(old, bool) != isinstance(new, bool):
            return False

        try:
            if pd.isna(old) and pd.isna(new):
                return True
            if pd.isna(old) or pd.isna(new):
                return False
        except (ValueError, TypeError):
            pass

        return old == new
