"""Domain Services.

This package contains domain services that implement the import/export
reconciliation logic without infrastructure dependencies.
"""

from src.domain.services.change_detector import ChangeDetector
from src.domain.services.field_resolver import FieldPathResolver, normalize_header
from src.domain.services.reconciliation import ReconciliationEngine
from src.domain.services.record_builder import Patch, RecordBuilder
from src.domain.services.record_flattener import FlattenedRow, RecordFlattener
from src.domain.services.value_coercer import MISSING_DISPLAY, ValueCoercer

__all__ = [
    'ChangeDetector',
    'FieldPathResolver',
    'FlattenedRow',
    'MISSING_DISPLAY',
    'Patch',
    'RecordBuilder',
    'RecordFlattener',
    'ReconciliationEngine',
    'ValueCoercer',
    'normalize_header',
]
