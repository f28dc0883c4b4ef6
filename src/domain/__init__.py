"""Domain layer for PAEC Tabular Sync.

This module contains the patient record model, the field mapping table and
the ports through which the import/export engine reaches storage and audit.
All domain models are pure Python with no external dependencies beyond Pydantic
(and pandas for missing-value detection).
"""

from .record import (
    AccessLevel,
    Actor,
    ExportQuery,
    PatientRecord,
    ScopeFilter,
)
from .tabular import ExportFile, ExportLayout, Sheet

__all__ = [
    "AccessLevel",
    "Actor",
    "ExportFile",
    "ExportLayout",
    "ExportQuery",
    "PatientRecord",
    "ScopeFilter",
    "Sheet",
]
