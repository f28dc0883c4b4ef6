"""In-Memory Storage Adapter.

This adapter implements the StoragePort contract with plain dictionaries. It
is the default store for single-run CLI use and for tests.

Security Impact:
    - Records are deep-copied on the way in and out; callers can never mutate
      stored state without going through ``save``
    - Soft-deleted records are kept, never removed

Architecture:
    - Implements StoragePort (Hexagonal Architecture)
    - Natural-key uniqueness among active records is enforced on save
"""

import logging
from datetime import datetime
from typing import Optional

from src.domain.cdc_models import AuditEntry
from src.domain.ports import (
    PersistenceConflictError,
    RecordNotFoundError,
    Result,
    StoragePort,
)
from src.domain.record import Actor, ExportQuery, PatientRecord, ScopeFilter, SoftDelete

logger = logging.getLogger(__name__)


class InMemoryAdapter(StoragePort):
    """Dictionary-backed document store.

    Example Usage:
        ```python
        store = InMemoryAdapter()
        store.save(record)
        store.find_by_natural_key("PAEC001", ScopeFilter.unrestricted())
        ```
    """

    def __init__(self):
        self._records: dict[str, PatientRecord] = {}
        self._audit: list[AuditEntry] = []

    def find_by_natural_key(self, key: str, scope: ScopeFilter) -> Optional[PatientRecord]:
        for record in self._records.values():
            if record.active and record.natural_key == key and scope.allows(record):
                return record.clone()
        return None

    def find_many(self, query: ExportQuery, scope: ScopeFilter) -> list[PatientRecord]:
        return [
            record.clone()
            for record in self._records.values()
            if record.active and scope.allows(record) and query.matches(record)
        ]

    def save(self, record: PatientRecord) -> PatientRecord:
        if record.active and record.natural_key is not None:
            for other in self._records.values():
                if other.record_id != record.record_id and other.active and other.natural_key == record.natural_key:
                    raise PersistenceConflictError(
                        f"PAEC No '{record.natural_key}' already exists",
                        natural_key=record.natural_key,
                    )
        self._records[record.record_id] = record.clone()
        logger.debug(f"Saved record {record.record_id}")
        return record.clone()

    def soft_delete(self, record_id: str, actor: Actor) -> PatientRecord:
        record = self._records.get(record_id)
        if record is None or not record.active:
            raise RecordNotFoundError(f"No active record with id {record_id}", operation="soft_delete")
        record.is_deleted = SoftDelete(status=True, deleted_by=actor.user_id, deleted_time=datetime.now())
        logger.debug(f"Soft-deleted record {record_id}")
        return record.clone()

    def append_audit(self, entry: AuditEntry) -> Result[str]:
        self._audit.append(entry)
        return Result.success_result(entry.audit_id)

    def list_audit(self) -> list[AuditEntry]:
        return list(self._audit)

    def all_records(self, include_deleted: bool = True) -> list[PatientRecord]:
        """Every stored record (soft-deleted included by default)."""
        return [r.clone() for r in self._records.values() if include_deleted or r.active]
