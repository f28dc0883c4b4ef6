"""Change Audit Logger.

This module provides the audit sink of the import/export engine. Each entry
records who did what (created, updated, deleted, exported, imported), on
which module, with the field-level change set where one exists.

Entries are buffered in memory and, when a store is attached, persisted
through ``StoragePort.append_audit``. A failing append is logged and never
interrupts the run that produced the entry.

Security Impact:
    - Creates an append-only audit trail of record mutations and exports
    - Diffs of sensitive paths arrive already redacted from ChangeDetector
    - Audit failures are logged with the action only, never the diff values

Architecture:
    - Infrastructure layer component implementing AuditSinkPort
    - Called by the orchestrator once per record mutation and once per run
"""

import logging
from typing import List, Optional

from src.domain.cdc_models import AuditAction, AuditEntry, FieldChange
from src.domain.ports import AuditSinkPort, StoragePort

logger = logging.getLogger(__name__)


class ChangeAuditLogger(AuditSinkPort):
    """Audit sink buffering entries and forwarding them to storage.

    Parameters:
        storage: Optional store receiving every entry via ``append_audit``

    Example Usage:
        ```python
        audit = ChangeAuditLogger(storage=store)
        audit.set_run_context(run_id="imp_123", source="baseline.xlsx")
        audit.append(
            actor="user-1",
            action=AuditAction.UPDATED,
            module="baselineform",
            diff={"patientDetails.name": FieldChange(old_value="A", new_value="B")},
        )
        audit.get_log_count()
        ```
    """

    def __init__(self, storage: Optional[StoragePort] = None):
        """Initialize change audit logger."""
        self.storage = storage
        self._logs: List[AuditEntry] = []
        self._run_id: Optional[str] = None
        self._source: Optional[str] = None
        self.failed_appends = 0

    def set_run_context(self, run_id: Optional[str] = None, source: Optional[str] = None) -> None:
        """Set run context, added to the details of subsequent entries.

        Parameters:
            run_id: Identifier of the current import/export run
            source: Source file or destination identifier
        """
        self._run_id = run_id
        self._source = source

    def append(
        self,
        actor: str,
        action: AuditAction,
        module: str,
        diff: Optional[dict[str, FieldChange]] = None,
        details: Optional[dict] = None,
    ) -> AuditEntry:
        """Record one audit entry.

        Parameters:
            actor: Identifier of the acting user
            action: Audit action
            module: Subject module (e.g. 'baselineform', 'excel_import')
            diff: Field-level change set (path -> FieldChange)
            details: Additional context (counts, filters, record key)

        Returns:
            AuditEntry: The buffered entry (returned even if persistence failed)
        """
        merged_details = dict(details or {})
        if self._run_id:
            merged_details.setdefault("run_id", self._run_id)
        if self._source:
            merged_details.setdefault("source", self._source)

        entry = AuditEntry(
            actor=actor,
            action=action,
            module=module,
            field_diff=dict(diff or {}),
            details=merged_details,
        )
        self._logs.append(entry)

        if self.storage is not None:
            try:
                result = self.storage.append_audit(entry)
                if result.is_failure():
                    self.failed_appends += 1
                    logger.error(f"Audit entry not persisted ({action.value}): {result.error}")
            except Exception as e:
                self.failed_appends += 1
                logger.error(f"Audit sink failed for {action.value}: {str(e)}", exc_info=True)

        logger.debug(f"Logged audit entry: {action.value} on {module} ({len(entry.field_diff)} field(s))")
        return entry

    def get_logs(self) -> List[AuditEntry]:
        """Get all buffered audit entries."""
        return self._logs.copy()

    def clear_logs(self) -> None:
        """Clear the in-memory buffer (persisted entries are unaffected)."""
        self._logs.clear()
        logger.debug("Cleared change audit logs")

    def get_log_count(self) -> int:
        return len(self._logs)

    def has_logs(self) -> bool:
        return len(self._logs) > 0
