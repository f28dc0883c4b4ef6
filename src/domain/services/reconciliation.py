"""Reconciliation Engine.

Decides, per natural key, whether an incoming patch creates a new record or
updates the existing one, merges the patch without clobbering unrelated
nested data, and computes the change set for the audit log.

State per natural key:
    Absent  -> Created
    Present -> Updated

Policies:
    - Lookup only sees records whose soft-delete marker is unset. A patch for
      a soft-deleted key therefore creates a new, independent record.
    - Lookup is not scoped to the actor: an import matches records of every
      center.
    - Updates are path-scoped: paths absent from the patch keep their value.
    - Every update appends one entry to the record's mutation history, even
      when nothing changed.

Security Impact:
    - Ownership (creator, center) is set from the authenticated actor only
    - Sensitive paths are diffed as redaction placeholders

Architecture:
    - Domain service depending only on the StoragePort abstraction
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from src.domain.cdc_models import ReconcileAction, ReconcileOutcome
from src.domain.ports import RecordNotFoundError, RowValidationError, StoragePort
from src.domain.record import Actor, PatientRecord, ScopeFilter, UpdateStamp
from src.domain.services.change_detector import ChangeDetector
from src.domain.services.field_resolver import FieldPathResolver
from src.domain.services.record_builder import NATURAL_KEY_REQUIRED, Patch

logger = logging.getLogger(__name__)

VISIT_DATE_FIELD = "visitDate"


class ReconciliationEngine:
    """Create-or-update decision and merge for one patch at a time.

    Parameters:
        storage: Document store
        resolver: Field path resolver (shared with the change detector)
        detector: Change detector used for audit diffs
        clock: Source of the current time (injectable for tests)
    """

    def __init__(
        self,
        storage: StoragePort,
        resolver: Optional[FieldPathResolver] = None,
        detector: Optional[ChangeDetector] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.resolver = resolver or FieldPathResolver()
        self.detector = detector or ChangeDetector(self.resolver)
        self.clock = clock

    def reconcile(self, patch: Patch, actor: Actor) -> ReconcileOutcome:
        """Apply a patch to the record holding its natural key, creating it if absent.

        Parameters:
            patch: Patch built from one row
            actor: Actor performing the import

        Returns:
            ReconcileOutcome: Action taken, the saved record and the change set

        Raises:
            RowValidationError: If the patch carries no natural key
            PersistenceConflictError: If the store rejects the save on uniqueness
            StorageError: On any other storage failure
        """
        if not patch.natural_key:
            raise RowValidationError(NATURAL_KEY_REQUIRED)

        existing = self.storage.find_by_natural_key(patch.natural_key, ScopeFilter.unrestricted())
        now = self.clock()

        if existing is None:
            return self._create(patch, actor, now)
        return self._update(existing, patch, actor, now)

    def _create(self, patch: Patch, actor: Actor, now: datetime) -> ReconcileOutcome:
        document = patch.apply_to({})
        if document.get(VISIT_DATE_FIELD) is None:
            document[VISIT_DATE_FIELD] = now.date().isoformat()

        record = PatientRecord(
            document=document,
            created_by=actor.user_id,
            center=actor.center_id,
            created_at=now,
            updated_at=now,
        )
        diff = self.detector.diff_created(patch)
        saved = self.storage.save(record)

        logger.debug(f"Created record {saved.record_id} with {len(diff)} field(s)")
        return ReconcileOutcome(action=ReconcileAction.CREATED, record=saved, diff=diff)

    def _update(self, existing: PatientRecord, patch: Patch, actor: Actor, now: datetime) -> ReconcileOutcome:
        diff = self.detector.diff(existing.document, patch)

        updated = existing.clone()
        updated.document = patch.apply_to(existing.document)
        updated.updated_at = now
        updated.updated_by.append(UpdateStamp(user=actor.user_id, updated_at=now))
        saved = self.storage.save(updated)

        logger.debug(f"Updated record {saved.record_id}: {len(diff)} field(s) changed")
        return ReconcileOutcome(action=ReconcileAction.UPDATED, record=saved, diff=diff)

    def soft_delete(self, natural_key: str, actor: Actor) -> PatientRecord:
        """Set the soft-delete marker on the active record holding ``natural_key``.

        The actor's access scope applies: a record outside it is reported as
        not found.

        Raises:
            RecordNotFoundError: If no visible active record holds the key
        """
        existing = self.storage.find_by_natural_key(natural_key, actor.scope)
        if existing is None:
            raise RecordNotFoundError(f"No active record for PAEC No '{natural_key}'", operation="soft_delete")
        return self.storage.soft_delete(existing.record_id, actor)
