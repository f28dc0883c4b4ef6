"""Change Data Capture (CDC) Models.

This module defines models for tracking field-level changes made by the
reconciliation engine, the audit entries derived from them, and the summary
of an import run.

Security Impact:
    - Field diffs of sensitive paths carry a placeholder, never the value
    - Audit entries are immutable (append-only) for compliance

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Follows Hexagonal Architecture: Domain Core is isolated from Adapters
"""

import json
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.domain.record import PatientRecord

REDACTED_PLACEHOLDER = "[REDACTED]"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    EXPORTED = "exported"
    IMPORTED = "imported"


class ReconcileAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class FieldChange(BaseModel):
    """Previous and new value of one document path.

    Parameters:
        old_value: Value before the change (None when the path was absent)
        new_value: Value after the change
    """

    model_config = ConfigDict(frozen=True)

    old_value: Optional[Any] = None
    new_value: Optional[Any] = None

    @classmethod
    def redacted(cls, had_old_value: bool) -> "FieldChange":
        return cls(
            old_value=REDACTED_PLACEHOLDER if had_old_value else None,
            new_value=REDACTED_PLACEHOLDER,
        )

    def to_audit_dict(self) -> dict:
        return {
            "from": _serialize_value(self.old_value),
            "to": _serialize_value(self.new_value),
        }


FieldDiff = dict[str, FieldChange]


class AuditEntry(BaseModel):
    """Single append-only audit log entry.

    Parameters:
        actor: Identifier of the user who performed the action
        action: What happened (created, updated, deleted, exported, imported)
        module: Subject module (e.g. ``baselineform``)
        field_diff: Path -> change, for record mutations
        details: Free-form context (counts, filters, record key)
        created_at: Timestamp of the entry
    """

    model_config = ConfigDict(frozen=True)

    audit_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    actor: str
    action: AuditAction
    module: str
    field_diff: dict[str, FieldChange] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    def to_audit_dict(self) -> dict:
        """Serialize for persistence (JSON-safe values only)."""
        return {
            "audit_id": self.audit_id,
            "actor": self.actor,
            "action": self.action.value,
            "module": self.module,
            "field_diff": {path: change.to_audit_dict() for path, change in self.field_diff.items()},
            "details": json.loads(json.dumps(self.details, default=_json_default)),
            "created_at": self.created_at,
        }


class ReconcileOutcome(BaseModel):
    """What the reconciliation engine did with one patch."""

    action: ReconcileAction
    record: PatientRecord
    diff: dict[str, FieldChange] = Field(default_factory=dict)


class RowError(BaseModel):
    """Error attached to one sheet row (1-based, header is row 1)."""

    model_config = ConfigDict(frozen=True)

    row: int
    message: str


class RowOutcome(BaseModel):
    """Per-row result of an import run, kept for callers and reporting."""

    row: int
    natural_key: str
    action: ReconcileAction
    diff: dict[str, FieldChange] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)


class ImportSummary(BaseModel):
    """Result of an import run.

    Parameters:
        total_rows: Non-blank data rows seen
        created: Records created
        updated: Records updated
        errors: Row-level errors, in sheet order
        outcomes: Per-row outcomes of successful rows
    """

    total_rows: int = 0
    created: int = 0
    updated: int = 0
    errors: list[RowError] = Field(default_factory=list)
    outcomes: list[RowOutcome] = Field(default_factory=list)

    @property
    def fields_changed(self) -> int:
        return sum(len(outcome.diff) for outcome in self.outcomes)

    def to_dict(self) -> dict:
        """JSON summary handed back to callers."""
        return {
            "totalRows": self.total_rows,
            "created": self.created,
            "updated": self.updated,
            "errors": [{"row": e.row, "message": e.message} for e in self.errors],
        }


def _serialize_value(value: Any) -> Any:
    """Make a diff value JSON-safe for audit storage."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, dict)):
        try:
            return json.loads(json.dumps(value, default=_json_default))
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)
