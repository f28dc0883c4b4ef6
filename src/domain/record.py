"""Patient Record Model.

This module defines the stored patient record: a nested clinical document
(the baseline form) wrapped with ownership, mutation history and the
soft-delete marker.

Security Impact:
    - Records are never physically removed; deletion only sets the marker
    - Ownership fields (creator, center) drive export access scoping
    - The mutation history is append-only

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - The document itself is an opaque nested dict; its allowed paths are
      declared by the field mapping table, not by this model
"""

import re
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NATURAL_KEY_SECTION = "patientDetails"
NATURAL_KEY_FIELD = "paecNo"


class SoftDelete(BaseModel):
    """Soft-delete marker (status, actor, timestamp)."""

    status: bool = False
    deleted_by: Optional[str] = None
    deleted_time: Optional[datetime] = None


class UpdateStamp(BaseModel):
    """One entry of a record's mutation history."""

    model_config = ConfigDict(frozen=True)

    user: str
    updated_at: datetime


class PatientRecord(BaseModel):
    """Stored patient document with ownership and lifecycle metadata.

    Parameters:
        record_id: Internal identifier, generated on creation
        document: Nested clinical document (patientDetails, history, ...)
        created_by: Identifier of the creating actor
        center: Identifier of the owning organizational unit
        created_at: Creation timestamp
        updated_at: Timestamp of the last mutation
        updated_by: Ordered mutation history (actor + timestamp)
        is_deleted: Soft-delete marker
    """

    record_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    document: dict[str, Any] = Field(default_factory=dict)
    created_by: Optional[str] = None
    center: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    updated_by: list[UpdateStamp] = Field(default_factory=list)
    is_deleted: SoftDelete = Field(default_factory=SoftDelete)

    @property
    def natural_key(self) -> Optional[str]:
        details = self.document.get(NATURAL_KEY_SECTION) or {}
        key = details.get(NATURAL_KEY_FIELD)
        return str(key) if key is not None else None

    @property
    def active(self) -> bool:
        return not self.is_deleted.status

    def clone(self) -> "PatientRecord":
        """Deep copy, so stores never hand out their internal state."""
        return self.model_copy(deep=True)


class AccessLevel(str, Enum):
    """Export visibility granted to an actor."""

    OWN = "own"
    CENTER = "center"
    ALL = "all"


class Actor(BaseModel):
    """Authenticated caller on whose behalf a run executes."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    center_id: Optional[str] = None
    access_to: AccessLevel = AccessLevel.ALL

    @property
    def scope(self) -> "ScopeFilter":
        return ScopeFilter.for_actor(self)


class ScopeFilter(BaseModel):
    """Restriction of visible records by ownership.

    An empty filter (both fields None) sees every record.
    """

    model_config = ConfigDict(frozen=True)

    created_by: Optional[str] = None
    center: Optional[str] = None

    @classmethod
    def unrestricted(cls) -> "ScopeFilter":
        return cls()

    @classmethod
    def for_actor(cls, actor: Actor) -> "ScopeFilter":
        if actor.access_to == AccessLevel.OWN:
            return cls(created_by=actor.user_id)
        if actor.access_to == AccessLevel.CENTER:
            if actor.center_id is None:
                raise ValueError("Center-scoped actor has no center")
            return cls(center=actor.center_id)
        return cls()

    def allows(self, record: PatientRecord) -> bool:
        if self.created_by is not None and record.created_by != self.created_by:
            return False
        if self.center is not None and record.center != self.center:
            return False
        return True


class DateField(str, Enum):
    """Which timestamp a date-range filter applies to."""

    VISIT_DATE = "visitDate"
    CREATED_AT = "createdAt"


class ExportQuery(BaseModel):
    """Export filter criteria.

    Text filters are case-insensitive substring matches. ``paec_nos`` is an
    exact-match list and takes precedence over ``paec_no``.
    """

    paec_no: Optional[str] = None
    paec_nos: list[str] = Field(default_factory=list)
    patient_name: Optional[str] = None
    uhid: Optional[str] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    date_field: DateField = DateField.VISIT_DATE

    @field_validator("paec_no", "patient_name", "uhid", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    def criteria(self) -> dict:
        """Filter values as a JSON-serializable dict (for audit details)."""
        return {
            "paecNo": self.paec_nos or self.paec_no,
            "patientName": self.patient_name,
            "uhid": self.uhid,
            "fromDate": self.from_date.isoformat() if self.from_date else None,
            "toDate": self.to_date.isoformat() if self.to_date else None,
        }

    def matches(self, record: PatientRecord) -> bool:
        details = record.document.get(NATURAL_KEY_SECTION) or {}

        if self.paec_nos:
            if record.natural_key not in self.paec_nos:
                return False
        elif self.paec_no and not _contains(details.get("paecNo"), self.paec_no):
            return False

        if self.patient_name and not _contains(details.get("name"), self.patient_name):
            return False
        if self.uhid and not _contains(details.get("uhid"), self.uhid):
            return False

        if self.from_date or self.to_date:
            when = self.record_date(record)
            if when is None:
                return False
            if self.from_date and when < self.from_date:
                return False
            if self.to_date and when > self.to_date:
                return False
        return True

    def record_date(self, record: PatientRecord) -> Optional[date]:
        """Date the range filter compares against (None when unset or unparseable)."""
        if self.date_field == DateField.CREATED_AT:
            return record.created_at.date()
        raw = record.document.get("visitDate")
        if not raw:
            return None
        try:
            return date.fromisoformat(str(raw)[:10])
        except ValueError:
            return None


def _contains(value: Any, needle: str) -> bool:
    if value is None:
        return False
    return re.search(re.escape(needle), str(value), re.IGNORECASE) is not None
