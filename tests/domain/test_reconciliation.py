"""Unit tests for ReconciliationEngine."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from src.domain.cdc_models import ReconcileAction
from src.domain.paths import FieldPath
from src.domain.ports import PersistenceConflictError, RecordNotFoundError, RowValidationError
from src.domain.record import AccessLevel, Actor, PatientRecord, ScopeFilter
from src.domain.services.reconciliation import ReconciliationEngine
from src.domain.services.record_builder import Patch

NOW = datetime(2024, 5, 17, 10, 30, 0)
KEY = FieldPath.parse("patientDetails.paecNo")
NAME = FieldPath.parse("patientDetails.name")
UHID = FieldPath.parse("patientDetails.uhid")


def _patch(key="PAEC001", **values):
    patch = Patch(natural_key=key)
    patch.set(KEY, key)
    for dotted, value in values.items():
        patch.set(FieldPath.parse(dotted), value)
    return patch


@pytest.fixture
def engine(store, resolver, detector):
    return ReconciliationEngine(store, resolver, detector, clock=lambda: NOW)


class TestCreate:
    """Test suite for the Absent -> Created transition."""

    def test_creates_with_ownership(self, engine, store, actor):
        outcome = engine.reconcile(_patch(**{"patientDetails.name": "John Doe"}), actor)

        assert outcome.action == ReconcileAction.CREATED
        stored = store.find_by_natural_key("PAEC001", ScopeFilter.unrestricted())
        assert stored.record_id == outcome.record.record_id
        assert stored.created_by == "user-1"
        assert stored.center == "center-a"
        assert stored.created_at == NOW
        assert stored.updated_by == []
        assert stored.document["patientDetails"] == {"paecNo": "PAEC001", "name": "John Doe"}

    def test_visit_date_defaults_to_today(self, engine, actor):
        outcome = engine.reconcile(_patch(), actor)
        assert outcome.record.document["visitDate"] == "2024-05-17"

    def test_visit_date_from_patch_kept(self, engine, actor):
        outcome = engine.reconcile(_patch(visitDate="2024-01-09"), actor)
        assert outcome.record.document["visitDate"] == "2024-01-09"

    def test_created_diff_lists_patched_paths(self, engine, actor):
        outcome = engine.reconcile(_patch(**{"patientDetails.name": "John Doe"}), actor)
        assert set(outcome.diff) == {"patientDetails.paecNo", "patientDetails.name"}
        assert outcome.diff["patientDetails.name"].old_value is None

    def test_patch_without_key_rejected(self, engine, actor, store):
        with pytest.raises(RowValidationError):
            engine.reconcile(Patch(), actor)
        assert store.all_records() == []


class TestUpdate:
    """Test suite for the Present -> Updated transition."""

    def test_merge_keeps_untouched_paths(self, engine, store, actor):
        """Test paths absent from the patch are never nulled."""
        engine.reconcile(_patch(**{"patientDetails.name": "John Doe", "patientDetails.uhid": "U1"}), actor)
        outcome = engine.reconcile(_patch(**{"patientDetails.name": "John D."}), actor)

        assert outcome.action == ReconcileAction.UPDATED
        details = store.find_by_natural_key("PAEC001", ScopeFilter.unrestricted()).document["patientDetails"]
        assert details == {"paecNo": "PAEC001", "name": "John D.", "uhid": "U1"}
        assert list(outcome.diff) == ["patientDetails.name"]
        assert outcome.diff["patientDetails.name"].old_value == "John Doe"

    def test_update_keeps_ownership(self, engine, actor):
        engine.reconcile(_patch(), actor)
        other = Actor(user_id="user-2", center_id="center-b")
        outcome = engine.reconcile(_patch(**{"patientDetails.name": "X"}), other)
        assert outcome.record.created_by == "user-1"
        assert outcome.record.center == "center-a"

    def test_every_update_stamps_history(self, engine, actor):
        """Test a no-op update still appends a mutation history entry."""
        engine.reconcile(_patch(**{"patientDetails.name": "Same"}), actor)
        first = engine.reconcile(_patch(**{"patientDetails.name": "Same"}), actor)
        second = engine.reconcile(_patch(**{"patientDetails.name": "Same"}), actor)

        assert first.diff == {}
        assert second.diff == {}
        assert [s.user for s in second.record.updated_by] == ["user-1", "user-1"]
        assert second.record.updated_at == NOW

    def test_lookup_not_scoped_to_actor(self, engine, actor, store):
        """Test an import by another center updates instead of duplicating."""
        engine.reconcile(_patch(), actor)
        stranger = Actor(user_id="user-9", center_id="center-z", access_to=AccessLevel.OWN)
        outcome = engine.reconcile(_patch(**{"patientDetails.name": "Z"}), stranger)
        assert outcome.action == ReconcileAction.UPDATED
        assert len(store.all_records()) == 1


class TestSoftDeletePolicy:
    """Test suite for soft-deleted records and reconciliation."""

    def test_soft_deleted_key_creates_new_record(self, engine, store, actor):
        """Test a deleted record is invisible and never used as merge target."""
        created = engine.reconcile(_patch(**{"patientDetails.name": "Old"}), actor)
        engine.soft_delete("PAEC001", actor)

        outcome = engine.reconcile(_patch(**{"patientDetails.name": "New"}), actor)

        assert outcome.action == ReconcileAction.CREATED
        assert outcome.record.record_id != created.record.record_id
        records = store.all_records()
        assert len(records) == 2
        deleted = next(r for r in records if r.record_id == created.record.record_id)
        assert deleted.is_deleted.status is True
        assert deleted.is_deleted.deleted_by == "user-1"
        assert deleted.document["patientDetails"]["name"] == "Old"

    def test_soft_delete_respects_scope(self, engine, actor):
        engine.reconcile(_patch(), actor)
        outsider = Actor(user_id="user-2", center_id="center-b", access_to=AccessLevel.CENTER)
        with pytest.raises(RecordNotFoundError):
            engine.soft_delete("PAEC001", outsider)

    def test_soft_delete_unknown_key(self, engine, actor):
        with pytest.raises(RecordNotFoundError):
            engine.soft_delete("NOPE", actor)


class TestStorageFailures:
    """Test suite for collaborator failures."""

    def test_conflict_propagates(self, resolver, actor):
        storage = MagicMock()
        storage.find_by_natural_key.return_value = None
        storage.save.side_effect = PersistenceConflictError("PAEC No 'PAEC001' already exists", natural_key="PAEC001")
        engine = ReconciliationEngine(storage, resolver, clock=lambda: NOW)

        with pytest.raises(PersistenceConflictError):
            engine.reconcile(_patch(), actor)

    def test_lookup_is_unrestricted(self, resolver, actor):
        storage = MagicMock()
        storage.find_by_natural_key.return_value = PatientRecord(document={"patientDetails": {"paecNo": "PAEC001"}})
        storage.save.side_effect = lambda record: record
        engine = ReconciliationEngine(storage, resolver, clock=lambda: NOW)

        engine.reconcile(_patch(), actor)

        storage.find_by_natural_key.assert_called_once_with("PAEC001", ScopeFilter.unrestricted())
