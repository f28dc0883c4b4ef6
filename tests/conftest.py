"""Shared fixtures for the PAEC tabular sync test suite."""

import logging
from datetime import datetime

import pytest

from src.adapters.storage import InMemoryAdapter
from src.domain.record import AccessLevel, Actor, PatientRecord
from src.domain.services import (
    ChangeDetector,
    FieldPathResolver,
    RecordBuilder,
    RecordFlattener,
    ValueCoercer,
)
from src.domain.tabular import Sheet
from src.infrastructure.audit import ChangeAuditLogger
from src.main import ImportExportOrchestrator

FIXED_NOW = datetime(2024, 5, 17, 10, 30, 45, 123456)


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current.replace(second=(self.current.second + 1) % 60)
        return value


@pytest.fixture
def resolver():
    return FieldPathResolver()


@pytest.fixture
def coercer(resolver):
    return ValueCoercer(resolver)


@pytest.fixture
def builder(resolver, coercer):
    return RecordBuilder(resolver, coercer)


@pytest.fixture
def flattener(resolver, coercer):
    return RecordFlattener(resolver, coercer)


@pytest.fixture
def detector(resolver):
    return ChangeDetector(resolver)


@pytest.fixture
def store():
    return InMemoryAdapter()


@pytest.fixture
def audit(store):
    return ChangeAuditLogger(storage=store)


@pytest.fixture
def actor():
    return Actor(user_id="user-1", center_id="center-a", access_to=AccessLevel.ALL)


@pytest.fixture
def orchestrator(store, audit, resolver):
    return ImportExportOrchestrator(storage=store, audit=audit, resolver=resolver, clock=FakeClock())


@pytest.fixture
def basic_sheet():
    """The four-column sheet used throughout the scenarios."""
    return Sheet(
        headers=["PAEC No", "PATIENT NAME", "SEX", "AGE"],
        rows=[["PAEC001", "John Doe", "Male", "14"]],
    )


@pytest.fixture
def full_record():
    """A record touching every section, both repeating structures and metadata."""
    document = {
        "patientDetails": {
            "paecNo": "PAEC100",
            "name": "Asha Verma",
            "uhid": "UHID9001",
            "sex": "Female",
            "age": 11,
            "dob": "2013-02-03",
            "address": {"street": "12 Ring Road", "city": "Delhi", "state": "Delhi"},
            "contact": {"cell1": "9810000001"},
        },
        "visitDate": "2024-04-02",
        "history": {
            "isFilled": True,
            "birthHistory": {"birthWeight": 2.8, "birthHypoxia": False},
            "familyHistory": {
                "father": {"height": 170.5},
                "mother": {"height": 155.0},
                "mph": 156.25,
                "siblings": [
                    {"relation": "Brother", "age": 14, "height": 160.5, "weight": 48.0},
                    {"relation": "Sister", "age": 8, "height": 121.0},
                ],
                "consanguinity": {"present": True, "degree": "Second"},
            },
        },
        "examination": {
            "isFilled": True,
            "measurements": {"height": 128.4, "heightSds": -2.6, "weight": 24.5},
        },
        "endocrineWorkup": {
            "isFilled": True,
            "tests": {"igf1": 54.0},
            "ghStimulationTest": {
                "date": "2024-03-28",
                "results": [
                    {"time": "0 min", "clonidineGH": 1.2, "glucagonGH": 0.8},
                    {"time": "30 min", "clonidineGH": 3.4},
                    {"time": "180 min", "glucagonGH": 4.1},
                ],
            },
        },
        "mri": {"isFilled": True, "performed": True, "findings": {"ectopicPosteriorPituitary": True}},
        "treatment": {"isFilled": True, "hypothyroidism": {"present": False}},
        "diagnosis": {
            "isFilled": True,
            "diagnosisType": "Congenital",
            "finalDiagnosis": "Isolated GHD",
            "isolatedGHD": True,
        },
        "remarks": {"isFilled": True, "text": "Review in 3 months"},
    }
    return PatientRecord(
        document=document,
        created_by="user-1",
        center="center-a",
        created_at=datetime(2024, 4, 2, 9, 0, 0),
        updated_at=datetime(2024, 4, 2, 9, 0, 0),
    )


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
