"""Unit tests for ValueCoercer."""

from datetime import date, datetime

import numpy as np
import pandas as pd
import pytest

from src.domain.paths import MISSING, FieldPath
from src.domain.ports import CoercionError
from src.domain.services.value_coercer import MISSING_DISPLAY, is_blank, parse_date
from src.domain.tabular import ExportLayout

AGE = FieldPath.parse("patientDetails.age")
DOB = FieldPath.parse("patientDetails.dob")
NAME = FieldPath.parse("patientDetails.name")
SEX = FieldPath.parse("patientDetails.sex")
FATHER_AGE = FieldPath.parse("history.familyHistory.father.age")
BIRTH_WEIGHT = FieldPath.parse("history.birthHistory.birthWeight")
HYPOXIA = FieldPath.parse("history.birthHistory.birthHypoxia")
MRI_PERFORMED = FieldPath.parse("mri.performed")
ISOLATED_GHD = FieldPath.parse("diagnosis.isolatedGHD")
DIAGNOSIS_TYPE = FieldPath.parse("diagnosis.diagnosisType")
CELL1 = FieldPath.parse("patientDetails.contact.cell1")


class TestBlankAndDates:
    """Test suite for the blank check and the date parser."""

    @pytest.mark.parametrize("value", [None, MISSING, "", "   ", "NA", "n/a", float("nan"), pd.NaT, np.nan])
    def test_blank_values(self, value):
        assert is_blank(value)

    @pytest.mark.parametrize("value", [0, False, "0", "No", [], {}])
    def test_non_blank_values(self, value):
        assert not is_blank(value)

    @pytest.mark.parametrize("raw, expected", [
        ("2024-03-05", date(2024, 3, 5)),
        ("05/03/2024", date(2024, 3, 5)),
        ("05-03-2024", date(2024, 3, 5)),
        ("05.03.2024", date(2024, 3, 5)),
        ("2024-03-05T08:15:00", date(2024, 3, 5)),
        (datetime(2024, 3, 5, 8, 15), date(2024, 3, 5)),
        (date(2024, 3, 5), date(2024, 3, 5)),
        (45356, date(2024, 3, 5)),
    ])
    def test_parse_date(self, raw, expected):
        assert parse_date(raw) == expected

    @pytest.mark.parametrize("raw", ["tomorrow", "31/02/2024", True, -3, None])
    def test_parse_date_rejects(self, raw):
        assert parse_date(raw) is None


class TestCoerceIn:
    """Test suite for cell -> typed value conversion."""

    def test_blank_is_missing(self, coercer):
        assert coercer.coerce_in(NAME, "  ") is MISSING
        assert coercer.coerce_in(AGE, None) is MISSING

    def test_text_strips_and_drops_float_suffix(self, coercer):
        assert coercer.coerce_in(NAME, "  John Doe ") == "John Doe"
        assert coercer.coerce_in(CELL1, 9876543210.0) == "9876543210"

    def test_integer(self, coercer):
        assert coercer.coerce_in(AGE, "14") == 14
        assert coercer.coerce_in(AGE, 14.0) == 14
        assert coercer.coerce_in(AGE, " 9.0 ") == 9

    def test_integer_default_zero(self, coercer):
        """Test non-numeric input becomes 0 only where the path declares it."""
        warnings = []
        assert coercer.coerce_in(AGE, "fourteen", warnings) == 0
        assert warnings == []

    def test_integer_without_default_is_dropped(self, coercer):
        warnings = []
        assert coercer.coerce_in(FATHER_AGE, "forty", warnings, column="Father Age") is MISSING
        assert warnings == ["Column 'Father Age' is not a whole number; value ignored"]

    def test_decimal(self, coercer):
        assert coercer.coerce_in(BIRTH_WEIGHT, "2.75") == 2.75
        assert coercer.coerce_in(BIRTH_WEIGHT, 3) == 3.0
        assert coercer.coerce_in(BIRTH_WEIGHT, "heavy") is MISSING

    def test_date_to_iso(self, coercer):
        assert coercer.coerce_in(DOB, "03/02/2013") == "2013-02-03"
        assert coercer.coerce_in(DOB, datetime(2013, 2, 3)) == "2013-02-03"

    def test_invalid_date_raises(self, coercer):
        """Test an unparsable date rejects the row via CoercionError."""
        with pytest.raises(CoercionError, match="Invalid date in column 'DOB'") as exc_info:
            coercer.coerce_in(DOB, "someday", column="DOB")
        assert exc_info.value.column == "DOB"

    @pytest.mark.parametrize("raw, expected", [("Yes", True), ("no", False), (" YES ", True), (True, True)])
    def test_boolean_yes_no(self, coercer, raw, expected):
        assert coercer.coerce_in(HYPOXIA, raw) is expected

    @pytest.mark.parametrize("raw, expected", [("1", True), ("2", False), (1, True), (2.0, False)])
    def test_boolean_one_two(self, coercer, raw, expected):
        assert coercer.coerce_in(MRI_PERFORMED, raw) is expected

    def test_boolean_encoding_is_per_path(self, coercer):
        """Test tokens of another encoding are not accepted."""
        assert coercer.coerce_in(HYPOXIA, "1") is MISSING
        assert coercer.coerce_in(MRI_PERFORMED, "Yes") is MISSING
        assert coercer.coerce_in(ISOLATED_GHD, "true") is True
        assert coercer.coerce_in(ISOLATED_GHD, "Yes") is MISSING

    def test_choice(self, coercer):
        assert coercer.coerce_in(SEX, "Male") == "Male"
        assert coercer.coerce_in(SEX, "f") == "Female"
        assert coercer.coerce_in(SEX, 1.0) == "Male"
        assert coercer.coerce_in(SEX, "Other") == "Other"
        assert coercer.coerce_in(DIAGNOSIS_TYPE, "2") == "Acquired"

    def test_unknown_path(self, coercer):
        with pytest.raises(KeyError):
            coercer.coerce_in(FieldPath.parse("nowhere.field"), "x")


class TestCoerceOut:
    """Test suite for typed value -> display conversion."""

    @pytest.mark.parametrize("path", [NAME, AGE, DOB, HYPOXIA, SEX, BIRTH_WEIGHT])
    @pytest.mark.parametrize("value", [None, MISSING, "", "  ", float("nan")])
    def test_missing_renders_na(self, coercer, path, value):
        """Test every missing value renders as exactly 'NA'."""
        assert coercer.coerce_out(path, value) == MISSING_DISPLAY == "NA"

    def test_dates_display_day_first(self, coercer):
        assert coercer.coerce_out(DOB, "2013-02-03") == "03/02/2013"
        assert coercer.coerce_out(DOB, datetime(2024, 5, 17, 10, 0)) == "17/05/2024"

    def test_invalid_stored_date_renders_na(self, coercer):
        assert coercer.coerce_out(DOB, "garbage") == "NA"

    def test_booleans_use_path_encoding(self, coercer):
        assert coercer.coerce_out(HYPOXIA, True) == "Yes"
        assert coercer.coerce_out(HYPOXIA, False) == "No"
        assert coercer.coerce_out(MRI_PERFORMED, True) == "1"
        assert coercer.coerce_out(MRI_PERFORMED, False) == "2"
        assert coercer.coerce_out(ISOLATED_GHD, False) == "False"

    def test_numbers(self, coercer):
        assert coercer.coerce_out(AGE, 14) == "14"
        assert coercer.coerce_out(BIRTH_WEIGHT, 3.0) == "3"
        assert coercer.coerce_out(BIRTH_WEIGHT, 2.75) == "2.75"

    def test_choice_codes_in_template(self, coercer):
        assert coercer.coerce_out(SEX, "Female") == "Female"
        assert coercer.coerce_out(SEX, "Female", ExportLayout.TEMPLATE) == "2"
        assert coercer.coerce_out(DIAGNOSIS_TYPE, "Congenital", ExportLayout.TEMPLATE) == "1"
        assert coercer.coerce_out(SEX, "Other", ExportLayout.TEMPLATE) == "Other"
