"""Unit tests for RecordFlattener."""

from src.domain.field_mapping import SEQUENCE_LABEL, FIELD_MAPPINGS, RepeatingFieldSpec
from src.domain.record import PatientRecord
from src.domain.services.record_flattener import count_unexported
from src.domain.tabular import ExportLayout


def _sibling_spec(item_field):
    return next(
        e for e in FIELD_MAPPINGS
        if isinstance(e, RepeatingFieldSpec) and e.item_field == item_field and "siblings" in str(e.array_path)
    )


class TestFlatten:
    """Test suite for flattening a single record."""

    def test_sequence_column_first(self, flattener, full_record):
        row = flattener.flatten(full_record, sequence=7)
        assert list(row.values)[0] == SEQUENCE_LABEL
        assert row.values[SEQUENCE_LABEL] == 7

    def test_column_order_matches_header(self, flattener, full_record):
        """Test the row keys follow the fixed header order."""
        row = flattener.flatten(full_record, sequence=1)
        assert list(row.values) == flattener.header()

    def test_identity_values(self, flattener, full_record):
        values = flattener.flatten(full_record).values
        assert values["PAEC No"] == "PAEC100"
        assert values["Patient Name"] == "Asha Verma"
        assert values["Sex"] == "Female"
        assert values["Age"] == "11"
        assert values["DOB"] == "03/02/2013"
        assert values["Visit Date"] == "02/04/2024"

    def test_missing_values_are_na(self, flattener, full_record):
        values = flattener.flatten(full_record).values
        assert values["Phone 2"] == "NA"
        assert values["Thyroid"] == "NA"
        assert values[SEQUENCE_LABEL] == "NA"

    def test_booleans_and_numbers(self, flattener, full_record):
        values = flattener.flatten(full_record).values
        assert values["Birth Hypoxia"] == "No"
        assert values["Consanguinity"] == "Yes"
        assert values["MRI Performed"] == "1"
        assert values["Hypothyroidism Present"] == "2"
        assert values["Isolated GHD"] == "True"
        assert values["Mother Height"] == "155"
        assert values["MPH"] == "156.25"

    def test_siblings_expanded(self, flattener, full_record):
        """Test sibling entries fill the numbered columns in order."""
        values = flattener.flatten(full_record).values
        assert [values[f"SiblingAge_{n}"] for n in range(1, 5)] == ["14", "8", "NA", "NA"]
        assert [values[f"SiblingRelation_{n}"] for n in range(1, 5)] == ["Brother", "Sister", "NA", "NA"]
        assert values["SiblingWeight_2"] == "NA"

    def test_time_points_matched_by_key(self, flattener, full_record):
        """Test stimulation results land under their time point regardless of array order."""
        values = flattener.flatten(full_record).values
        assert values["GHTestClonidine0"] == "1.2"
        assert values["GHTestClonidine30"] == "3.4"
        assert values["GHTestClonidine60"] == "NA"
        assert values["GHTestGlucagon0"] == "0.8"
        assert values["GHTestGlucagon180"] == "4.1"

    def test_metadata_from_envelope(self, flattener, full_record):
        values = flattener.flatten(full_record).values
        assert values["Created By"] == "user-1"
        assert values["Center"] == "center-a"
        assert values["Created Date"] == "02/04/2024"

    def test_excluded_labels_omitted(self, flattener, full_record):
        """Test excluded labels never reach the row, the sequence column included."""
        excluded = {"Patient Name", "UHID", SEQUENCE_LABEL, "SiblingAge_1"}
        row = flattener.flatten(full_record, excluded_labels=excluded, sequence=1)
        assert not excluded & set(row.values)
        assert list(row.values) == flattener.header(excluded_labels=excluded)

    def test_template_layout(self, flattener, full_record):
        values = flattener.flatten(full_record, layout=ExportLayout.TEMPLATE, sequence=1).values
        assert list(values)[:6] == [SEQUENCE_LABEL, "PAEC", "Name", "UHID", "Sex M1 F2", "AgeBL"]
        assert values["Sex M1 F2"] == "2"
        assert values["Congenital 1 AquTumor 2"] == "1"
        assert values["ectoposte"] == "Yes"
        assert "SiblingAge_1" not in values
        assert "Created By" not in values

    def test_empty_record(self, flattener):
        row = flattener.flatten(PatientRecord(), sequence=1)
        assert all(v == "NA" for label, v in row.values.items() if label not in (SEQUENCE_LABEL, "Created Date"))
        assert row.truncated == 0


class TestTruncation:
    """Test suite for reporting array entries beyond the fixed columns."""

    def test_extra_siblings_counted(self, flattener, full_record):
        siblings = full_record.document["history"]["familyHistory"]["siblings"]
        siblings.extend([{"relation": "Brother", "age": n} for n in range(3)])

        row = flattener.flatten(full_record)

        # the fifth sibling does not fit; it counts once for both of its fields
        assert row.truncated == 1
        assert [row.values[f"SiblingAge_{n}"] for n in range(1, 5)] == ["14", "8", "0", "1"]

    def test_unknown_time_point_counted(self, flattener, full_record):
        results = full_record.document["endocrineWorkup"]["ghStimulationTest"]["results"]
        results.append({"time": "240 min", "glucagonGH": 2.2})
        assert flattener.flatten(full_record).truncated == 1

    def test_count_unexported_ignores_empty_values(self):
        document = {"history": {"familyHistory": {"siblings": [{}] * 4 + [{"age": None}, {"relation": "x"}]}}}
        assert count_unexported(document, [_sibling_spec("age")]) == 0
        assert count_unexported(document, [_sibling_spec("relation")]) == 1

    def test_count_unexported_without_array(self):
        assert count_unexported({}, [_sibling_spec("age")]) == 0
        assert count_unexported({}, []) == 0

    def test_count_unexported_counts_entries_once(self):
        """Test an overflowing entry with several filled fields counts as one entry."""
        extra = {"relation": "Sister", "age": 3, "height": 95.0, "weight": 14.0}
        document = {"history": {"familyHistory": {"siblings": [{}] * 4 + [extra, {"age": 1}]}}}
        fields = [_sibling_spec(name) for name in ("relation", "age", "height", "weight")]

        assert count_unexported(document, fields) == 2


class TestFlattenMany:
    """Test suite for building a whole sheet."""

    def test_rows_numbered_from_one(self, flattener, full_record):
        other = full_record.clone()
        other.document["patientDetails"]["paecNo"] = "PAEC200"

        sheet, truncated = flattener.flatten_many([full_record, other])

        assert sheet.name == "Baseline Forms"
        assert sheet.headers == flattener.header()
        assert [row[0] for row in sheet.rows] == [1, 2]
        assert [row[1] for row in sheet.rows] == ["PAEC100", "PAEC200"]
        assert truncated == 0

    def test_template_sheet_name(self, flattener, full_record):
        sheet, _ = flattener.flatten_many([full_record], layout=ExportLayout.TEMPLATE)
        assert sheet.name == "Template"

    def test_excluded_labels_not_in_header(self, flattener, full_record):
        sheet, _ = flattener.flatten_many([full_record], excluded_labels=["PAEC No", "Remarks"])
        assert "PAEC No" not in sheet.headers
        assert "Remarks" not in sheet.headers
        assert all(len(row) == len(sheet.headers) for row in sheet.rows)
