"""Field Mapping Table for the Baseline Form.

This module is the single source of truth for how spreadsheet columns relate
to paths inside the nested patient document. Import resolves any accepted
header spelling to a path; export writes each path under exactly one label
per layout.

The table is ordered: entries appear in export column order, which follows
the section order identity -> history -> examination -> investigations ->
endocrine -> imaging -> treatment -> diagnosis -> remarks -> record metadata.
Any change to labels, aliases or order must bump ``MAPPING_VERSION``.

Security Impact:
    - Contact and address paths are flagged ``sensitive`` so that audit
      diffs carry a placeholder instead of the value
    - Record metadata columns are export-only and can never be written by import

Architecture:
    - Pure domain data with no infrastructure dependencies
    - Consumed by FieldPathResolver, ValueCoercer, RecordBuilder and RecordFlattener
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Union

from src.domain.paths import FieldPath, KeyMatch
from src.domain.tabular import ExportLayout

MAPPING_VERSION = "2024.3"

SEQUENCE_LABEL = "S.NO"
PRESENCE_FLAG = "isFilled"


class Section(str, Enum):
    """Top-level document sections, in export order.

    The value is the document key of the section. METADATA is not part of the
    document; its columns are read from the record envelope.
    """

    IDENTITY = "patientDetails"
    HISTORY = "history"
    EXAMINATION = "examination"
    INVESTIGATIONS = "investigations"
    ENDOCRINE = "endocrineWorkup"
    IMAGING = "mri"
    TREATMENT = "treatment"
    DIAGNOSIS = "diagnosis"
    REMARKS = "remarks"
    METADATA = "metadata"

    @property
    def has_presence_flag(self) -> bool:
        return self not in (Section.IDENTITY, Section.METADATA)


SECTION_ORDER = tuple(Section)


class FieldType(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    BOOLEAN = "boolean"
    CHOICE = "choice"


class BooleanEncoding(Enum):
    """Sentinel pair (true token, false token) used for a boolean path."""

    ONE_TWO = ("1", "2")
    YES_NO = ("Yes", "No")
    TRUE_FALSE = ("True", "False")

    @property
    def true_token(self) -> str:
        return self.value[0]

    @property
    def false_token(self) -> str:
        return self.value[1]


@dataclass(frozen=True)
class FieldSpec:
    """One scalar document path and its spreadsheet spellings.

    Attributes:
        path: Address of the value in the document (or record envelope for METADATA)
        label: Analysis-layout export label, also accepted on import
        section: Owning section
        field_type: Value type used by the coercer
        aliases: Historical header spellings accepted on import
        boolean_encoding: Sentinel pair for BOOLEAN fields
        default_zero: Non-numeric input becomes 0 instead of missing
        choices: Accepted token -> canonical stored value, for CHOICE fields
        template_label: Template-layout label; None keeps the path out of the template
        template_codes: Canonical value -> code rendered in the template layout
        sensitive: Diff values are redacted in the audit log
        importable: Whether import may write this path
        natural_key: Whether this is the record's natural key
    """

    path: FieldPath
    label: str
    section: Section
    field_type: FieldType = FieldType.TEXT
    aliases: tuple = ()
    boolean_encoding: Optional[BooleanEncoding] = None
    default_zero: bool = False
    choices: Mapping[str, str] = field(default_factory=dict, hash=False, compare=False)
    template_label: Optional[str] = None
    template_codes: Mapping[str, str] = field(default_factory=dict, hash=False, compare=False)
    sensitive: bool = False
    importable: bool = True
    natural_key: bool = False

    @property
    def canonical(self) -> str:
        return self.path.canonical

    def columns(self, layout: ExportLayout) -> list[tuple[str, FieldPath]]:
        """Export columns contributed by this entry, as (label, path) pairs."""
        if layout == ExportLayout.TEMPLATE:
            return [(self.template_label, self.path)] if self.template_label else []
        return [(self.label, self.path)]

    def accepted_headers(self) -> list[tuple[str, FieldPath]]:
        """Every header spelling import accepts for this entry."""
        spellings = [self.label]
        if self.template_label:
            spellings.append(self.template_label)
        spellings.extend(self.aliases)
        return [(spelling, self.path) for spelling in spellings]


@dataclass(frozen=True)
class RepeatingFieldSpec:
    """One field of an array item, expanded over a fixed set of slots.

    Positional arrays (``keys`` empty) map slot ``i`` to list index ``i``.
    Keyed arrays map slot ``i`` to the entry whose ``key_field`` equals
    ``keys[i]``. Alias templates are formatted with ``slot`` (1-based) and
    ``key``.
    """

    array_path: FieldPath
    item_field: str
    labels: tuple
    section: Section
    field_type: FieldType = FieldType.DECIMAL
    key_field: Optional[str] = None
    keys: tuple = ()
    alias_templates: tuple = ()
    boolean_encoding: Optional[BooleanEncoding] = None
    default_zero: bool = False
    choices: Mapping[str, str] = field(default_factory=dict, hash=False, compare=False)
    template_codes: Mapping[str, str] = field(default_factory=dict, hash=False, compare=False)
    sensitive: bool = False
    importable: bool = True
    natural_key: bool = False
    in_template: bool = False

    def __post_init__(self):
        if self.keys and len(self.keys) != len(self.labels):
            raise ValueError(f"{self.array_path}: {len(self.labels)} labels for {len(self.keys)} keys")
        if self.keys and not self.key_field:
            raise ValueError(f"{self.array_path}: keyed slots need a key_field")

    @property
    def path(self) -> FieldPath:
        return self.array_path.child(self.item_field)

    @property
    def canonical(self) -> str:
        return self.path.canonical

    @property
    def label(self) -> str:
        return self.labels[0]

    @property
    def cardinality(self) -> int:
        return len(self.labels)

    @property
    def is_keyed(self) -> bool:
        return bool(self.keys)

    def slot_path(self, index: int) -> FieldPath:
        segment = KeyMatch(self.key_field, self.keys[index]) if self.is_keyed else index
        return self.array_path.child(segment).child(self.item_field)

    def columns(self, layout: ExportLayout) -> list[tuple[str, FieldPath]]:
        if layout == ExportLayout.TEMPLATE and not self.in_template:
            return []
        return [(label, self.slot_path(index)) for index, label in enumerate(self.labels)]

    def accepted_headers(self) -> list[tuple[str, FieldPath]]:
        accepted = []
        for index, label in enumerate(self.labels):
            path = self.slot_path(index)
            accepted.append((label, path))
            key = self.keys[index] if self.is_keyed else None
            for template in self.alias_templates:
                accepted.append((template.format(slot=index + 1, key=key), path))
        return accepted


MappingEntry = Union[FieldSpec, RepeatingFieldSpec]


def _f(path: str, label: str, section: Section, field_type: FieldType = FieldType.TEXT, **kwargs) -> FieldSpec:
    return FieldSpec(path=FieldPath.parse(path), label=label, section=section, field_type=field_type, **kwargs)


def _yes_no(path: str, label: str, section: Section, **kwargs) -> FieldSpec:
    return _f(path, label, section, FieldType.BOOLEAN, boolean_encoding=BooleanEncoding.YES_NO, **kwargs)


def _one_two(path: str, label: str, section: Section, **kwargs) -> FieldSpec:
    return _f(path, label, section, FieldType.BOOLEAN, boolean_encoding=BooleanEncoding.ONE_TWO, **kwargs)


def _true_false(path: str, label: str, section: Section, **kwargs) -> FieldSpec:
    return _f(path, label, section, FieldType.BOOLEAN, boolean_encoding=BooleanEncoding.TRUE_FALSE, **kwargs)


I, D, T, N = FieldType.INTEGER, FieldType.DECIMAL, FieldType.TEXT, FieldType.DATE

_ID = Section.IDENTITY
_HX = Section.HISTORY
_EX = Section.EXAMINATION
_INV = Section.INVESTIGATIONS
_END = Section.ENDOCRINE
_MRI = Section.IMAGING
_TX = Section.TREATMENT
_DX = Section.DIAGNOSIS

SIBLINGS_PATH = FieldPath.parse("history.familyHistory.siblings")
SIBLING_SLOTS = 4

GH_RESULTS_PATH = FieldPath.parse("endocrineWorkup.ghStimulationTest.results")
GH_RESULT_KEY_FIELD = "time"
CLONIDINE_OFFSETS = (0, 30, 60, 90, 120, 150)
GLUCAGON_OFFSETS = (0, 30, 60, 90, 120, 150, 180)


def _sibling(item_field: str, prefix: str, field_type: FieldType, alias: str) -> RepeatingFieldSpec:
    return RepeatingFieldSpec(
        array_path=SIBLINGS_PATH,
        item_field=item_field,
        labels=tuple(f"{prefix}_{n}" for n in range(1, SIBLING_SLOTS + 1)),
        section=_HX,
        field_type=field_type,
        alias_templates=(alias,),
    )


def _gh_results(item_field: str, prefix: str, offsets: tuple, alias: str) -> RepeatingFieldSpec:
    return RepeatingFieldSpec(
        array_path=GH_RESULTS_PATH,
        item_field=item_field,
        labels=tuple(f"{prefix}{offset}" for offset in offsets),
        section=_END,
        field_type=D,
        key_field=GH_RESULT_KEY_FIELD,
        keys=tuple(f"{offset} min" for offset in offsets),
        alias_templates=(alias,),
    )


SEX_CHOICES = {"male": "Male", "m": "Male", "1": "Male", "female": "Female", "f": "Female", "2": "Female"}
SEX_CODES = {"Male": "1", "Female": "2"}
DIAGNOSIS_TYPE_CHOICES = {
    "congenital": "Congenital", "1": "Congenital",
    "acquired": "Acquired", "aqutumor": "Acquired", "2": "Acquired",
}
DIAGNOSIS_TYPE_CODES = {"Congenital": "1", "Acquired": "2"}


FIELD_MAPPINGS: tuple = (
    # --- identity ---
    _f("patientDetails.paecNo", "PAEC No", _ID, aliases=("PAEC NO", "paec no"), template_label="PAEC",
       natural_key=True),
    _f("patientDetails.name", "Patient Name", _ID, aliases=("PATIENT NAME",), template_label="Name"),
    _f("patientDetails.uhid", "UHID", _ID, template_label="UHID"),
    _f("patientDetails.sex", "Sex", _ID, FieldType.CHOICE, aliases=("SEX",), choices=SEX_CHOICES,
       template_label="Sex M1 F2", template_codes=SEX_CODES),
    _f("patientDetails.age", "Age", _ID, I, aliases=("AGE",), default_zero=True, template_label="AgeBL"),
    _f("patientDetails.dob", "DOB", _ID, N, aliases=("Date of Birth",), template_label="DOB"),
    _f("patientDetails.address.street", "Address", _ID, template_label="Address", sensitive=True),
    _f("patientDetails.address.city", "City", _ID),
    _f("patientDetails.address.state", "State", _ID),
    _f("patientDetails.contact.cell1", "Phone 1", _ID, template_label="Phone no1", sensitive=True),
    _f("patientDetails.contact.cell2", "Phone 2", _ID, template_label="Phone no2", sensitive=True),
    _f("patientDetails.contact.landline", "Landline", _ID, template_label="Phone 3", sensitive=True),
    _f("visitDate", "Visit Date", _ID, N),

    # --- history ---
    _f("history.shortStatureNoticedAt", "Short Stature Noticed At", _HX),
    _f("history.birthHistory.birthWeight", "Birth Weight", _HX, D),
    _f("history.birthHistory.birthLength", "Birth Length", _HX, D),
    _f("history.birthHistory.duration", "Birth Duration", _HX),
    _f("history.birthHistory.deliveryPlace", "Delivery Place", _HX),
    _f("history.birthHistory.deliveryNature", "Delivery Nature", _HX),
    _yes_no("history.birthHistory.birthHypoxia", "Birth Hypoxia", _HX),
    _f("history.familyHistory.father.age", "Father Age", _HX, I),
    _f("history.familyHistory.father.height", "Father Height", _HX, D, template_label="FatherHt"),
    _f("history.familyHistory.mother.age", "Mother Age", _HX, I),
    _f("history.familyHistory.mother.height", "Mother Height", _HX, D, template_label="MotherHt"),
    _f("history.familyHistory.mph", "MPH", _HX, D, template_label="MPH"),
    _f("history.familyHistory.mphSds", "MPH SDS", _HX, D, template_label="MPH SDS"),
    _sibling("relation", "SiblingRelation", T, "Sibling {slot} Relation"),
    _sibling("age", "SiblingAge", I, "Sibling {slot} Age"),
    _sibling("height", "SiblingHeight", D, "Sibling {slot} Height"),
    _sibling("weight", "SiblingWeight", D, "Sibling {slot} Weight"),
    _yes_no("history.familyHistory.shortStatureInFamily", "Short Stature In Family", _HX),
    _yes_no("history.familyHistory.consanguinity.present", "Consanguinity", _HX),
    _f("history.familyHistory.consanguinity.degree", "Consanguinity Degree", _HX),
    _f("history.pubertyHistory.thelarche.ageYears", "Thelarche Age", _HX, I),
    _f("history.pubertyHistory.menarche.ageYears", "Menarche Age", _HX, I),

    # --- examination ---
    _f("examination.date", "Examination Date", _EX, N),
    _f("examination.measurements.height", "Height", _EX, D, template_label="HtBL"),
    _f("examination.measurements.heightAge", "Height Age", _EX, D, template_label="aagebl"),
    _f("examination.measurements.heightSds", "Height SDS", _EX, D, template_label="Ht BL SDS"),
    _f("examination.measurements.weight", "Weight", _EX, D, template_label="wt0"),
    _f("examination.measurements.weightAge", "Weight Age", _EX, D),
    _f("examination.measurements.weightSds", "Weight SDS", _EX, D, template_label="Wt0 SDS"),
    _f("examination.measurements.bmi", "BMI", _EX, D, template_label="bmi0"),
    _f("examination.measurements.bmiSds", "BMI SDS", _EX, D, template_label="bmi0 SDS"),
    _f("examination.physicalFindings.face", "Face", _EX),
    _f("examination.physicalFindings.thyroid", "Thyroid", _EX),
    _f("examination.physicalFindings.pubertalStatus", "Pubertal Status", _EX),
    _f("examination.physicalFindings.axillaryHair", "Axillary Hair", _EX),
    _f("examination.physicalFindings.pubicHair", "Pubic Hair", _EX),
    _f("examination.physicalFindings.testicularVolume.right", "Testicular Volume Right", _EX),
    _f("examination.physicalFindings.testicularVolume.left", "Testicular Volume Left", _EX),
    _f("examination.physicalFindings.breast", "Breast", _EX),
    _f("examination.physicalFindings.spl", "SPL", _EX),
    _yes_no("examination.pituitarySurgery.history", "Pituitary Surgery", _EX),
    _f("examination.pituitarySurgery.details.surgeryType", "Surgery Type", _EX),
    _f("examination.pituitarySurgery.details.numberOfSurgeries", "Number Of Surgeries", _EX, I),
    _yes_no("examination.pituitaryRadiation.history", "Pituitary Radiation", _EX),
    _f("examination.pituitaryRadiation.type", "Radiation Type", _EX),
    _f("examination.pituitaryRadiation.totalDose", "Radiation Total Dose", _EX, D),

    # --- investigations ---
    _f("investigations.date", "Investigation Date", _INV, N),
    _f("investigations.hematology.hb", "HB", _INV, D),
    _f("investigations.hematology.esr", "ESR", _INV, D),
    _f("investigations.hematology.tlc", "TLC", _INV, D),
    _f("investigations.hematology.dlc.p", "DLC P", _INV, D),
    _f("investigations.hematology.dlc.l", "DLC L", _INV, D),
    _f("investigations.hematology.dlc.e", "DLC E", _INV, D),
    _f("investigations.hematology.dlc.m", "DLC M", _INV, D),
    _f("investigations.hematology.dlc.b", "DLC B", _INV, D),
    _f("investigations.hematology.pbf.cytic", "PBF Cytic", _INV),
    _f("investigations.hematology.pbf.chromic", "PBF Chromic", _INV),
    _f("investigations.biochemistry.sCreat", "S Creat", _INV, D),
    _f("investigations.biochemistry.sgot", "SGOT", _INV, D),
    _f("investigations.biochemistry.sgpt", "SGPT", _INV, D),
    _f("investigations.biochemistry.sAlbumin", "S Albumin", _INV, D),
    _f("investigations.biochemistry.sCa", "S Ca", _INV, D),
    _f("investigations.biochemistry.sPO4", "S PO4", _INV, D),
    _f("investigations.biochemistry.sap", "SAP", _INV, D),
    _f("investigations.biochemistry.sNa", "S Na", _INV, D),
    _f("investigations.biochemistry.sK", "S K", _INV, D),
    _f("investigations.biochemistry.fbs", "FBS", _INV, D),
    _f("investigations.urine.lowestPh", "Urine Lowest PH", _INV, D),
    _yes_no("investigations.urine.albumin", "Urine Albumin", _INV),
    _yes_no("investigations.urine.glucose", "Urine Glucose", _INV),
    _f("investigations.urine.microscopy", "Urine Microscopy", _INV),
    _f("investigations.sttg.value", "STTG Value", _INV),
    _f("investigations.sttg.place", "STTG Place", _INV),
    _f("investigations.imaging.xrayChest", "Xray Chest", _INV),
    _f("investigations.imaging.xraySkull", "Xray Skull", _INV),
    _f("investigations.imaging.boneAge.date", "Bone Age Date", _INV, N),
    _f("investigations.imaging.boneAge.value", "Bone Age Value", _INV, template_label="BA8"),
    _yes_no("investigations.imaging.boneAge.gpScoring", "GP Scoring", _INV),

    # --- endocrine workup ---
    _f("endocrineWorkup.date", "Endocrine Workup Date", _END, N),
    _f("endocrineWorkup.tests.t4", "T4", _END, D),
    _f("endocrineWorkup.tests.freeT4", "Free T4", _END, D),
    _f("endocrineWorkup.tests.tsh", "TSH", _END, D),
    _f("endocrineWorkup.tests.lh", "LH", _END, D),
    _f("endocrineWorkup.tests.fsh", "FSH", _END, D),
    _f("endocrineWorkup.tests.prl", "PRL", _END, D),
    _f("endocrineWorkup.tests.acth", "ACTH", _END, D),
    _f("endocrineWorkup.tests.cortisol8am", "Cortisol 8AM", _END, D),
    _f("endocrineWorkup.tests.igf1", "IGF1", _END, D),
    _f("endocrineWorkup.tests.estradiol", "Estradiol", _END, D),
    _f("endocrineWorkup.tests.testosterone", "Testosterone", _END, D),
    _f("endocrineWorkup.ghStimulationTest.ghStimulationType", "GH Stimulation Type", _END),
    _f("endocrineWorkup.ghStimulationTest.date", "GH Stimulation Date", _END, N, template_label="GHST First date"),
    _f("endocrineWorkup.ghStimulationTest.place", "GH Stimulation Place", _END),
    _f("endocrineWorkup.ghStimulationTest.outsidePlace", "Outside Place", _END),
    _gh_results("clonidineGH", "GHTestClonidine", CLONIDINE_OFFSETS, "Clonidine GH {key}"),
    _gh_results("glucagonGH", "GHTestGlucagon", GLUCAGON_OFFSETS, "Glucagon GH {key}"),
    _f("endocrineWorkup.ghStimulationTest.testsDone", "Tests Done", _END, I),
    _f("endocrineWorkup.ghStimulationTest.singleTestType", "Single Test Type", _END),
    _f("endocrineWorkup.ghStimulationTest.peakGHLevel", "Peak GH Level", _END),
    _f("endocrineWorkup.ghStimulationTest.exactPeakGH", "Exact Peak GH", _END, D),
    _f("endocrineWorkup.ghStimulationTest.peakGHTime", "Peak GH Time", _END),

    # --- imaging ---
    _one_two("mri.performed", "MRI Performed", _MRI, template_label="MRI Yes 1 or no 2"),
    _f("mri.date", "MRI Date", _MRI, N),
    _yes_no("mri.contrastUsed", "MRI Contrast Used", _MRI),
    _f("mri.place", "MRI Place", _MRI),
    _yes_no("mri.filmsAvailable", "MRI Films Available", _MRI),
    _yes_no("mri.cdAvailable", "MRI CD Available", _MRI),
    _yes_no("mri.scanned", "MRI Scanned", _MRI),
    _yes_no("mri.findings.anteriorPituitaryHypoplasia", "Anterior Pituitary Hypoplasia", _MRI,
            template_label="antepit"),
    _yes_no("mri.findings.pituitaryStalkInterruption", "Pituitary Stalk Interruption", _MRI,
            template_label="pitstalk"),
    _yes_no("mri.findings.ectopicPosteriorPituitary", "Ectopic Posterior Pituitary", _MRI,
            template_label="ectoposte"),
    _f("mri.findings.pituitarySizeMM", "Pituitary Size MM", _MRI, D),
    _f("mri.findings.otherFindings", "Other MRI Findings", _MRI, template_label="MRIfindings"),

    # --- treatment ---
    _one_two("treatment.hypothyroidism.present", "Hypothyroidism Present", _TX,
             template_label="PreGH-Hypothyroidism Y 1 N 2"),
    _f("treatment.hypothyroidism.diagnosisDate", "Hypothyroidism Diagnosis Date", _TX, N),
    _f("treatment.hypothyroidism.treatmentStartDate", "Hypothyroidism Treatment Start Date", _TX, N,
       template_label="Start Date Thyronorm"),
    _f("treatment.hypothyroidism.currentDose", "Hypothyroidism Current Dose", _TX),
    _yes_no("treatment.hypothyroidism.doseChanged", "Hypothyroidism Dose Changed", _TX),
    _f("treatment.hypothyroidism.lastT4", "Hypothyroidism Last T4", _TX, D),
    _f("treatment.hypothyroidism.source", "Hypothyroidism Source", _TX),
    _one_two("treatment.hypocortisolism.present", "Hypocortisolism Present", _TX,
             template_label="PreGH-Hypocort  Y 1 N 2"),
    _f("treatment.hypocortisolism.diagnosisDate", "Hypocortisolism Diagnosis Date", _TX, N),
    _yes_no("treatment.hypocortisolism.acthStimTest", "ACTH Stim Test", _TX),
    _f("treatment.hypocortisolism.testDate", "Test Date", _TX, N),
    _f("treatment.hypocortisolism.peakCortisol", "Peak Cortisol", _TX, D),
    _f("treatment.hypocortisolism.treatmentStartDate", "Hypocortisolism Treatment Start Date", _TX, N,
       template_label="StartDate-Steroid"),
    _f("treatment.hypocortisolism.steroidType", "Steroid Type", _TX),
    _f("treatment.hypocortisolism.currentDose", "Current Dose", _TX),
    _f("treatment.hypocortisolism.frequency", "Frequency", _TX),
    _f("treatment.hypocortisolism.dailyDoseMG", "Daily Dose MG", _TX, D),
    _yes_no("treatment.hypocortisolism.doseChanged", "Hypocortisolism Dose Changed", _TX),
    _f("treatment.hypocortisolism.source", "Hypocortisolism Source", _TX),
    _one_two("treatment.di.present", "DI Present", _TX, template_label="Pre-GH Minirin Y 1 N 2"),
    _f("treatment.di.diagnosisDate", "DI Diagnosis Date", _TX, N, template_label="StartDate-Minirin"),
    _yes_no("treatment.di.minirin", "Minirin", _TX),
    _f("treatment.di.dose", "DI Dose", _TX),
    _f("treatment.di.frequency", "DI Frequency", _TX, I),
    _one_two("treatment.hypogonadism.present", "Hypogonadism Present", _TX,
             template_label="PreGH-Hypogonadism Y 1 N 2"),
    _f("treatment.hypogonadism.diagnosisDate", "Hypogonadism Diagnosis Date", _TX, N),
    _f("treatment.hypogonadism.treatmentStartDate", "Hypogonadism Treatment Start Date", _TX, N,
       template_label="StartDate-Hypogonadism"),
    _f("treatment.hypogonadism.fullAdultDoseDate", "Full Adult Dose Date", _TX, N),
    _f("treatment.hypogonadism.hormoneType", "Hormone Type", _TX),
    _f("treatment.hypogonadism.mpaStartDate", "MPA Start Date", _TX, N),
    _f("treatment.hypogonadism.currentDose", "Hypogonadism Current Dose", _TX),
    _yes_no("treatment.hypogonadism.doseChanged", "Hypogonadism Dose Changed", _TX),
    _yes_no("treatment.supplements.calcium", "Calcium Supplement", _TX),
    _yes_no("treatment.supplements.vitaminD", "Vitamin D Supplement", _TX),
    _yes_no("treatment.supplements.iron", "Iron Supplement", _TX),
    _yes_no("treatment.otherTreatments.antiepileptics", "Antiepileptics", _TX),
    _f("treatment.otherTreatments.otherDrugs", "Other Drugs", _TX),

    # --- diagnosis ---
    _f("diagnosis.diagnosisType", "Diagnosis Type", _DX, FieldType.CHOICE, choices=DIAGNOSIS_TYPE_CHOICES,
       template_label="Congenital 1 AquTumor 2", template_codes=DIAGNOSIS_TYPE_CODES),
    _f("diagnosis.finalDiagnosis", "Final Diagnosis", _DX, aliases=("FINAL DIAGNOSIS 1",),
       template_label="Diagnosis"),
    _true_false("diagnosis.isolatedGHD", "Isolated GHD", _DX),
    _true_false("diagnosis.hypopituitarism", "Hypopituitarism", _DX),
    _true_false("diagnosis.affectedAxes.thyroid", "Affected Axes Thyroid", _DX),
    _true_false("diagnosis.affectedAxes.cortisol", "Affected Axes Cortisol", _DX),
    _true_false("diagnosis.affectedAxes.gonadal", "Affected Axes Gonadal", _DX),
    _true_false("diagnosis.affectedAxes.di", "Affected Axes DI", _DX),
    _true_false("diagnosis.mriAbnormality", "MRI Abnormality", _DX),

    # --- remarks ---
    _f("remarks.text", "Remarks", Section.REMARKS, aliases=("REMARKS 1", "Comments")),

    # --- record metadata (export only) ---
    _f("createdBy", "Created By", Section.METADATA, importable=False),
    _f("center", "Center", Section.METADATA, importable=False),
    _f("createdAt", "Created Date", Section.METADATA, N, importable=False),
)
