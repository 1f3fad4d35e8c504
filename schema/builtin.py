"""
schema.builtin - Built-in target fields and import profiles.

Two destination schemas ship with the system: the patient register
(`patients`, natural key national_id) and preventive-care eligibility
(`patient_eligibility`, natural key patient_id + service_id).  Keywords
cover the English and Arabic headers seen in real exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from schema.fields import DataType, Fallback, FieldDefinition, Option, OptionSet

PATIENTS = "patients"
MEDICATIONS = "medications"
ELIGIBILITY = "patient_eligibility"
SCREENING = "screening_data"
VIRTUAL_CLINIC = "virtual_clinic_data"

# Tables an admin may attach custom fields to
KNOWN_TABLES = (PATIENTS, MEDICATIONS, SCREENING, VIRTUAL_CLINIC, ELIGIBILITY)


# ── Closed option sets ────────────────────────────────────────────────

GENDER = OptionSet(
    options=(
        Option("ذكر", accepted=("male", "ذكر", "m")),
        Option("أنثى", accepted=("female", "أنثى", "انثى", "f")),
    ),
    fallback=Fallback.PASS_THROUGH,
)

# Unknown burden stays NULL: the column only admits these three labels.
BURDEN = OptionSet(
    options=(
        Option("عالي", accepted=("عالي",), contains=("high",)),
        Option("متوسط", accepted=("متوسط",), contains=("moderate",)),
        Option("منخفض", accepted=("منخفض",), contains=("low",)),
    ),
    fallback=Fallback.NULL,
)

STATUS = OptionSet(
    options=(
        Option("pending", accepted=("pending", "معلق")),
        Option("scheduled", accepted=("scheduled", "مجدول")),
        Option("completed", accepted=("completed", "مكتمل")),
        Option("declined", accepted=("declined", "مرفوض")),
    ),
    fallback=Fallback.DEFAULT,
    default="pending",
)

PRIORITY = OptionSet(
    options=(
        Option("high", accepted=("عالي", "عالية"), contains=("high",)),
        Option("medium", accepted=("متوسط", "متوسطة"), contains=("medium",)),
        Option("low", accepted=("منخفض", "منخفضة"), contains=("low",)),
    ),
    fallback=Fallback.DEFAULT,
    default="medium",
)


def _f(key, display, keywords, table, data_type=DataType.TEXT, required=False, options=None):
    return FieldDefinition(
        key=key,
        display_name=display,
        keywords=tuple(keywords),
        target_tables=(table,),
        data_type=data_type,
        required=required,
        options=options,
    )


PATIENT_FIELDS: tuple[FieldDefinition, ...] = (
    _f("national_id", "رقم الهوية",
       ["national number", "national_number", "national id", "رقم الهوية",
        "id_number", "iqama", "هوية", "الهوية"],
       PATIENTS, required=True),
    _f("name", "الاسم",
       ["full name", "name", "الاسم", "patient name", "اسم المريض",
        "full name (arabic)", "full_name_ar", "اسم"],
       PATIENTS, required=True),
    _f("age", "العمر", ["age", "العمر", "patient_age", "عمر"],
       PATIENTS, DataType.NUMBER),
    _f("gender", "الجنس", ["gender", "الجنس", "sex", "patient_gender", "جنس"],
       PATIENTS, DataType.ENUM, options=GENDER),
    _f("has_dm", "مريض سكري",
       ["is diabetic", "diabetes", "dm", "سكري", "diabetic", "isdiabetic", "السكري"],
       PATIENTS, DataType.BOOLEAN),
    _f("has_htn", "مريض ضغط",
       ["is hypertensive", "hypertension", "htn", "ضغط", "blood pressure",
        "ishypertensive", "الضغط"],
       PATIENTS, DataType.BOOLEAN),
    _f("has_dyslipidemia", "مريض دهون",
       ["is dyslipidemic", "dyslipidemia", "dlp", "دهون", "lipids",
        "isdyslipidemic", "الدهون"],
       PATIENTS, DataType.BOOLEAN),
    _f("burden", "العبء",
       ["burden", "burden category", "العبء", "severity", "burden_category"],
       PATIENTS, DataType.ENUM, options=BURDEN),
    _f("center_id", "المركز",
       ["center", "preferred center", "المركز", "health center", "preferred_center", "مركز"],
       PATIENTS),
    _f("doctor", "الطبيب",
       ["doctor", "preferred doctor", "الطبيب", "physician", "preferred_doctor", "طبيب"],
       PATIENTS),
    _f("team", "الفريق", ["team", "الفريق", "medical team", "فريق"], PATIENTS),
    _f("days_until_visit", "أيام للزيارة",
       ["days until visit", "days_until_visit", "أيام للزيارة", "days"],
       PATIENTS, DataType.NUMBER),
    _f("urgency_status", "حالة الطوارئ",
       ["urgency", "urgency_status", "حالة الطوارئ", "urgency status"], PATIENTS),
    _f("predicted_visit_date", "تاريخ الزيارة المتوقع",
       ["predicted visit", "new_predicted_visit", "تاريخ الزيارة", "visit date",
        "predicted_visit_date"],
       PATIENTS, DataType.DATE),
    _f("medications", "الأدوية",
       ["medications", "current medications", "الأدوية", "drugs",
        "chronic_medications_list", "أدوية", "medicine"],
       PATIENTS),
)

ELIGIBILITY_FIELDS: tuple[FieldDefinition, ...] = (
    _f("patient_id", "رقم المريض",
       ["patient id", "patient_id", "رقم المريض", "national number",
        "national_number", "رقم الهوية", "هوية"],
       ELIGIBILITY, required=True),
    _f("patient_name", "اسم المريض",
       ["patient name", "patient_name", "اسم المريض", "name", "الاسم", "full name"],
       ELIGIBILITY, required=True),
    _f("patient_age", "العمر", ["age", "patient_age", "العمر", "عمر"],
       ELIGIBILITY, DataType.NUMBER, required=True),
    _f("patient_gender", "الجنس", ["gender", "patient_gender", "الجنس", "sex", "جنس"],
       ELIGIBILITY, DataType.ENUM, required=True, options=GENDER),
    _f("service_id", "رمز الخدمة", ["service id", "service_id", "رمز الخدمة", "service"],
       ELIGIBILITY, required=True),
    _f("service_code", "كود الخدمة", ["service code", "service_code", "كود الخدمة", "code"],
       ELIGIBILITY, required=True),
    _f("service_name_ar", "اسم الخدمة",
       ["service name", "service_name_ar", "اسم الخدمة", "خدمة"],
       ELIGIBILITY, required=True),
    _f("priority", "الأولوية", ["priority", "الأولوية", "أولوية"],
       ELIGIBILITY, DataType.ENUM, required=True, options=PRIORITY),
    _f("status", "الحالة", ["status", "الحالة", "حالة"],
       ELIGIBILITY, DataType.ENUM, options=STATUS),
    _f("due_date", "تاريخ الاستحقاق",
       ["due date", "due_date", "تاريخ الاستحقاق", "استحقاق"],
       ELIGIBILITY, DataType.DATE),
    _f("last_completed_date", "تاريخ آخر إتمام",
       ["last completed", "last_completed_date", "تاريخ آخر إتمام", "آخر إتمام"],
       ELIGIBILITY, DataType.DATE),
    _f("is_eligible", "مؤهل", ["eligible", "is_eligible", "مؤهل", "أهلية"],
       ELIGIBILITY, DataType.BOOLEAN),
)

BUILTIN_FIELDS: dict[str, tuple[FieldDefinition, ...]] = {
    PATIENTS: PATIENT_FIELDS,
    ELIGIBILITY: ELIGIBILITY_FIELDS,
}


# ── Import profiles ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ChildCollection:
    """A delimited cell that expands into dependent rows of another table."""
    table: str
    parent_column: str            # FK column on the child table
    value_column: str             # column receiving each list item
    separator: str = ";"


@dataclass(frozen=True)
class ImportProfile:
    name: str
    table: str
    natural_key: tuple[str, ...]
    identifier_field: str
    name_field: str
    related_tables: tuple[str, ...] = ()
    insert_defaults: dict = field(default_factory=dict)
    # Insert-time fallbacks copied from another column: target → source
    copy_defaults: dict[str, str] = field(default_factory=dict)
    children: dict[str, ChildCollection] = field(default_factory=dict)


PATIENT_PROFILE = ImportProfile(
    name="patients",
    table=PATIENTS,
    natural_key=("national_id",),
    identifier_field="national_id",
    name_field="name",
    related_tables=(MEDICATIONS, SCREENING, VIRTUAL_CLINIC, ELIGIBILITY),
    insert_defaults={
        "name": "",
        "has_dm": False,
        "has_htn": False,
        "has_dyslipidemia": False,
        "center_id": "",
        "status": "pending",
    },
    children={
        "medications": ChildCollection(MEDICATIONS, "patient_id", "name"),
    },
)

PREVENTIVE_PROFILE = ImportProfile(
    name="preventive",
    table=ELIGIBILITY,
    natural_key=("patient_id", "service_id"),
    identifier_field="patient_id",
    name_field="patient_name",
    insert_defaults={
        "patient_name": "",
        "patient_age": 0,
        "service_name_ar": "",
        "priority": "medium",
        "status": "pending",
        "is_eligible": True,
    },
    copy_defaults={"service_code": "service_id"},
)

PROFILES: dict[str, ImportProfile] = {
    PATIENT_PROFILE.name: PATIENT_PROFILE,
    PREVENTIVE_PROFILE.name: PREVENTIVE_PROFILE,
}


def get_profile(import_type: str) -> ImportProfile:
    try:
        return PROFILES[import_type]
    except KeyError:
        raise ValueError(f"Unknown import type {import_type!r}") from None
