import math
from datetime import date, datetime, timedelta

import pytest

from import_engine.dates import EXCEL_EPOCH, DateOrder
from import_engine.transformer import transform
from schema.builtin import ELIGIBILITY_FIELDS, PATIENT_FIELDS
from schema.fields import DataType, FieldDefinition

FIELDS = {d.key: d for d in PATIENT_FIELDS + ELIGIBILITY_FIELDS}
TODAY = date(2026, 10, 19)


@pytest.mark.parametrize("raw, expected", [
    ("نعم", True), ("Yes", True), ("1", True), (1, True), ("TRUE", True),
    ("unknown", True), (True, True),
    ("no", False), ("لا", False), ("0", False), ("", False), (None, False),
    ("   ", False), (False, False),
])
def test_disease_flag(raw, expected):
    assert transform(raw, FIELDS["has_dm"]) is expected


@pytest.mark.parametrize("raw, expected", [
    ("42", 42), (42.0, 42), ("36.5", 36.5), ("1,200", 1200),
    ("abc", None), ("", None), (float("nan"), None), ("inf", None),
])
def test_number(raw, expected):
    assert transform(raw, FIELDS["age"]) == expected


def test_number_never_leaks_nan():
    value = transform("nan", FIELDS["age"])
    assert value is None or not math.isnan(value)


def test_text_is_trimmed_and_ids_lose_float_suffix():
    assert transform("  Ali  ", FIELDS["name"]) == "Ali"
    assert transform(1001.0, FIELDS["national_id"]) == "1001"
    assert transform("", FIELDS["name"]) is None


@pytest.mark.parametrize("serial", [1, 45000, 45000.75, 60])
def test_date_serial_matches_epoch_offset(serial):
    expected = EXCEL_EPOCH + timedelta(days=int(serial))
    assert transform(serial, FIELDS["predicted_visit_date"]) == expected


def test_date_values():
    defn = FIELDS["predicted_visit_date"]
    assert transform(datetime(2026, 3, 4, 15, 30), defn) == date(2026, 3, 4)
    assert transform("2026-03-04", defn) == date(2026, 3, 4)
    assert transform("04/03/2026", defn, DateOrder.DAY_FIRST) == date(2026, 3, 4)
    assert transform("04/03/2026", defn, DateOrder.MONTH_FIRST) == date(2026, 4, 3)
    assert transform("45000", defn) == EXCEL_EPOCH + timedelta(days=45000)
    assert transform("March 4, 2026", defn, today=TODAY) == date(2026, 3, 4)
    assert transform("not a date", defn) is None
    assert transform("31/02/2026", defn) is None


def test_gender_labels_and_pass_through():
    gender = FIELDS["gender"]
    assert transform("Male", gender) == "ذكر"
    assert transform("F", gender) == "أنثى"
    assert transform("انثى", gender) == "أنثى"
    assert transform("other", gender) == "other"


def test_burden_unknown_is_null():
    burden = FIELDS["burden"]
    assert transform("High burden", burden) == "عالي"
    assert transform("متوسط", burden) == "متوسط"
    assert transform("extreme", burden) is None


def test_priority_and_status_defaults():
    assert transform("عالية", FIELDS["priority"]) == "high"
    assert transform("whenever", FIELDS["priority"]) == "medium"
    assert transform("مكتمل", FIELDS["status"]) == "completed"
    assert transform("??", FIELDS["status"]) == "pending"


def test_dispatch_is_by_type_not_key():
    flag = FieldDefinition(key="age", display_name="x", keywords=("x",),
                           target_tables=("patients",), data_type=DataType.BOOLEAN)
    assert transform("yes", flag) is True
