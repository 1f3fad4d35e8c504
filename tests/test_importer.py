from datetime import date

import pytest

from db.store import StoreError
from import_engine import ImportSession, ImportStateError, Outcome, SessionState, run_import
from import_engine.dates import DateOrder
from schema import custom_field

TODAY = date(2026, 10, 19)


def _session(registry, import_type="patients"):
    return ImportSession(registry, import_type, today=TODAY)


def _run(registry, store, headers, rows, import_type="patients"):
    session = _session(registry, import_type)
    session.load(headers, rows)
    return session.run(store)


# ── End-to-end scenarios ──────────────────────────────────────────────

def test_new_patient_is_inserted(registry, store):
    report = _run(registry, store, ["national_number", "full_name_ar", "IsDiabetic"],
                  [{"national_number": "1001", "full_name_ar": "Ali", "IsDiabetic": "Yes"}])

    assert [r.outcome for r in report.results] == [Outcome.INSERTED]
    assert report.results[0].identifier == "1001"
    patient = store.get("patients", {"national_id": "1001"})
    assert patient["has_dm"] is True
    assert patient["name"] == "Ali"
    assert patient["status"] == "pending"


def test_same_patient_again_is_updated(registry, store):
    headers = ["national_number", "full_name_ar", "IsDiabetic"]
    _run(registry, store, headers,
         [{"national_number": "1001", "full_name_ar": "Ali", "IsDiabetic": "Yes"}])
    report = _run(registry, store, headers,
                  [{"national_number": "1001", "full_name_ar": "Ali", "IsDiabetic": "No"}])

    assert (report.inserted, report.updated, report.failed) == (0, 1, 0)
    rows = store.select("patients", {"national_id": "1001"})
    assert len(rows) == 1
    assert rows[0]["has_dm"] is False


def test_missing_identifier_fails_without_writing(registry, store):
    report = _run(registry, store, ["full_name_ar", "IsDiabetic"],
                  [{"full_name_ar": "Ali", "IsDiabetic": "Yes"}])

    [result] = report.results
    assert result.outcome is Outcome.FAILED
    assert "national_id" in result.error
    assert store.select("patients") == []


def test_medication_list_replaces_existing_rows(registry, store):
    [patient] = store.insert("patients", [{"national_id": "1001", "name": "Ali"}])
    store.insert("medications", [
        {"patient_id": patient["id"], "name": n} for n in ("A", "B", "C")
    ])

    report = _run(registry, store, ["national_number", "Medications"],
                  [{"national_number": "1001", "Medications": "Metformin; Aspirin"}])

    assert report.updated == 1
    meds = store.select("medications", {"patient_id": patient["id"]})
    assert sorted(m["name"] for m in meds) == ["Aspirin", "Metformin"]


def test_empty_medication_list_keeps_existing_rows(registry, store):
    [patient] = store.insert("patients", [{"national_id": "1001", "name": "Ali"}])
    store.insert("medications", [{"patient_id": patient["id"], "name": "A"}])

    _run(registry, store, ["national_number", "Medications"],
         [{"national_number": "1001", "Medications": " ; "}])

    assert [m["name"] for m in store.select("medications")] == ["A"]


def test_import_twice_is_idempotent(registry, store):
    headers = ["national_number", "full_name_ar", "Age"]
    rows = [{"national_number": "2002", "full_name_ar": "Sara", "Age": 51}]
    first = _run(registry, store, headers, rows)
    second = _run(registry, store, headers, rows)
    assert first.results[0].outcome is Outcome.INSERTED
    assert second.results[0].outcome is Outcome.UPDATED
    assert len(store.select("patients")) == 1


# ── Row isolation ─────────────────────────────────────────────────────

class FlakyStore:
    """Delegates to a real store but fails every insert for one id."""

    def __init__(self, store, bad_id):
        self._store = store
        self._bad_id = bad_id

    def __getattr__(self, name):
        return getattr(self._store, name)

    def insert(self, table, rows):
        if any(r.get("national_id") == self._bad_id for r in rows):
            raise StoreError("disk full")
        return self._store.insert(table, rows)


def test_store_failure_fails_only_that_row(registry, store):
    flaky = FlakyStore(store, "1002")
    rows = [{"national_number": i, "full_name_ar": "x"} for i in ("1001", "1002", "1003")]
    report = _run(registry, flaky, ["national_number", "full_name_ar"], rows)

    assert [r.outcome for r in report.results] == [
        Outcome.INSERTED, Outcome.FAILED, Outcome.INSERTED,
    ]
    assert report.results[1].error == "disk full"
    assert report.results[1].identifier == "1002"
    assert {p["national_id"] for p in store.select("patients")} == {"1001", "1003"}


def test_progress_after_every_row(registry, store):
    calls = []
    session = _session(registry)
    session.load(["national_number"], [{"national_number": str(i)} for i in range(3)])
    session.run(store, progress=lambda done, total: calls.append((done, total)))
    assert calls == [(1, 3), (2, 3), (3, 3)]


def test_cancel_stops_before_next_row(registry, store):
    session = _session(registry)
    session.load(["national_number"], [{"national_number": str(i)} for i in range(5)])

    def progress(done, total):
        if done == 2:
            session.cancel()

    report = session.run(store, progress)
    assert report.cancelled is True
    assert report.processed == 2
    assert len(store.select("patients")) == 2


# ── Session behaviour ─────────────────────────────────────────────────

def test_state_machine(registry, store):
    session = _session(registry)
    assert session.state is SessionState.IDLE
    with pytest.raises(ImportStateError):
        session.run(store)
    with pytest.raises(ImportStateError):
        session.preview()

    session.load(["national_number"], [{"national_number": "1"}])
    assert session.state is SessionState.MAPPING_READY
    session.preview()
    assert session.state is SessionState.PREVIEWING
    session.run(store)
    assert session.state is SessionState.COMPLETED
    with pytest.raises(ImportStateError):
        session.run(store)


def test_preview_does_not_write(registry, store):
    session = _session(registry)
    session.load(["national_number", "Visit Date", "Medications"], [
        {"national_number": "1001", "Visit Date": "14/11/2026", "Medications": "A;B"},
        {"national_number": None, "Visit Date": None, "Medications": None},
    ])
    preview = session.preview()
    assert preview[0]["record"] == {
        "national_id": "1001",
        "predicted_visit_date": "2026-11-14",
        "medications": ["A", "B"],
    }
    assert "national_id" in preview[1]["error"]
    assert store.select("patients") == []


def test_manual_mapping_releases_previous_holder(registry):
    session = _session(registry)
    mappings = session.load(["national_number", "ID Number"], [])
    assert mappings[0].field_key == "national_id"

    mappings = session.update_mapping("ID Number", "national_id")
    assert mappings[0].field_key is None
    assert mappings[1].field_key == "national_id"
    assert mappings[1].confidence.value == "high"

    mappings = session.update_mapping("ID Number", "")
    assert not any(m.is_mapped for m in mappings)
    with pytest.raises(ValueError):
        session.update_mapping("ID Number", "shoe_size")


def test_missing_required(registry):
    session = _session(registry)
    session.load(["national_number", "Age"], [])
    assert [d.key for d in session.missing_required()] == ["name"]


def test_date_order_detected_from_date_cells(registry):
    session = _session(registry)
    session.load(["national_number", "Visit Date"], [
        {"national_number": "1", "Visit Date": "11/13/2026"},
        {"national_number": "2", "Visit Date": "11/14/2026"},
    ])
    assert session.date_order is DateOrder.MONTH_FIRST


def test_custom_fields_land_in_extra(registry, store):
    registry.register(custom_field("مدخن", "Smoker", ["patients"], "boolean"))
    registry.register(custom_field("ملاحظات", "Notes", ["patients"]))
    headers = ["national_number", "Smoker", "Notes"]

    _run(registry, store, headers, [{"national_number": "1", "Smoker": "yes", "Notes": "a"}])
    _run(registry, store, ["national_number", "Notes"], [{"national_number": "1", "Notes": "b"}])

    extra = store.get("patients", {"national_id": "1"})["extra"]
    assert extra == {"smoker": True, "notes": "b"}


def test_blank_custom_cell_keeps_stored_value(registry, store):
    registry.register(custom_field("ملاحظات", "Notes", ["patients"]))
    headers = ["national_number", "Notes"]

    _run(registry, store, headers, [{"national_number": "1", "Notes": "keep me"}])
    report = _run(registry, store, headers, [{"national_number": "1", "Notes": None}])

    assert report.updated == 1
    assert store.get("patients", {"national_id": "1"})["extra"] == {"notes": "keep me"}


def test_preventive_rows_use_composite_key(registry, store):
    headers = ["Patient ID", "Patient Name", "Service ID", "Priority", "Due Date"]
    rows = [
        {"Patient ID": "1001", "Patient Name": "Ali", "Service ID": "S001",
         "Priority": "عالية", "Due Date": "2026-12-01"},
        {"Patient ID": "1001", "Patient Name": "Ali", "Service ID": "S004",
         "Priority": "", "Due Date": None},
    ]
    first = _run(registry, store, headers, rows, "preventive")
    second = _run(registry, store, headers, rows[:1], "preventive")

    assert first.inserted == 2
    assert second.updated == 1
    stored = {r["service_id"]: r for r in store.select("patient_eligibility")}
    assert len(stored) == 2
    assert stored["S001"]["priority"] == "high"
    assert stored["S001"]["due_date"] == "2026-12-01"
    assert stored["S004"]["priority"] == "medium"
    assert stored["S004"]["service_code"] == "S004"
    assert stored["S004"]["is_eligible"] is True


def test_run_import_from_workbook(registry, store, workbook):
    content = workbook({"Sheet1": [
        ["رقم الهوية", "الاسم", "الجنس", "العمر", "ID copy"],
        ["1001", "علي", "male", 40, "x"],
    ]})
    report = run_import(content, "patients.xlsx", store, registry,
                        mapping_overrides={"ID copy": ""}, today=TODAY)
    assert report.inserted == 1
    patient = store.get("patients", {"national_id": "1001"})
    assert (patient["name"], patient["gender"], patient["age"]) == ("علي", "ذكر", 40)
