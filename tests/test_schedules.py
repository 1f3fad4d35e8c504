from datetime import date

from import_engine.dates import DateOrder
from import_engine.schedules import SheetStatus, day_header, import_schedules

TODAY = date(2026, 10, 19)


def _roster(workbook):
    return workbook({
        "مركز الشفاء": [
            ["جدول الأطباء"],
            ["اسم الطبيب", "الهوية", "01-12", "02-12", "03-12"],
            ["د. أحمد", "111", "AM", None, "PM"],
            [None, "222", "AM", "AM", "AM"],
            ["د. سارة", None, "AM", "AM", "AM"],
        ],
        "ملاحظات": [["نص حر"]],
        "مجمع": [
            ["اسم الطبيب", "اسم المركز", "01-12"],
            ["د. علي", "الربوة", "AM"],
            ["د. علي", "مركز النور", "AM"],
            ["د. علي", "مركز النور", "PM"],
        ],
    })


def test_roster_import(store, workbook):
    store.insert("schedules", [{"center_name": "old", "doctor_name": "x", "doctor_id": "x",
                                "date": date(2020, 1, 1)}])

    report = import_schedules(_roster(workbook), "roster.xlsx", store,
                              today=TODAY, excluded_centers=("الربوة",))

    assert report.date_order is DateOrder.DAY_FIRST
    assert report.cleared == 1
    assert (report.parsed, report.unique, report.write.written) == (8, 7, 7)

    first, notes, combined = report.sheets
    assert (first.status, first.header_row, first.date_columns, first.entries) == \
        (SheetStatus.SUCCESS, 2, 3, 6)
    assert first.skipped_rows == 1
    assert notes.status is SheetStatus.NO_HEADER
    assert combined.excluded_rows == 1
    assert report.sheets_processed == 2

    rows = store.select("schedules")
    assert len(rows) == 7
    assert {r["date"] for r in rows} == {"2026-12-01", "2026-12-02", "2026-12-03"}

    ahmed = [r for r in rows if r["doctor_id"] == "111"]
    assert [r["status"] for r in sorted(ahmed, key=lambda r: r["date"])] == ["AM", "", "PM"]
    assert all(r["center_name"] == "مركز الشفاء" for r in ahmed)

    sara = [r for r in rows if r["doctor_name"] == "د. سارة"]
    assert {r["doctor_id"] for r in sara} == {"مركز-الشفاء-د.-سارة"}

    [ali] = [r for r in rows if r["center_name"] == "مركز النور"]
    assert ali["status"] == "PM"


def test_sheet_statuses(store, workbook):
    content = workbook({
        "no dates": [["اسم الطبيب", "ملاحظة"], ["د. أحمد", "x"]],
        "no doctor": [["اسم المركز", "01-12"], ["مركز", "AM"]],
    })
    report = import_schedules(content, "roster.xlsx", store, today=TODAY)
    assert [s.status for s in report.sheets] == [SheetStatus.NO_DATES, SheetStatus.NO_COLUMNS]
    assert report.write.written == 0


def test_workbook_without_entries_keeps_existing_rosters(store, workbook):
    store.insert("schedules", [{"center_name": "C", "doctor_name": "D", "doctor_id": "d",
                                "date": date(2026, 11, 1), "status": "AM"}])
    content = workbook({"wrong file": [["Name", "Total"], ["x", 1]]})

    report = import_schedules(content, "roster.xlsx", store, today=TODAY)

    assert report.sheets[0].status is SheetStatus.NO_HEADER
    assert (report.parsed, report.cleared, report.write.written) == (0, 0, 0)
    [kept] = store.select("schedules")
    assert kept["doctor_id"] == "d"


def test_serial_number_headers(store, workbook):
    # 46357 is 2026-12-01 as an unformatted spreadsheet serial
    content = workbook({"Center": [["Doctor", 46357], ["Dr. Lee", "AM"]]})
    report = import_schedules(content, "roster.xlsx", store, today=TODAY)
    assert report.sheets[0].status is SheetStatus.SUCCESS
    assert report.write.written == 1
    [row] = store.select("schedules")
    assert (row["date"], row["status"]) == ("2026-12-01", "AM")


def test_day_number_headers(store, workbook):
    content = workbook({"Center": [["Doctor", 20, 21], ["Dr. Lee", "AM", "PM"]]})
    report = import_schedules(content, "roster.xlsx", store, today=TODAY)
    assert report.write.written == 2
    assert {r["date"] for r in store.select("schedules")} == {"2026-10-20", "2026-10-21"}
    assert {r["doctor_id"] for r in store.select("schedules")} == {"Center-Dr.-Lee"}


def test_day_header():
    assert day_header(7) == "7"
    assert day_header(45000) == 45000
    assert day_header(0) is None
    assert day_header(2.5) is None
    assert day_header("14-12") == "14-12"
    assert day_header("اسم الطبيب") is None
    assert day_header(date(2026, 12, 1)) == date(2026, 12, 1)
