"""
import_engine.schedules - Doctor roster workbooks → schedules table.

A roster workbook has one sheet per center (or one combined sheet).
Each sheet carries a few title rows, then a header row naming the
doctor column, the optional center and doctor-id columns, and one
column per roster day.  Day headers are short tokens ("14-12", "3/1",
"7"), so their day/month order is decided once for the whole workbook
before any of them is resolved.

Every (center, doctor, date) cell becomes one schedules row holding
the cell text as its status.  The import replaces the table, unless
the workbook yields no entries at all, in which case nothing is touched.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

import config
from db.store import Store
from import_engine.bulk import BulkReport, write_in_chunks
from import_engine.dates import DateOrder, collect_samples, detect_format, resolve_date
from import_engine.workbook_reader import RawSheet, is_empty_row, read_raw_sheets

logger = logging.getLogger(__name__)

SCHEDULES = "schedules"
CONFLICT_KEY = ("center_name", "doctor_id", "date")

_HAS_DIGIT = re.compile(r"\d")
_WHITESPACE = re.compile(r"\s+")


class SheetStatus(str, enum.Enum):
    SUCCESS = "success"
    NO_HEADER = "no_header"
    NO_COLUMNS = "no_columns"
    NO_DATES = "no_dates"


def _text(cell) -> str:
    return "" if cell is None else str(cell).strip()


def is_doctor_header(cell) -> bool:
    text = _text(cell)
    return "اسم الطبيب" in text or text == "الطبيب" or text.lower() in ("doctor", "doctor name")


def is_center_header(cell) -> bool:
    text = _text(cell)
    return "اسم المركز" in text or text == "المركز" or text.lower() in ("center", "center name")


def is_id_header(cell) -> bool:
    text = _text(cell)
    return "الهوية" in text or text.lower() in ("doctor id", "id")


def day_header(cell):
    """
    Header cell as a date token.  Real dates pass, integers 1-31 read as a
    day of month, larger integers as spreadsheet serials.
    """
    if isinstance(cell, (datetime, date)):
        return cell
    if isinstance(cell, (int, float)) and not isinstance(cell, bool):
        if not float(cell).is_integer() or cell < 1:
            return None
        return str(int(cell)) if cell <= 31 else int(cell)
    text = _text(cell)
    return text if _HAS_DIGIT.search(text) else None


@dataclass
class SheetLayout:
    header_index: int
    doctor_col: int
    center_col: Optional[int] = None
    id_col: Optional[int] = None
    day_cols: dict[int, object] = field(default_factory=dict)     # index → date token


@dataclass
class SheetReport:
    name: str
    status: SheetStatus
    header_row: int = -1            # 1-based, -1 when not found
    date_columns: int = 0
    entries: int = 0
    skipped_rows: int = 0
    excluded_rows: int = 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "status": self.status.value,
            "header_row": self.header_row,
            "date_columns": self.date_columns,
            "entries": self.entries,
            "skipped_rows": self.skipped_rows,
            "excluded_rows": self.excluded_rows,
        }


@dataclass
class ScheduleImportReport:
    date_order: DateOrder
    sheets: list[SheetReport] = field(default_factory=list)
    parsed: int = 0
    unique: int = 0
    cleared: int = 0
    write: BulkReport = field(default_factory=BulkReport)

    @property
    def sheets_processed(self) -> int:
        return sum(1 for s in self.sheets if s.status is SheetStatus.SUCCESS)

    def to_dict(self) -> dict:
        return {
            "date_order": self.date_order.value,
            "sheets_processed": self.sheets_processed,
            "parsed": self.parsed,
            "unique": self.unique,
            "cleared": self.cleared,
            "written": self.write.written,
            "errors": list(self.write.errors),
            "sheets": [s.to_dict() for s in self.sheets],
        }


# ── Layout detection ──────────────────────────────────────────────────

def find_header_row(rows: list[list], scan: int = config.HEADER_SCAN_ROWS) -> Optional[int]:
    for idx, row in enumerate(rows[:scan]):
        if row and any(is_doctor_header(c) or is_center_header(c) for c in row):
            return idx
    return None


def detect_layout(raw: RawSheet, scan: int = config.HEADER_SCAN_ROWS
                  ) -> tuple[Optional[SheetLayout], SheetStatus]:
    header_index = find_header_row(raw.rows, scan)
    if header_index is None:
        return None, SheetStatus.NO_HEADER

    header = raw.rows[header_index]
    doctor_col = center_col = id_col = None
    day_cols: dict[int, object] = {}
    for idx, cell in enumerate(header):
        if is_doctor_header(cell):
            doctor_col = idx
        elif is_center_header(cell):
            center_col = idx
        elif is_id_header(cell):
            id_col = idx
        else:
            token = day_header(cell)
            if token is not None:
                day_cols[idx] = token

    if doctor_col is None:
        return None, SheetStatus.NO_COLUMNS
    layout = SheetLayout(header_index, doctor_col, center_col, id_col, day_cols)
    return layout, (SheetStatus.SUCCESS if day_cols else SheetStatus.NO_DATES)


# ── Import ────────────────────────────────────────────────────────────

def _cell(row: list, idx: Optional[int]) -> str:
    if idx is None or idx >= len(row):
        return ""
    return _text(row[idx])


def parse_sheet(
    raw: RawSheet,
    layout: SheetLayout,
    dates: dict[int, date],
    report: SheetReport,
    excluded_centers: tuple[str, ...] = (),
) -> list[dict]:
    entries: list[dict] = []
    for row in raw.rows[layout.header_index + 1:]:
        doctor = _cell(row, layout.doctor_col) if row else ""
        if not row or is_empty_row(row) or not doctor:
            report.skipped_rows += 1
            continue

        center = _cell(row, layout.center_col) or raw.name
        if any(ex in center for ex in excluded_centers):
            report.excluded_rows += 1
            continue

        doctor_id = _cell(row, layout.id_col) or _WHITESPACE.sub("-", f"{center}-{doctor}")
        for idx, day in dates.items():
            entries.append({
                "center_name": center,
                "doctor_name": doctor,
                "doctor_id": doctor_id,
                "date": day,
                "status": _cell(row, idx),
            })
    report.entries = len(entries)
    return entries


def import_schedules(
    file_content: bytes | str,
    filename: str,
    store: Store,
    *,
    today: Optional[date] = None,
    default_order: DateOrder = DateOrder.DAY_FIRST,
    excluded_centers: tuple[str, ...] = config.SCHEDULE_EXCLUDED_CENTERS,
    chunk_size: int = config.BULK_CHUNK_SIZE,
) -> ScheduleImportReport:
    """
    Replace the schedules table with the contents of a roster workbook.
    A workbook without a single entry leaves the stored rosters as they are.

    The day/month order is detected from the day headers of every sheet
    together; sheets without a usable header are reported and skipped.
    """
    today = today or date.today()
    sheets = read_raw_sheets(file_content, filename)

    layouts: list[tuple[RawSheet, Optional[SheetLayout], SheetStatus]] = []
    tokens: list = []
    for raw in sheets:
        layout, status = detect_layout(raw)
        layouts.append((raw, layout, status))
        if layout is not None:
            tokens.extend(layout.day_cols.values())

    order = detect_format(collect_samples(tokens), today, default_order)
    report = ScheduleImportReport(date_order=order)

    entries: list[dict] = []
    for raw, layout, status in layouts:
        sheet_report = SheetReport(name=raw.name, status=status)
        report.sheets.append(sheet_report)
        if layout is None:
            logger.warning(f"Sheet {raw.name!r}: {status.value}")
            continue
        sheet_report.header_row = layout.header_index + 1

        dates: dict[int, date] = {}
        for idx, token in layout.day_cols.items():
            iso = resolve_date(token, order, today, column_index=idx)
            if iso is not None:
                dates[idx] = date.fromisoformat(iso)
        sheet_report.date_columns = len(dates)
        if not dates:
            sheet_report.status = SheetStatus.NO_DATES
            logger.warning(f"Sheet {raw.name!r}: no date columns")
            continue

        entries.extend(parse_sheet(raw, layout, dates, sheet_report, excluded_centers))

    report.parsed = len(entries)
    unique: dict[tuple, dict] = {}
    for entry in entries:
        unique[tuple(entry[k] for k in CONFLICT_KEY)] = entry
    report.unique = len(unique)

    if not unique:
        # Existing rosters stay until a workbook yields entries
        logger.warning(
            f"Schedules: no entries found in {len(report.sheets)} sheets - nothing cleared"
        )
        return report

    report.cleared = store.clear(SCHEDULES)
    report.write = write_in_chunks(store, SCHEDULES, list(unique.values()), CONFLICT_KEY, chunk_size)
    logger.info(
        f"Schedules: {report.write.written} of {report.unique} entries written "
        f"({report.parsed} parsed) from {report.sheets_processed}/{len(report.sheets)} sheets, "
        f"dates {order.value}"
    )
    return report
