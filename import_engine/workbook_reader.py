"""
import_engine.workbook_reader - Low-level spreadsheet reading and cleaning.

Responsibilities:
  • .xlsx / .xlsm through openpyxl (cached values, not formulas)
  • .csv through the csv module, with UTF-8 BOM removal
  • Header clean-up: whitespace stripped, blank headers dropped,
    duplicates suffixed _1, _2 …
  • Fully empty data rows dropped
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path

from openpyxl import load_workbook

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv", ".txt"}


@dataclass
class Sheet:
    """One flat table: a header row and the data rows under it."""
    name: str
    headers: list[str] = field(default_factory=list)
    rows: list[dict] = field(default_factory=list)


@dataclass
class RawSheet:
    """Every row of a sheet as a list of cell values, header not yet located."""
    name: str
    rows: list[list] = field(default_factory=list)


def read_sheet(content: bytes | str, filename: str) -> Sheet:
    """First sheet of the workbook, first row as headers."""
    sheets = read_raw_sheets(content, filename, first_only=True)
    if not sheets or not sheets[0].rows:
        raise ValueError("Workbook is empty")
    return to_table(sheets[0], header_index=0)


def read_raw_sheets(
    content: bytes | str, filename: str, first_only: bool = False,
) -> list[RawSheet]:
    suffix = Path(filename or "").suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return _read_excel(content, first_only)
    if suffix in CSV_SUFFIXES:
        return [RawSheet(name=Path(filename).stem, rows=_read_csv(content))]
    raise ValueError(f"Unsupported file type {suffix or filename!r} (use .xlsx or .csv)")


def to_table(raw: RawSheet, header_index: int = 0) -> Sheet:
    """Build a Sheet from `raw`, reading headers at row `header_index`."""
    header_row = raw.rows[header_index] if len(raw.rows) > header_index else []
    columns = clean_headers(header_row)

    rows: list[dict] = []
    for values in raw.rows[header_index + 1:]:
        if is_empty_row(values):
            continue
        row = {}
        for idx, name in columns:
            row[name] = values[idx] if idx < len(values) else None
        rows.append(row)

    return Sheet(name=raw.name, headers=[name for _, name in columns], rows=rows)


def clean_headers(header_row: list) -> list[tuple[int, str]]:
    """(column index, header text) for every non-blank header, made unique."""
    seen: dict[str, int] = {}
    out: list[tuple[int, str]] = []
    for idx, cell in enumerate(header_row):
        text = "" if cell is None else str(cell).strip()
        if not text:
            continue
        if text in seen:
            seen[text] += 1
            text = f"{text}_{seen[text]}"
        else:
            seen[text] = 0
        out.append((idx, text))
    return out


def is_empty_row(values: list) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


# ── Private helpers ────────────────────────────────────────────────────

def _read_excel(content: bytes | str, first_only: bool) -> list[RawSheet]:
    if isinstance(content, str):
        raise ValueError("Excel content must be bytes")
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except Exception as exc:
        raise ValueError(f"Could not read workbook: {exc}") from exc

    try:
        sheets = []
        worksheets = workbook.worksheets[:1] if first_only else workbook.worksheets
        for ws in worksheets:
            rows = [list(r) for r in ws.iter_rows(values_only=True)]
            sheets.append(RawSheet(name=ws.title, rows=rows))
        return sheets
    finally:
        workbook.close()


def _read_csv(content: bytes | str) -> list[list]:
    text = _decode(content)
    if not text.strip():
        return []
    return [
        [cell if cell.strip() else None for cell in row]
        for row in csv.reader(io.StringIO(text))
    ]


def _decode(raw: bytes | str) -> str:
    if isinstance(raw, bytes):
        # Strip UTF-8 BOM
        if raw.startswith(b"\xef\xbb\xbf"):
            raw = raw[3:]
        return raw.decode("utf-8", errors="replace")
    if raw.startswith("\ufeff"):
        return raw[1:]
    return raw
