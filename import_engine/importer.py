"""
import_engine.importer - Top-level orchestrator.

An ImportSession walks one spreadsheet through

    IDLE → MAPPING_READY → PREVIEWING → IMPORTING → COMPLETED

load() maps the columns and decides the date order, preview() shows
canonical records without touching the store, and run() writes rows
one at a time and produces an ImportReport.  Only run() mutates the
store.  A failing row is recorded and the loop moves on; nothing short
of cancel() stops a run early.

The day/month order is decided at load() from the header row and from
the text cells of every column mapped to a date field, so cell values
such as "11/13/2026" can settle the order for the whole sheet.
"""

from __future__ import annotations

import enum
import logging
from datetime import date
from typing import Callable, Optional

import config
from db.store import Store
from import_engine.column_mapper import ColumnMapping, Confidence, map_columns
from import_engine.dates import DateOrder, HeaderSample, collect_samples, detect_format
from import_engine.report import ImportReport, ImportRowResult, Outcome
from import_engine.row_processor import RowError, RowProcessor
from import_engine.workbook_reader import read_sheet
from schema.builtin import get_profile
from schema.fields import DataType, FieldDefinition
from schema.registry import FieldRegistry

logger = logging.getLogger(__name__)

Progress = Callable[[int, int], None]


class ImportStateError(Exception):
    """Raised when a session operation is called in the wrong state."""
    pass


class SessionState(str, enum.Enum):
    IDLE = "idle"
    MAPPING_READY = "mapping_ready"
    PREVIEWING = "previewing"
    IMPORTING = "importing"
    COMPLETED = "completed"


class ImportSession:

    def __init__(
        self,
        registry: FieldRegistry,
        import_type: str = "patients",
        default_order: DateOrder = DateOrder.DAY_FIRST,
        today: Optional[date] = None,
    ):
        self.registry = registry
        self.profile = get_profile(import_type)
        self.import_type = import_type
        self.default_order = default_order
        self.today = today or date.today()

        self.state = SessionState.IDLE
        self.headers: list[str] = []
        self.rows: list[dict] = []
        self.mappings: list[ColumnMapping] = []
        self.date_order = default_order
        self.report: Optional[ImportReport] = None
        self._fields: dict[str, FieldDefinition] = {}
        self._cancelled = False

    # ── Mapping ───────────────────────────────────────────────────────

    def load(self, headers: list[str], rows: list[dict]) -> list[ColumnMapping]:
        self._require(SessionState.IDLE, SessionState.MAPPING_READY,
                      SessionState.PREVIEWING, SessionState.COMPLETED)
        fields = self.registry.fields_for_import(self.import_type)
        self._fields = {d.key: d for d in fields}
        self.headers = list(headers)
        self.rows = list(rows)
        self.mappings = map_columns(self.headers, fields)
        self.date_order = detect_format(self._date_samples(), self.today, self.default_order)
        self.report = None
        self._cancelled = False
        self.state = SessionState.MAPPING_READY

        mapped = sum(1 for m in self.mappings if m.is_mapped)
        logger.info(
            f"Loaded {len(self.rows)} rows for {self.import_type!r}: "
            f"{mapped}/{len(self.mappings)} columns mapped, dates {self.date_order.value}"
        )
        return self.mappings

    def update_mapping(self, column: str, field_key: Optional[str]) -> list[ColumnMapping]:
        """
        Point `column` at `field_key` (None or "" clears it).  Any other
        column holding the same key is released.
        """
        self._require(SessionState.MAPPING_READY, SessionState.PREVIEWING)
        if column not in self.headers:
            raise ValueError(f"Unknown column {column!r}")
        defn = self._fields.get(field_key) if field_key else None
        if field_key and defn is None:
            raise ValueError(f"Unknown field {field_key!r} for {self.import_type!r}")

        updated = []
        for m in self.mappings:
            if m.source_column == column:
                if defn is None:
                    m = ColumnMapping(source_column=column)
                else:
                    m = ColumnMapping(
                        source_column=column,
                        field_key=defn.key,
                        confidence=Confidence.HIGH,
                        display_name=defn.display_name,
                        required=defn.required,
                        score=1.0,
                    )
            elif defn is not None and m.field_key == defn.key:
                m = ColumnMapping(source_column=m.source_column, score=m.score)
            updated.append(m)
        self.mappings = updated
        self.state = SessionState.MAPPING_READY
        return self.mappings

    def missing_required(self) -> list[FieldDefinition]:
        mapped = {m.field_key for m in self.mappings if m.is_mapped}
        return [d for d in self._fields.values() if d.required and d.key not in mapped]

    # ── Preview ───────────────────────────────────────────────────────

    def preview(self, limit: int = config.PREVIEW_ROWS) -> list[dict]:
        self._require(SessionState.MAPPING_READY, SessionState.PREVIEWING)
        processor = self._processor()
        out = []
        for row in self.rows[:limit]:
            record = processor.build_record(row)
            entry = {"record": _jsonable(record)}
            try:
                processor.validate(record)
            except RowError as exc:
                entry["error"] = str(exc)
            out.append(entry)
        self.state = SessionState.PREVIEWING
        return out

    # ── Import ────────────────────────────────────────────────────────

    def run(self, store: Store, progress: Optional[Progress] = None) -> ImportReport:
        self._require(SessionState.MAPPING_READY, SessionState.PREVIEWING)
        self.state = SessionState.IMPORTING
        processor = self._processor()
        total = len(self.rows)
        report = ImportReport(total_rows=total)

        for idx, row in enumerate(self.rows, start=1):
            if self._cancelled:
                report.cancelled = True
                logger.info(f"Import cancelled after {idx - 1}/{total} rows")
                break
            report.add(self._import_row(processor, store, row, idx))
            if progress is not None:
                progress(idx, total)

        self.report = report
        self.state = SessionState.COMPLETED
        logger.info(
            f"Import {self.import_type!r} finished: {report.inserted} inserted, "
            f"{report.updated} updated, {report.failed} failed of {total}"
        )
        return report

    def cancel(self):
        """Stop before the next row.  The row in flight still completes."""
        self._cancelled = True

    # ── Private helpers ───────────────────────────────────────────────

    def _import_row(self, processor: RowProcessor, store: Store,
                    row: dict, idx: int) -> ImportRowResult:
        try:
            return processor.process(store, row)
        except RowError as exc:
            error = str(exc)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
        identifier, name = self._row_identity(row)
        logger.warning(f"Row {idx} ({identifier or '?'}) failed: {error}")
        return ImportRowResult(identifier, name, Outcome.FAILED, error)

    def _row_identity(self, row: dict) -> tuple[str, str]:
        """Raw identifier / name cells, for reporting rows that never got built."""
        wanted = {self.profile.identifier_field: "", self.profile.name_field: ""}
        for m in self.mappings:
            if m.field_key in wanted:
                raw = row.get(m.source_column)
                wanted[m.field_key] = "" if raw is None else str(raw).strip()
        return wanted[self.profile.identifier_field], wanted[self.profile.name_field]

    def _processor(self) -> RowProcessor:
        return RowProcessor(self.profile, self.mappings, self._fields,
                            self.date_order, self.today)

    def _date_samples(self) -> list[HeaderSample]:
        """Ambiguous date tokens from the headers and from date-typed columns."""
        tokens: list = list(self.headers)
        date_columns = [
            m.source_column for m in self.mappings
            if m.is_mapped and self._fields[m.field_key].data_type is DataType.DATE
        ]
        for row in self.rows:
            tokens.extend(row.get(c) for c in date_columns if isinstance(row.get(c), str))
        return collect_samples(tokens)

    def _require(self, *states: SessionState):
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise ImportStateError(f"Session is {self.state.value}; expected one of: {allowed}")


def _jsonable(record: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in record.items()}


def run_import(
    file_content: bytes | str,
    filename: str,
    store: Store,
    registry: FieldRegistry,
    import_type: str = "patients",
    *,
    mapping_overrides: Optional[dict[str, Optional[str]]] = None,
    progress: Optional[Progress] = None,
    today: Optional[date] = None,
) -> ImportReport:
    """
    Import the first sheet of a workbook in one call.

    Parameters
    ----------
    file_content : raw .xlsx or .csv bytes
    filename : used to pick the reader
    mapping_overrides : column → field key ("" or None to ignore the column)

    Returns
    -------
    ImportReport with one result per data row
    """
    sheet = read_sheet(file_content, filename)
    session = ImportSession(
        registry, import_type,
        default_order=DateOrder.from_setting(config.DEFAULT_DATE_ORDER),
        today=today,
    )
    session.load(sheet.headers, sheet.rows)
    for column, key in (mapping_overrides or {}).items():
        session.update_mapping(column, key)
    return session.run(store, progress)
