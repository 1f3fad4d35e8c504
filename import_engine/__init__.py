"""
import_engine - Spreadsheet import pipeline.

Public API:
    ImportSession(registry, import_type)          → load / preview / run
    run_import(content, filename, store, registry) → ImportReport
    import_schedules(content, filename, store)     → ScheduleImportReport
    derive_eligibility(store, services)            → BulkReport
"""

from import_engine.importer import (                    # noqa: F401
    ImportSession,
    ImportStateError,
    SessionState,
    run_import,
)
from import_engine.report import ImportReport, ImportRowResult, Outcome   # noqa: F401
from import_engine.row_processor import RowError        # noqa: F401
from import_engine.schedules import import_schedules    # noqa: F401
from import_engine.eligibility import derive_eligibility  # noqa: F401
from import_engine.bulk import BulkReport, write_in_chunks  # noqa: F401
