"""
Clinic ingest - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR           = Path(__file__).resolve().parent
CUSTOM_FIELDS_PATH = Path(os.environ.get("CLINIC_CUSTOM_FIELDS", BASE_DIR / "custom_fields.json"))
SERVICES_PATH      = Path(os.environ.get("CLINIC_SERVICES",
                                         BASE_DIR / "schema" / "preventive_services.json"))

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("CLINIC_DB", f"sqlite:///{BASE_DIR / 'clinic.sqlite'}")

# ── Import engine ──────────────────────────────────────────────────────
# Fallback when no header heuristic decides the date order.
# Regional policy, not a fact about the data: "day_first" | "month_first"
DEFAULT_DATE_ORDER = os.environ.get("CLINIC_DATE_ORDER", "day_first")
BULK_CHUNK_SIZE    = int(os.environ.get("CLINIC_BULK_CHUNK", "500"))
PREVIEW_ROWS       = 20
HEADER_SCAN_ROWS   = 10
SCHEDULE_EXCLUDED_CENTERS = tuple(
    c.strip() for c in os.environ.get("CLINIC_EXCLUDED_CENTERS", "").split(",") if c.strip()
)

# ── Server ─────────────────────────────────────────────────────────────
HOST      = os.environ.get("CLINIC_HOST", "0.0.0.0")
PORT      = int(os.environ.get("CLINIC_PORT", "5000"))
DEBUG     = os.environ.get("CLINIC_DEBUG", "0") == "1"
SECRET    = os.environ.get("CLINIC_SECRET", "clinic-dev-key-change-in-prod")
LOG_LEVEL = os.environ.get("CLINIC_LOG_LEVEL", "INFO")
MAX_UPLOAD_BYTES = 20 * 1024 * 1024
