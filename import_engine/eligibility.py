"""
import_engine.eligibility - Derive preventive-service eligibility rows.

Every stored patient is matched against the service catalogue by age
and gender; each match becomes one patient_eligibility row keyed by
(patient_id, service_id).  Rows are written through the bulk writer.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import config
from db.store import Store
from import_engine.bulk import BulkReport, write_in_chunks
from schema.builtin import ELIGIBILITY, PATIENTS
from schema.catalogue import PreventiveService, eligible_services

logger = logging.getLogger(__name__)

MALE_LABELS = frozenset({"ذكر", "male", "m"})


def catalogue_gender(gender) -> str:
    """Stored patient gender → catalogue gender (male / female)."""
    return "male" if str(gender or "").strip().lower() in MALE_LABELS else "female"


def eligibility_rows(patient: dict, services: list[PreventiveService]) -> list[dict]:
    age = patient.get("age")
    if age is None:
        return []
    rows = []
    for service in eligible_services(services, age, catalogue_gender(patient.get("gender"))):
        rows.append({
            "patient_id": patient["national_id"],
            "patient_name": patient.get("name") or "",
            "patient_age": age,
            "patient_gender": patient.get("gender"),
            "service_id": service.service_id,
            "service_code": service.service_code,
            "service_name_ar": service.service_name_ar,
            "priority": service.priority,
            "is_eligible": True,
        })
    return rows


def derive_eligibility(
    store: Store,
    services: list[PreventiveService],
    chunk_size: int = config.BULK_CHUNK_SIZE,
    progress: Optional[Callable[[int, int], None]] = None,
) -> BulkReport:
    patients = store.select(PATIENTS)
    rows: list[dict] = []
    for idx, patient in enumerate(patients, start=1):
        rows.extend(eligibility_rows(patient, services))
        if progress is not None:
            progress(idx, len(patients))

    report = write_in_chunks(store, ELIGIBILITY, rows, ("patient_id", "service_id"), chunk_size)
    logger.info(
        f"Eligibility: {len(rows)} rows for {len(patients)} patients, "
        f"{report.written} written in {report.chunks} chunks, {len(report.errors)} failed"
    )
    return report
