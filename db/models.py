"""
db.models - SQLAlchemy ORM declarations.

Tables
------
patients            - one row per national id.  Screening, scheduling and
                      chronic-disease columns are stored directly; custom
                      admin-defined fields go into extra_json.
medications         - dependent child rows of a patient (replaced on import).
patient_eligibility - one row per (patient_id, service_id) preventive service.
schedules           - one row per (center, doctor, date) roster cell.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _extra(raw: str | None) -> dict:
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}


class Base(DeclarativeBase):
    pass


class Patient(Base):
    __tablename__ = "patients"

    id          = Column(String(36), primary_key=True, default=_uuid)
    national_id = Column(String(50), unique=True, nullable=False, index=True)
    name        = Column(String(300), nullable=False, default="")
    age         = Column(Integer)
    gender      = Column(String(20))

    # ── Chronic-disease flags ──────────────────────────────────────────
    has_dm           = Column(Boolean, nullable=False, default=False)
    has_htn          = Column(Boolean, nullable=False, default=False)
    has_dyslipidemia = Column(Boolean, nullable=False, default=False)
    burden           = Column(String(20))

    # ── Scheduling ─────────────────────────────────────────────────────
    center_id            = Column(String(200), default="")
    doctor               = Column(String(200))
    team                 = Column(String(200))
    days_until_visit     = Column(Integer)
    urgency_status       = Column(String(100))
    predicted_visit_date = Column(Date)
    status               = Column(String(20), default="pending")

    # ── Custom fields ──────────────────────────────────────────────────
    extra_json = Column(Text, default="{}")

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    medications = relationship(
        "Medication", back_populates="patient",
        cascade="all, delete-orphan", lazy="selectin",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "national_id": self.national_id,
            "name": self.name or "",
            "age": self.age,
            "gender": self.gender,
            "has_dm": bool(self.has_dm),
            "has_htn": bool(self.has_htn),
            "has_dyslipidemia": bool(self.has_dyslipidemia),
            "burden": self.burden,
            "center_id": self.center_id or "",
            "doctor": self.doctor,
            "team": self.team,
            "days_until_visit": self.days_until_visit,
            "urgency_status": self.urgency_status,
            "predicted_visit_date": _iso(self.predicted_visit_date),
            "status": self.status,
            "extra": _extra(self.extra_json),
        }


class Medication(Base):
    __tablename__ = "medications"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(String(36),
                        ForeignKey("patients.id", ondelete="CASCADE"),
                        nullable=False, index=True)
    name       = Column(String(300), nullable=False)

    patient = relationship("Patient", back_populates="medications")

    def to_dict(self) -> dict:
        return {"id": self.id, "patient_id": self.patient_id, "name": self.name}


class PatientEligibility(Base):
    __tablename__ = "patient_eligibility"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    patient_id          = Column(String(50), nullable=False, index=True)
    patient_name        = Column(String(300), default="")
    patient_age         = Column(Integer, default=0)
    patient_gender      = Column(String(20))
    service_id          = Column(String(50), nullable=False)
    service_code        = Column(String(100))
    service_name_ar     = Column(String(300), default="")
    priority            = Column(String(20), default="medium")
    status              = Column(String(20), default="pending")
    due_date            = Column(Date)
    last_completed_date = Column(Date)
    is_eligible         = Column(Boolean, nullable=False, default=True)
    extra_json          = Column(Text, default="{}")

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    __table_args__ = (
        UniqueConstraint("patient_id", "service_id", name="uq_patient_service"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name or "",
            "patient_age": self.patient_age,
            "patient_gender": self.patient_gender,
            "service_id": self.service_id,
            "service_code": self.service_code,
            "service_name_ar": self.service_name_ar or "",
            "priority": self.priority,
            "status": self.status,
            "due_date": _iso(self.due_date),
            "last_completed_date": _iso(self.last_completed_date),
            "is_eligible": bool(self.is_eligible),
            "extra": _extra(self.extra_json),
        }


class Schedule(Base):
    __tablename__ = "schedules"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    center_name = Column(String(200), nullable=False, index=True)
    doctor_name = Column(String(300), nullable=False)
    doctor_id   = Column(String(300), nullable=False)
    date        = Column(Date, nullable=False, index=True)
    status      = Column(String(100), default="")

    __table_args__ = (
        UniqueConstraint("center_name", "doctor_id", "date", name="uq_schedule_cell"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "center_name": self.center_name,
            "doctor_name": self.doctor_name,
            "doctor_id": self.doctor_id,
            "date": _iso(self.date),
            "status": self.status or "",
        }


# Store table name → model
TABLES: dict[str, type[Base]] = {
    Patient.__tablename__: Patient,
    Medication.__tablename__: Medication,
    PatientEligibility.__tablename__: PatientEligibility,
    Schedule.__tablename__: Schedule,
}
